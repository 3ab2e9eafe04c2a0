from datetime import UTC, date, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class PatientBase(SQLModel):
    email: str = Field(unique=True, index=True)
    full_name: str | None = None
    phone: str | None = None
    date_of_birth: date | None = None
    address: str | None = None


class Patient(PatientBase, table=True):
    __tablename__ = "patients"
    id: int | None = Field(default=None, primary_key=True)
    hashed_password: str
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())


class PatientCreate(SQLModel):
    email: str
    password: str
    full_name: str | None = None
    phone: str | None = None


class PatientPublic(SQLModel):
    id: int
    email: str
    full_name: str | None = None
    phone: str | None = None
    date_of_birth: date | None = None
    address: str | None = None
    is_admin: bool = False


class PatientStatistics(SQLModel):
    total_appointments: int = 0
    completed_appointments: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
