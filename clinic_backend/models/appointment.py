from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import Column, DateTime, String
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class AppointmentStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# Only these statuses occupy the service's time
BLOCKING_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: int | None = Field(default=None, primary_key=True)
    patient_id: int = Field(foreign_key="patients.id", index=True)
    service_id: int = Field(foreign_key="services.id", index=True)
    date_time: datetime = Field(index=True, sa_type=DateTime())
    status: str = Field(
        default=AppointmentStatus.PENDING.value,
        sa_column=Column(String(20), nullable=False, index=True),
    )
    notes: str | None = None
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())


class AppointmentPublic(SQLModel):
    id: int
    patient_id: int
    service_id: int
    date_time: datetime
    status: AppointmentStatus
    notes: str | None = None
    created_at: datetime


class AppointmentAdminPublic(AppointmentPublic):
    patient_email: str
    patient_full_name: str | None = None
