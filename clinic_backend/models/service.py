from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class Service(SQLModel, table=True):
    """A bookable clinic service. Prices are integer cents per currency."""

    __tablename__ = "services"
    id: int | None = Field(default=None, primary_key=True)
    name: str
    description: str = ""
    duration_minutes: int
    price_usd: int = 0
    price_eur: int = 0
    price_ars: int = 0
    price_mxn: int = 0
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())


class ServicePublic(SQLModel):
    id: int
    name: str
    description: str
    duration_minutes: int
    price_usd: int
    price_eur: int
    price_ars: int
    price_mxn: int
    is_active: bool
