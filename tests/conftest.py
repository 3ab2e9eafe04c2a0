import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ADMIN_EMAILS", "admin@clinicmail.com")
os.environ.setdefault("ENV", "test")

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from clinic_backend.api.deps import get_clock, get_session  # noqa: E402
from clinic_backend.main import app  # noqa: E402
from clinic_backend.models import Appointment, Patient, Service, SlotTemplate  # noqa: E402

# 2026-03-01 is a Sunday; 2026-03-02 is the Monday most tests book on
NOW = datetime(2026, 3, 1, 12, 0)
MONDAY = datetime(2026, 3, 2).date()


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
async def session_maker():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def session(session_maker):
    async with session_maker() as s:
        yield s


@pytest.fixture
async def client(session_maker, clock):
    async def _session_override():
        async with session_maker() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_clock] = lambda: clock
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def make_patient(session: AsyncSession, email: str = "patient@clinicmail.com") -> Patient:
    patient = Patient(email=email, full_name="Test Patient", hashed_password="not-a-real-hash")
    session.add(patient)
    await session.flush()
    return patient


async def make_service(
    session: AsyncSession, duration_minutes: int = 50, is_active: bool = True, name: str = "Therapy"
) -> Service:
    service = Service(name=name, duration_minutes=duration_minutes, is_active=is_active)
    session.add(service)
    await session.flush()
    return service


async def make_template(
    session: AsyncSession,
    day_of_week: int = 1,
    start_time: str = "09:00",
    end_time: str = "10:00",
    is_active: bool = True,
) -> SlotTemplate:
    template = SlotTemplate(
        day_of_week=day_of_week, start_time=start_time, end_time=end_time, is_active=is_active
    )
    session.add(template)
    await session.flush()
    return template


async def make_appointment(
    session: AsyncSession,
    patient: Patient,
    service: Service,
    date_time: datetime,
    status: str = "CONFIRMED",
) -> Appointment:
    appointment = Appointment(
        patient_id=patient.id, service_id=service.id, date_time=date_time, status=status
    )
    session.add(appointment)
    await session.flush()
    return appointment
