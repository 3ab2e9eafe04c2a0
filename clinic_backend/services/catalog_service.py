import logging
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_backend.core.errors import ServiceInactive, ServiceInUse, ServiceNotFound
from clinic_backend.models.appointment import BLOCKING_STATUSES, Appointment
from clinic_backend.models.service import Service

logger = logging.getLogger(__name__)


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


async def list_services(session: AsyncSession, include_inactive: bool = False) -> list[Service]:
    q = select(Service).order_by(Service.created_at.desc(), Service.id.desc())
    if not include_inactive:
        q = q.where(Service.is_active == True)  # noqa: E712
    result = await session.execute(q)
    return list(result.scalars().all())


async def get_service(session: AsyncSession, service_id: int, for_update: bool = False) -> Service:
    q = select(Service).where(Service.id == service_id)
    if for_update:
        # Serializes bookings for one service inside the transaction (no-op on SQLite)
        q = q.with_for_update()
    result = await session.execute(q)
    service = result.scalar_one_or_none()
    if not service:
        raise ServiceNotFound()
    return service


async def get_bookable_service(
    session: AsyncSession, service_id: int, for_update: bool = False
) -> Service:
    service = await get_service(session, service_id, for_update=for_update)
    if not service.is_active:
        raise ServiceInactive()
    return service


async def create_service(session: AsyncSession, data: dict) -> Service:
    service = Service(**data, is_active=True)
    session.add(service)
    await session.flush()
    await session.refresh(service)
    logger.info("Service created: %s (%s)", service.name, service.id)
    return service


async def update_service(session: AsyncSession, service_id: int, changes: dict) -> Service:
    service = await get_service(session, service_id)
    for field, value in changes.items():
        setattr(service, field, value)
    service.updated_at = _utc_naive_now()
    session.add(service)
    await session.flush()
    await session.refresh(service)
    logger.info("Service updated: %s (%s)", service.name, service.id)
    return service


async def count_blocking_appointments(session: AsyncSession, service_id: int) -> int:
    result = await session.execute(
        select(func.count(Appointment.id)).where(
            Appointment.service_id == service_id,
            Appointment.status.in_([s.value for s in BLOCKING_STATUSES]),
        )
    )
    return result.scalar_one()


async def deactivate_service(session: AsyncSession, service_id: int) -> Service:
    """Soft delete: refuse while PENDING/CONFIRMED appointments still reference the service."""
    service = await get_service(session, service_id)
    active = await count_blocking_appointments(session, service_id)
    if active:
        raise ServiceInUse(
            f"Cannot delete service with {active} active appointment(s). "
            "Cancel or complete them first."
        )
    service.is_active = False
    service.updated_at = _utc_naive_now()
    session.add(service)
    await session.flush()
    logger.info("Service deactivated: %s (%s)", service.name, service.id)
    return service
