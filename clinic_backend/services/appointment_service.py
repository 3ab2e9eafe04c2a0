import logging
from datetime import UTC, date, datetime, time, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_backend.core.clock import Clock
from clinic_backend.core.errors import (
    AppointmentNotFound,
    InThePast,
    InvalidTransition,
    SlotUnavailable,
)
from clinic_backend.models.appointment import BLOCKING_STATUSES, Appointment, AppointmentStatus
from clinic_backend.models.patient import Patient
from clinic_backend.models.service import Service
from clinic_backend.services.catalog_service import get_bookable_service
from clinic_backend.services.slot_service import get_occupied_intervals, occupied_interval, overlaps

logger = logging.getLogger(__name__)

# Allowed status changes; statuses without an entry are terminal
TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
    ),
}


def _to_naive_utc(dt: datetime) -> datetime:
    """Convert to naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    if dt.tzinfo is not None:
        return dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def ensure_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    """Raise InvalidTransition unless ``current -> target`` is allowed.

    Re-setting a status is a no-op, except cancelling, which always requires a
    PENDING or CONFIRMED appointment.
    """
    if target == AppointmentStatus.CANCELLED and current not in BLOCKING_STATUSES:
        raise InvalidTransition(f"Cannot cancel a {current.value.lower()} appointment")
    if current == target:
        return
    if target not in TRANSITIONS.get(current, frozenset()):
        raise InvalidTransition(
            f"Cannot change appointment status from {current.value} to {target.value}"
        )


async def check_availability(
    session: AsyncSession,
    start: datetime,
    service_id: int,
    clock: Clock,
    exclude_appointment_id: int | None = None,
    lock: bool = False,
) -> Service:
    """Validate that ``start`` can be booked for the service; returns the service.

    Raises ServiceNotFound/ServiceInactive for a bad service, InThePast when start is
    not after now, SlotUnavailable when [start, start + duration) overlaps another
    PENDING/CONFIRMED appointment of the same service. With ``lock`` the service row
    is locked for the rest of the transaction before reading existing bookings.
    """
    service = await get_bookable_service(session, service_id, for_update=lock)
    start = _to_naive_utc(start)
    if start <= clock.now():
        raise InThePast()
    candidate = occupied_interval(start, service.duration_minutes)
    existing = await get_occupied_intervals(
        session, service_id, exclude_appointment_id=exclude_appointment_id
    )
    if any(overlaps(candidate, interval) for interval in existing):
        raise SlotUnavailable()
    return service


async def create_appointment(
    session: AsyncSession,
    patient_id: int,
    service_id: int,
    date_time: datetime,
    clock: Clock,
    notes: str | None = None,
) -> Appointment:
    start = _to_naive_utc(date_time)
    try:
        await check_availability(session, start, service_id, clock, lock=True)
    except (InThePast, SlotUnavailable) as e:
        logger.info("Booking rejected for patient %s at %s: %s", patient_id, start, e.detail)
        raise
    now = clock.now()
    appointment = Appointment(
        patient_id=patient_id,
        service_id=service_id,
        date_time=start,
        status=AppointmentStatus.PENDING.value,
        notes=notes,
        created_at=now,
        updated_at=now,
    )
    session.add(appointment)
    await session.flush()
    await session.refresh(appointment)
    logger.info("Appointment created: %s for patient %s", appointment.id, patient_id)
    return appointment


async def list_appointments_for_patient(
    session: AsyncSession,
    patient_id: int,
    status: AppointmentStatus | None = None,
    service_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[Appointment]:
    q = select(Appointment).where(Appointment.patient_id == patient_id).order_by(Appointment.date_time)
    if status:
        q = q.where(Appointment.status == status.value)
    if service_id is not None:
        q = q.where(Appointment.service_id == service_id)
    if start_date:
        q = q.where(Appointment.date_time >= datetime.combine(start_date, time.min))
    if end_date:
        q = q.where(Appointment.date_time < datetime.combine(end_date, time.min) + timedelta(days=1))
    result = await session.execute(q)
    return list(result.scalars().all())


async def list_all_appointments_with_patients(
    session: AsyncSession,
) -> list[tuple[Appointment, Patient]]:
    result = await session.execute(
        select(Appointment, Patient)
        .join(Patient, Patient.id == Appointment.patient_id)
        .order_by(Appointment.date_time)
    )
    return [(a, p) for a, p in result.all()]


async def count_appointments_by_status(session: AsyncSession, patient_id: int) -> dict[str, int]:
    result = await session.execute(
        select(Appointment.status, func.count())
        .where(Appointment.patient_id == patient_id)
        .group_by(Appointment.status)
    )
    return {s: n for s, n in result.all()}


async def get_appointment(session: AsyncSession, appointment_id: int, patient_id: int) -> Appointment:
    """Fetch an appointment owned by the patient; other patients' ids look missing."""
    result = await session.execute(
        select(Appointment).where(
            Appointment.id == appointment_id,
            Appointment.patient_id == patient_id,
        )
    )
    appointment = result.scalar_one_or_none()
    if not appointment:
        raise AppointmentNotFound()
    return appointment


async def update_appointment(
    session: AsyncSession,
    appointment_id: int,
    patient_id: int,
    changes: dict,
    clock: Clock,
) -> Appointment:
    """Apply reschedule (date_time), status and notes changes.

    A new date_time is only accepted for PENDING/CONFIRMED appointments and re-runs
    the past and overlap checks, excluding the appointment itself. A status change
    follows TRANSITIONS without re-running slot checks.
    """
    appointment = await get_appointment(session, appointment_id, patient_id)
    current = AppointmentStatus(appointment.status)

    new_status = changes.get("status")
    if new_status is not None:
        new_status = AppointmentStatus(new_status)
        ensure_transition(current, new_status)

    new_start = changes.get("date_time")
    if new_start is not None:
        if current not in BLOCKING_STATUSES:
            raise InvalidTransition(f"Cannot reschedule a {current.value.lower()} appointment")
        new_start = _to_naive_utc(new_start)
        await check_availability(
            session,
            new_start,
            appointment.service_id,
            clock,
            exclude_appointment_id=appointment.id,
            lock=True,
        )
        appointment.date_time = new_start

    if new_status is not None:
        appointment.status = new_status.value

    if "notes" in changes:
        appointment.notes = changes["notes"]

    appointment.updated_at = clock.now()
    session.add(appointment)
    await session.flush()
    await session.refresh(appointment)
    logger.info("Appointment updated: %s", appointment.id)
    return appointment


async def cancel_appointment(
    session: AsyncSession, appointment_id: int, patient_id: int, clock: Clock
) -> Appointment:
    appointment = await get_appointment(session, appointment_id, patient_id)
    ensure_transition(AppointmentStatus(appointment.status), AppointmentStatus.CANCELLED)
    appointment.status = AppointmentStatus.CANCELLED.value
    appointment.updated_at = clock.now()
    session.add(appointment)
    await session.flush()
    await session.refresh(appointment)
    logger.info("Appointment cancelled: %s", appointment.id)
    return appointment
