import logging
from collections.abc import Iterable, Iterator, Sequence
from datetime import date, datetime, time, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_backend.core.clock import Clock
from clinic_backend.core.config import settings
from clinic_backend.core.errors import InvalidSlotTemplate, SlotTemplateNotFound
from clinic_backend.models.appointment import BLOCKING_STATUSES, Appointment
from clinic_backend.models.service import Service
from clinic_backend.models.slot_template import SlotTemplate
from clinic_backend.services.catalog_service import get_bookable_service

logger = logging.getLogger(__name__)

Interval = tuple[datetime, datetime]


def occupied_interval(start: datetime, duration_minutes: int) -> Interval:
    """Half-open [start, start + duration) during which the service is busy."""
    return start, start + timedelta(minutes=duration_minutes)


def overlaps(a: Interval, b: Interval) -> bool:
    # Half-open intervals: touching ends do not overlap
    return a[0] < b[1] and b[0] < a[1]


def parse_hhmm(value: str) -> time:
    return datetime.strptime(value, "%H:%M").time()


def day_of_week(d: date) -> int:
    """Sunday = 0 ... Saturday = 6."""
    return (d.weekday() + 1) % 7


def iter_slots(
    d: date,
    duration_minutes: int,
    windows: Iterable[tuple[time, time]],
    occupied: Sequence[Interval],
    now: datetime,
    granularity_minutes: int,
) -> Iterator[tuple[datetime, bool]]:
    """Yield (start, available) for every candidate start in the given windows.

    A candidate fits when start + duration stays inside its window. It is available
    when it lies strictly after ``now`` and its occupied interval overlaps nothing
    in ``occupied``. Pure: the same inputs always produce the same sequence.
    """
    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=granularity_minutes)
    for window_start, window_end in windows:
        current = datetime.combine(d, window_start)
        end = datetime.combine(d, window_end)
        while current + duration <= end:
            candidate = occupied_interval(current, duration_minutes)
            available = current > now and not any(overlaps(candidate, o) for o in occupied)
            yield current, available
            current += step


async def get_templates_for_weekday(session: AsyncSession, dow: int) -> list[SlotTemplate]:
    result = await session.execute(
        select(SlotTemplate)
        .where(SlotTemplate.day_of_week == dow, SlotTemplate.is_active == True)  # noqa: E712
        .order_by(SlotTemplate.start_time)
    )
    return list(result.scalars().all())


async def get_occupied_intervals(
    session: AsyncSession,
    service_id: int,
    exclude_appointment_id: int | None = None,
    start_inclusive: datetime | None = None,
    end_exclusive: datetime | None = None,
) -> list[Interval]:
    """Occupied intervals of PENDING/CONFIRMED appointments for a service.

    Each interval uses the duration of the appointment's own service as it is now,
    not a duration captured at booking time. When a range is given, appointments
    starting up to a day before it are included so intervals reaching into the
    range from the previous day are kept.
    """
    q = (
        select(Appointment.date_time, Service.duration_minutes)
        .join(Service, Service.id == Appointment.service_id)
        .where(
            Appointment.service_id == service_id,
            Appointment.status.in_([s.value for s in BLOCKING_STATUSES]),
        )
    )
    if exclude_appointment_id is not None:
        q = q.where(Appointment.id != exclude_appointment_id)
    if start_inclusive is not None:
        q = q.where(Appointment.date_time >= start_inclusive - timedelta(days=1))
    if end_exclusive is not None:
        q = q.where(Appointment.date_time < end_exclusive)
    result = await session.execute(q)
    return [occupied_interval(start, duration) for start, duration in result.all()]


async def get_available_slots_for_date(
    session: AsyncSession, d: date, service_id: int, clock: Clock
) -> tuple[Service, list[tuple[datetime, bool]]]:
    """Returns the service and its (slot_start_utc, available) pairs on the given date."""
    service = await get_bookable_service(session, service_id)
    templates = await get_templates_for_weekday(session, day_of_week(d))
    if not templates:
        return service, []
    day_start = datetime.combine(d, time.min)
    occupied = await get_occupied_intervals(
        session,
        service_id,
        start_inclusive=day_start,
        end_exclusive=day_start + timedelta(days=1),
    )
    windows = [(parse_hhmm(t.start_time), parse_hhmm(t.end_time)) for t in templates]
    slots = list(
        iter_slots(
            d,
            service.duration_minutes,
            windows,
            occupied,
            clock.now(),
            settings.slot_granularity_minutes,
        )
    )
    return service, slots


# --- Slot template management ---


def _validate_window(start_time: str, end_time: str) -> None:
    if parse_hhmm(end_time) <= parse_hhmm(start_time):
        raise InvalidSlotTemplate()


async def list_templates(session: AsyncSession, day: int | None = None) -> list[SlotTemplate]:
    q = select(SlotTemplate).order_by(SlotTemplate.day_of_week, SlotTemplate.start_time)
    if day is not None:
        q = q.where(SlotTemplate.day_of_week == day)
    result = await session.execute(q)
    return list(result.scalars().all())


async def get_template(session: AsyncSession, template_id: int) -> SlotTemplate:
    template = await session.get(SlotTemplate, template_id)
    if not template:
        raise SlotTemplateNotFound()
    return template


async def create_template(
    session: AsyncSession, day: int, start_time: str, end_time: str, is_active: bool = True
) -> SlotTemplate:
    _validate_window(start_time, end_time)
    template = SlotTemplate(
        day_of_week=day, start_time=start_time, end_time=end_time, is_active=is_active
    )
    session.add(template)
    await session.flush()
    await session.refresh(template)
    logger.info("Slot template created: %s day=%d %s-%s", template.id, day, start_time, end_time)
    return template


async def update_template(session: AsyncSession, template_id: int, changes: dict) -> SlotTemplate:
    template = await get_template(session, template_id)
    for field, value in changes.items():
        setattr(template, field, value)
    _validate_window(template.start_time, template.end_time)
    session.add(template)
    await session.flush()
    await session.refresh(template)
    logger.info("Slot template updated: %s", template.id)
    return template


async def delete_template(session: AsyncSession, template_id: int) -> None:
    template = await get_template(session, template_id)
    await session.delete(template)
    await session.flush()
    logger.info("Slot template deleted: %s", template_id)
