from datetime import datetime, timedelta, timezone

import pytest

from clinic_backend.core.errors import (
    AppointmentNotFound,
    InThePast,
    InvalidTransition,
    ServiceInactive,
    SlotUnavailable,
)
from clinic_backend.models.appointment import AppointmentStatus
from clinic_backend.services.appointment_service import (
    cancel_appointment,
    create_appointment,
    ensure_transition,
    get_appointment,
    list_appointments_for_patient,
    update_appointment,
)
from clinic_backend.services.slot_service import occupied_interval, overlaps
from conftest import make_appointment, make_patient, make_service


def _at(hour: int, minute: int = 0, day: int = 2) -> datetime:
    return datetime(2026, 3, day, hour, minute)


@pytest.mark.parametrize(
    "current,target",
    [
        (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED),
        (AppointmentStatus.PENDING, AppointmentStatus.CANCELLED),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.NO_SHOW),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.CONFIRMED),
    ],
)
def test_allowed_transitions(current, target):
    ensure_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (AppointmentStatus.PENDING, AppointmentStatus.COMPLETED),
        (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED),
        (AppointmentStatus.CANCELLED, AppointmentStatus.CANCELLED),
        (AppointmentStatus.CANCELLED, AppointmentStatus.CONFIRMED),
        (AppointmentStatus.NO_SHOW, AppointmentStatus.COMPLETED),
        (AppointmentStatus.COMPLETED, AppointmentStatus.PENDING),
    ],
)
def test_rejected_transitions(current, target):
    with pytest.raises(InvalidTransition):
        ensure_transition(current, target)


async def test_create_enters_pending(session, clock):
    patient = await make_patient(session)
    service = await make_service(session)
    appointment = await create_appointment(
        session, patient.id, service.id, _at(9), clock, notes="first visit"
    )
    assert appointment.id is not None
    assert appointment.status == AppointmentStatus.PENDING
    assert appointment.notes == "first visit"


async def test_create_converts_aware_datetimes_to_naive_utc(session, clock):
    patient = await make_patient(session)
    service = await make_service(session)
    aware = datetime(2026, 3, 2, 12, 0, tzinfo=timezone(timedelta(hours=3)))
    appointment = await create_appointment(session, patient.id, service.id, aware, clock)
    assert appointment.date_time == _at(9)


async def test_create_rejects_past_and_inactive(session, clock):
    patient = await make_patient(session)
    service = await make_service(session)
    with pytest.raises(InThePast):
        await create_appointment(session, patient.id, service.id, _at(9, day=1), clock)
    inactive = await make_service(session, is_active=False, name="Closed")
    with pytest.raises(ServiceInactive):
        await create_appointment(session, patient.id, inactive.id, _at(9), clock)


async def test_accepted_bookings_never_overlap(session, clock):
    patient = await make_patient(session)
    service = await make_service(session, duration_minutes=50)
    candidates = [_at(9), _at(9, 30), _at(9, 50), _at(10, 20), _at(10, 40), _at(11, 30), _at(8, 10)]
    accepted = []
    for start in candidates:
        try:
            accepted.append(await create_appointment(session, patient.id, service.id, start, clock))
        except SlotUnavailable:
            pass
    assert [a.date_time for a in accepted] == [_at(9), _at(9, 50), _at(10, 40), _at(11, 30), _at(8, 10)]
    intervals = [occupied_interval(a.date_time, service.duration_minutes) for a in accepted]
    for i, a in enumerate(intervals):
        for b in intervals[i + 1:]:
            assert not overlaps(a, b)


async def test_reschedule_overlapping_only_itself(session, clock):
    patient = await make_patient(session)
    service = await make_service(session, duration_minutes=50)
    appointment = await create_appointment(session, patient.id, service.id, _at(9), clock)
    moved = await update_appointment(
        session, appointment.id, patient.id, {"date_time": _at(9, 30)}, clock
    )
    assert moved.date_time == _at(9, 30)
    assert moved.status == AppointmentStatus.PENDING


async def test_reschedule_into_another_booking_fails(session, clock):
    patient = await make_patient(session)
    service = await make_service(session, duration_minutes=50)
    first = await create_appointment(session, patient.id, service.id, _at(9), clock)
    second = await create_appointment(session, patient.id, service.id, _at(11), clock)
    with pytest.raises(SlotUnavailable):
        await update_appointment(session, second.id, patient.id, {"date_time": _at(9, 40)}, clock)
    with pytest.raises(InThePast):
        await update_appointment(session, first.id, patient.id, {"date_time": _at(9, day=1)}, clock)


async def test_reschedule_requires_pending_or_confirmed(session, clock):
    patient = await make_patient(session)
    service = await make_service(session)
    done = await make_appointment(session, patient, service, _at(9), status="COMPLETED")
    with pytest.raises(InvalidTransition):
        await update_appointment(session, done.id, patient.id, {"date_time": _at(14)}, clock)


async def test_status_update_skips_slot_checks(session, clock):
    patient = await make_patient(session)
    service = await make_service(session)
    appointment = await create_appointment(session, patient.id, service.id, _at(9), clock)
    clock.current = _at(18)  # the appointment now lies in the past
    confirmed = await update_appointment(
        session, appointment.id, patient.id, {"status": AppointmentStatus.CONFIRMED}, clock
    )
    assert confirmed.status == AppointmentStatus.CONFIRMED
    completed = await update_appointment(
        session, appointment.id, patient.id, {"status": "COMPLETED", "notes": None}, clock
    )
    assert completed.status == AppointmentStatus.COMPLETED
    assert completed.notes is None


async def test_invalid_status_update(session, clock):
    patient = await make_patient(session)
    service = await make_service(session)
    appointment = await create_appointment(session, patient.id, service.id, _at(9), clock)
    with pytest.raises(InvalidTransition):
        await update_appointment(
            session, appointment.id, patient.id, {"status": AppointmentStatus.COMPLETED}, clock
        )


async def test_cancel_frees_the_slot(session, clock):
    patient = await make_patient(session)
    service = await make_service(session, duration_minutes=50)
    appointment = await create_appointment(session, patient.id, service.id, _at(9), clock)
    cancelled = await cancel_appointment(session, appointment.id, patient.id, clock)
    assert cancelled.status == AppointmentStatus.CANCELLED
    again = await create_appointment(session, patient.id, service.id, _at(9, 30), clock)
    assert again.status == AppointmentStatus.PENDING


@pytest.mark.parametrize("status", ["CANCELLED", "COMPLETED"])
async def test_cancel_terminal_appointment_fails(session, clock, status):
    patient = await make_patient(session)
    service = await make_service(session)
    appointment = await make_appointment(session, patient, service, _at(9), status=status)
    with pytest.raises(InvalidTransition):
        await cancel_appointment(session, appointment.id, patient.id, clock)


async def test_timestamps_follow_the_injected_clock(session, clock):
    patient = await make_patient(session)
    service = await make_service(session)
    appointment = await create_appointment(session, patient.id, service.id, _at(9), clock)
    assert appointment.created_at == appointment.updated_at == clock.now()

    clock.current = _at(8, day=2)
    confirmed = await update_appointment(
        session, appointment.id, patient.id, {"status": "CONFIRMED"}, clock
    )
    assert confirmed.updated_at == _at(8, day=2)

    clock.current = _at(8, 30, day=2)
    cancelled = await cancel_appointment(session, appointment.id, patient.id, clock)
    assert cancelled.updated_at == _at(8, 30, day=2)
    assert cancelled.created_at == datetime(2026, 3, 1, 12, 0)


async def test_other_patients_appointment_is_not_found(session, clock):
    owner = await make_patient(session)
    stranger = await make_patient(session, email="stranger@clinicmail.com")
    service = await make_service(session)
    appointment = await create_appointment(session, owner.id, service.id, _at(9), clock)
    with pytest.raises(AppointmentNotFound):
        await get_appointment(session, appointment.id, stranger.id)
    with pytest.raises(AppointmentNotFound):
        await cancel_appointment(session, appointment.id, stranger.id, clock)


async def test_list_filters(session, clock):
    patient = await make_patient(session)
    service = await make_service(session, duration_minutes=30)
    other = await make_service(session, duration_minutes=30, name="Other")
    await make_appointment(session, patient, service, _at(9), status="PENDING")
    await make_appointment(session, patient, service, _at(9, day=3), status="CONFIRMED")
    await make_appointment(session, patient, other, _at(10, day=4), status="PENDING")

    everything = await list_appointments_for_patient(session, patient.id)
    assert [a.date_time for a in everything] == [_at(9), _at(9, day=3), _at(10, day=4)]

    pending = await list_appointments_for_patient(session, patient.id, status=AppointmentStatus.PENDING)
    assert len(pending) == 2

    by_service = await list_appointments_for_patient(session, patient.id, service_id=other.id)
    assert [a.service_id for a in by_service] == [other.id]

    window = await list_appointments_for_patient(
        session, patient.id, start_date=_at(0, day=3).date(), end_date=_at(0, day=3).date()
    )
    assert [a.date_time for a in window] == [_at(9, day=3)]
