from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_backend.api.deps import get_admin_patient, get_clock, get_current_patient, get_session
from clinic_backend.api.schemas.appointment import (
    BookAppointmentRequest,
    CheckAvailabilityRequest,
    CheckAvailabilityResponse,
    UpdateAppointmentRequest,
)
from clinic_backend.core.clock import Clock
from clinic_backend.models.appointment import (
    Appointment,
    AppointmentAdminPublic,
    AppointmentPublic,
    AppointmentStatus,
)
from clinic_backend.models.patient import Patient
from clinic_backend.services.appointment_service import (
    cancel_appointment,
    check_availability,
    create_appointment,
    get_appointment,
    list_all_appointments_with_patients,
    list_appointments_for_patient,
    update_appointment,
)

router = APIRouter(prefix="/appointments", tags=["appointments"])


def _to_public(a: Appointment) -> AppointmentPublic:
    return AppointmentPublic(
        id=a.id,
        patient_id=a.patient_id,
        service_id=a.service_id,
        date_time=a.date_time,
        status=AppointmentStatus(a.status),
        notes=a.notes,
        created_at=a.created_at,
    )


def _to_admin_public(a: Appointment, patient: Patient) -> AppointmentAdminPublic:
    return AppointmentAdminPublic(
        **_to_public(a).model_dump(),
        patient_email=patient.email,
        patient_full_name=patient.full_name,
    )


@router.post("/check", response_model=CheckAvailabilityResponse)
async def check_slot(
    body: CheckAvailabilityRequest,
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    current_patient: Patient = Depends(get_current_patient),
) -> CheckAvailabilityResponse:
    """Succeeds when the start can be booked; otherwise the booking error is returned."""
    await check_availability(
        session,
        body.date_time,
        body.service_id,
        clock,
        exclude_appointment_id=body.exclude_appointment_id,
    )
    return CheckAvailabilityResponse()


@router.post("", response_model=AppointmentPublic, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    body: BookAppointmentRequest,
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    current_patient: Patient = Depends(get_current_patient),
) -> AppointmentPublic:
    appointment = await create_appointment(
        session,
        current_patient.id,
        body.service_id,
        body.date_time,
        clock,
        notes=body.notes,
    )
    return _to_public(appointment)


@router.get("", response_model=list[AppointmentPublic])
async def list_my_appointments(
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    service_id: int | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    session: AsyncSession = Depends(get_session),
    current_patient: Patient = Depends(get_current_patient),
) -> list[AppointmentPublic]:
    appointments = await list_appointments_for_patient(
        session,
        current_patient.id,
        status=status_filter,
        service_id=service_id,
        start_date=start_date,
        end_date=end_date,
    )
    return [_to_public(a) for a in appointments]


@router.get("/admin", response_model=list[AppointmentAdminPublic])
async def list_all_appointments_admin(
    session: AsyncSession = Depends(get_session),
    _admin: Patient = Depends(get_admin_patient),
) -> list[AppointmentAdminPublic]:
    """Admin endpoint: list all appointments with patient details."""
    rows = await list_all_appointments_with_patients(session)
    return [_to_admin_public(a, p) for a, p in rows]


@router.get("/{appointment_id}", response_model=AppointmentPublic)
async def get_my_appointment(
    appointment_id: int,
    session: AsyncSession = Depends(get_session),
    current_patient: Patient = Depends(get_current_patient),
) -> AppointmentPublic:
    return _to_public(await get_appointment(session, appointment_id, current_patient.id))


@router.put("/{appointment_id}", response_model=AppointmentPublic)
async def update_my_appointment(
    appointment_id: int,
    body: UpdateAppointmentRequest,
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    current_patient: Patient = Depends(get_current_patient),
) -> AppointmentPublic:
    appointment = await update_appointment(
        session,
        appointment_id,
        current_patient.id,
        body.model_dump(exclude_unset=True),
        clock,
    )
    return _to_public(appointment)


@router.delete("/{appointment_id}", response_model=AppointmentPublic)
async def cancel_my_appointment(
    appointment_id: int,
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    current_patient: Patient = Depends(get_current_patient),
) -> AppointmentPublic:
    return _to_public(await cancel_appointment(session, appointment_id, current_patient.id, clock))
