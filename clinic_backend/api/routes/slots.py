from datetime import date, timedelta

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_backend.api.deps import get_admin_patient, get_clock, get_session
from clinic_backend.api.schemas.appointment import AvailableSlotsResponse, SlotInfo
from clinic_backend.api.schemas.catalog import SlotTemplateCreateRequest, SlotTemplateUpdateRequest
from clinic_backend.core.clock import Clock
from clinic_backend.models.patient import Patient
from clinic_backend.models.slot_template import SlotTemplate, SlotTemplatePublic
from clinic_backend.services.slot_service import (
    create_template,
    delete_template,
    get_available_slots_for_date,
    list_templates,
    update_template,
)

router = APIRouter(prefix="/slots", tags=["slots"])


def _template_public(t: SlotTemplate) -> SlotTemplatePublic:
    return SlotTemplatePublic.model_validate(t, from_attributes=True)


@router.get("/available", response_model=AvailableSlotsResponse)
async def available_slots(
    date_param: date = Query(..., alias="date"),
    service_id: int = Query(...),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> AvailableSlotsResponse:
    """Return every candidate start (UTC) for the service on the given date, with availability."""
    service, slots_with_availability = await get_available_slots_for_date(
        session, date_param, service_id, clock
    )
    duration = timedelta(minutes=service.duration_minutes)
    return AvailableSlotsResponse(
        date=date_param.isoformat(),
        service_id=service_id,
        duration_minutes=service.duration_minutes,
        slots=[
            SlotInfo(time=s.strftime("%H:%M"), start_utc=s, end_utc=s + duration, available=avail)
            for s, avail in slots_with_availability
        ],
    )


@router.get("/templates", response_model=list[SlotTemplatePublic])
async def get_templates(
    day_of_week: int | None = Query(None, ge=0, le=6),
    session: AsyncSession = Depends(get_session),
    _admin: Patient = Depends(get_admin_patient),
) -> list[SlotTemplatePublic]:
    return [_template_public(t) for t in await list_templates(session, day_of_week)]


@router.post("/templates", response_model=SlotTemplatePublic, status_code=status.HTTP_201_CREATED)
async def add_template(
    body: SlotTemplateCreateRequest,
    session: AsyncSession = Depends(get_session),
    _admin: Patient = Depends(get_admin_patient),
) -> SlotTemplatePublic:
    template = await create_template(
        session, body.day_of_week, body.start_time, body.end_time, body.is_active
    )
    return _template_public(template)


@router.patch("/templates/{template_id}", response_model=SlotTemplatePublic)
async def edit_template(
    template_id: int,
    body: SlotTemplateUpdateRequest,
    session: AsyncSession = Depends(get_session),
    _admin: Patient = Depends(get_admin_patient),
) -> SlotTemplatePublic:
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    return _template_public(await update_template(session, template_id, changes))


@router.delete("/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_template(
    template_id: int,
    session: AsyncSession = Depends(get_session),
    _admin: Patient = Depends(get_admin_patient),
) -> None:
    await delete_template(session, template_id)
