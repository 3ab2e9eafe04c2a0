from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_backend.api.deps import get_admin_patient, get_session
from clinic_backend.api.schemas.catalog import ServiceCreateRequest, ServiceUpdateRequest
from clinic_backend.models.patient import Patient
from clinic_backend.models.service import Service, ServicePublic
from clinic_backend.services.catalog_service import (
    create_service,
    deactivate_service,
    get_service,
    list_services,
    update_service,
)

router = APIRouter(prefix="/services", tags=["services"])


def _to_public(s: Service) -> ServicePublic:
    return ServicePublic.model_validate(s, from_attributes=True)


@router.get("", response_model=list[ServicePublic])
async def get_services(
    include_inactive: bool = Query(False),
    session: AsyncSession = Depends(get_session),
) -> list[ServicePublic]:
    return [_to_public(s) for s in await list_services(session, include_inactive)]


@router.get("/{service_id}", response_model=ServicePublic)
async def get_service_by_id(
    service_id: int,
    session: AsyncSession = Depends(get_session),
) -> ServicePublic:
    return _to_public(await get_service(session, service_id))


@router.post("", response_model=ServicePublic, status_code=201)
async def add_service(
    body: ServiceCreateRequest,
    session: AsyncSession = Depends(get_session),
    _admin: Patient = Depends(get_admin_patient),
) -> ServicePublic:
    return _to_public(await create_service(session, body.model_dump()))


@router.patch("/{service_id}", response_model=ServicePublic)
async def edit_service(
    service_id: int,
    body: ServiceUpdateRequest,
    session: AsyncSession = Depends(get_session),
    _admin: Patient = Depends(get_admin_patient),
) -> ServicePublic:
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    return _to_public(await update_service(session, service_id, changes))


@router.delete("/{service_id}", response_model=ServicePublic)
async def remove_service(
    service_id: int,
    session: AsyncSession = Depends(get_session),
    _admin: Patient = Depends(get_admin_patient),
) -> ServicePublic:
    """Soft delete: the service stays in the catalog as inactive."""
    return _to_public(await deactivate_service(session, service_id))
