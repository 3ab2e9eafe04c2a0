from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_backend.api.deps import get_current_patient, get_session, refresh_header
from clinic_backend.api.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RefreshRequest,
    SignupRequest,
    TokenPair,
)
from clinic_backend.core.security import decode_refresh_token
from clinic_backend.models.appointment import AppointmentStatus
from clinic_backend.models.patient import Patient, PatientCreate, PatientPublic, PatientStatistics
from clinic_backend.services.appointment_service import count_appointments_by_status
from clinic_backend.services.auth_service import (
    change_password,
    login_patient,
    patient_to_public,
    refresh_tokens,
    revoke_refresh_token,
    signup_patient,
    update_patient,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenPair)
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(get_session),
) -> TokenPair:
    pair = await login_patient(session, body.email, body.password)
    if not pair:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    _, access, refresh, expires_in = pair
    return TokenPair(access_token=access, refresh_token=refresh, expires_in=expires_in)


@router.post("/signup", response_model=TokenPair, status_code=status.HTTP_201_CREATED)
async def signup(
    body: SignupRequest,
    session: AsyncSession = Depends(get_session),
) -> TokenPair:
    pair = await signup_patient(
        session,
        PatientCreate(
            email=body.email,
            password=body.password,
            full_name=body.full_name,
            phone=body.phone,
        ),
    )
    if not pair:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email already exists",
        )
    _, access, refresh, expires_in = pair
    return TokenPair(access_token=access, refresh_token=refresh, expires_in=expires_in)


@router.post("/refresh", response_model=TokenPair)
async def refresh(
    session: AsyncSession = Depends(get_session),
    x_refresh_token: str | None = Depends(refresh_header),
    body: RefreshRequest | None = None,
) -> TokenPair:
    token = x_refresh_token or (body.refresh_token if body else None)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token required (header X-Refresh-Token or body refresh_token)",
        )
    pair = await refresh_tokens(session, token)
    if not pair:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )
    _, access, new_refresh, expires_in = pair
    return TokenPair(access_token=access, refresh_token=new_refresh, expires_in=expires_in)


@router.post("/logout")
async def logout(
    session: AsyncSession = Depends(get_session),
    x_refresh_token: str | None = Depends(refresh_header),
    body: RefreshRequest | None = None,
) -> dict:
    token = x_refresh_token or (body.refresh_token if body else None)
    if token:
        _, jti = decode_refresh_token(token)
        if jti:
            await revoke_refresh_token(session, jti)
    return {"message": "Logged out"}


@router.get("/me", response_model=PatientPublic)
async def me(current_patient: Patient = Depends(get_current_patient)) -> PatientPublic:
    return patient_to_public(current_patient)


@router.patch("/me", response_model=PatientPublic)
async def update_me(
    body: ProfileUpdateRequest,
    session: AsyncSession = Depends(get_session),
    current_patient: Patient = Depends(get_current_patient),
) -> PatientPublic:
    changes = body.model_dump(exclude_unset=True)
    patient = await update_patient(session, current_patient, changes)
    return patient_to_public(patient)


@router.get("/me/statistics", response_model=PatientStatistics)
async def my_statistics(
    session: AsyncSession = Depends(get_session),
    current_patient: Patient = Depends(get_current_patient),
) -> PatientStatistics:
    by_status = await count_appointments_by_status(session, current_patient.id)
    return PatientStatistics(
        total_appointments=sum(by_status.values()),
        completed_appointments=by_status.get(AppointmentStatus.COMPLETED.value, 0),
        by_status=by_status,
    )


@router.post("/change-password")
async def change_my_password(
    body: ChangePasswordRequest,
    session: AsyncSession = Depends(get_session),
    current_patient: Patient = Depends(get_current_patient),
) -> dict:
    if not await change_password(session, current_patient, body.current_password, body.new_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )
    return {"message": "Password changed successfully"}
