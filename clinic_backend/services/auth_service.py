import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_backend.core.config import settings
from clinic_backend.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_password,
    verify_password,
)
from clinic_backend.models.patient import Patient, PatientCreate, PatientPublic
from clinic_backend.models.refresh_token import RefreshToken

logger = logging.getLogger(__name__)

TokenResult = tuple[Patient, str, str, int]


async def get_patient_by_email(session: AsyncSession, email: str) -> Patient | None:
    result = await session.execute(select(Patient).where(Patient.email == email.lower()))
    return result.scalar_one_or_none()


async def create_patient(session: AsyncSession, data: PatientCreate) -> Patient:
    patient = Patient(
        email=data.email.lower(),
        full_name=data.full_name,
        phone=data.phone,
        hashed_password=hash_password(data.password),
    )
    session.add(patient)
    await session.flush()
    await session.refresh(patient)
    logger.info("Patient registered: %s", patient.id)
    return patient


def is_admin(patient: Patient) -> bool:
    return patient.email.lower() in settings.admin_emails_list


def patient_to_public(patient: Patient) -> PatientPublic:
    return PatientPublic(
        id=patient.id,
        email=patient.email,
        full_name=patient.full_name,
        phone=patient.phone,
        date_of_birth=patient.date_of_birth,
        address=patient.address,
        is_admin=is_admin(patient),
    )


def make_token_pair(patient_id: int) -> tuple[str, str, int]:
    access = create_access_token(patient_id)
    refresh = create_refresh_token(patient_id)
    expires_in = settings.access_token_expire_minutes * 60
    return access, refresh, expires_in


def _utc_naive() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


async def store_refresh_token(session: AsyncSession, patient_id: int, refresh_token: str) -> None:
    patient_id_str, jti = decode_refresh_token(refresh_token)
    if not patient_id_str or not jti:
        return
    expires_at = _utc_naive() + timedelta(days=settings.refresh_token_expire_days)
    session.add(RefreshToken(patient_id=patient_id, jti=jti, expires_at=expires_at))
    await session.flush()


async def _issue_tokens(session: AsyncSession, patient: Patient) -> TokenResult:
    access, refresh, expires_in = make_token_pair(patient.id)
    await store_refresh_token(session, patient_id=patient.id, refresh_token=refresh)
    return patient, access, refresh, expires_in


async def login_patient(session: AsyncSession, email: str, password: str) -> TokenResult | None:
    patient = await get_patient_by_email(session, email)
    if not patient or not verify_password(password, patient.hashed_password):
        return None
    return await _issue_tokens(session, patient)


async def signup_patient(session: AsyncSession, data: PatientCreate) -> TokenResult | None:
    if await get_patient_by_email(session, data.email):
        return None
    patient = await create_patient(session, data)
    return await _issue_tokens(session, patient)


async def revoke_refresh_token(session: AsyncSession, jti: str) -> None:
    result = await session.execute(select(RefreshToken).where(RefreshToken.jti == jti))
    row = result.scalar_one_or_none()
    if row:
        row.revoked = True
        session.add(row)


async def refresh_tokens(session: AsyncSession, refresh_token: str) -> TokenResult | None:
    """Rotate a refresh token: the presented one is revoked and a new pair issued."""
    patient_id_str, jti = decode_refresh_token(refresh_token)
    if not patient_id_str or not jti:
        return None
    result = await session.execute(
        select(RefreshToken).where(
            RefreshToken.jti == jti,
            RefreshToken.revoked == False,  # noqa: E712
            RefreshToken.expires_at > _utc_naive(),
        )
    )
    token_row = result.scalar_one_or_none()
    if not token_row:
        return None
    patient = await session.get(Patient, int(patient_id_str))
    if not patient:
        return None
    token_row.revoked = True
    session.add(token_row)
    return await _issue_tokens(session, patient)


async def update_patient(session: AsyncSession, patient: Patient, changes: dict) -> Patient:
    for field, value in changes.items():
        setattr(patient, field, value)
    session.add(patient)
    await session.flush()
    await session.refresh(patient)
    logger.info("Patient profile updated: %s", patient.id)
    return patient


async def change_password(
    session: AsyncSession, patient: Patient, current_password: str, new_password: str
) -> bool:
    """Replace the password after checking the current one. Returns False on a wrong current password."""
    if not verify_password(current_password, patient.hashed_password):
        return False
    patient.hashed_password = hash_password(new_password)
    session.add(patient)
    await session.flush()
    logger.info("Patient password changed: %s", patient.id)
    return True
