from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_backend.core.clock import Clock, system_clock
from clinic_backend.core.db import get_session
from clinic_backend.core.security import decode_access_token
from clinic_backend.models.patient import Patient
from clinic_backend.services.auth_service import is_admin

security = HTTPBearer(auto_error=False)

__all__ = ["get_session", "get_clock", "get_current_patient", "get_admin_patient", "refresh_header"]


def get_clock() -> Clock:
    """Injectable time source; tests override this dependency with a fixed clock."""
    return system_clock


def refresh_header(x_refresh_token: str | None = Header(default=None, alias="X-Refresh-Token")) -> str | None:
    """Extract X-Refresh-Token header for logout/refresh endpoints."""
    return x_refresh_token


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_patient(
    session: AsyncSession = Depends(get_session),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Patient:
    if not credentials or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Missing or invalid authorization header")
    patient_id = decode_access_token(credentials.credentials)
    if not patient_id:
        raise _unauthorized("Invalid or expired token")
    try:
        pid = int(patient_id)
    except ValueError:
        raise _unauthorized("Invalid token")
    patient = await session.get(Patient, pid)
    if not patient:
        raise _unauthorized("Patient not found")
    return patient


async def get_admin_patient(current_patient: Patient = Depends(get_current_patient)) -> Patient:
    if not is_admin(current_patient):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to manage clinic configuration",
        )
    return current_patient
