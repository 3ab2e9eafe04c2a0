from datetime import datetime

from pydantic import BaseModel

from clinic_backend.models.appointment import AppointmentStatus


class SlotInfo(BaseModel):
    time: str  # HH:MM
    start_utc: datetime
    end_utc: datetime
    available: bool


class AvailableSlotsResponse(BaseModel):
    date: str  # YYYY-MM-DD
    service_id: int
    duration_minutes: int
    slots: list[SlotInfo]


class BookAppointmentRequest(BaseModel):
    service_id: int
    date_time: datetime
    notes: str | None = None


class UpdateAppointmentRequest(BaseModel):
    date_time: datetime | None = None
    status: AppointmentStatus | None = None
    notes: str | None = None


class CheckAvailabilityRequest(BaseModel):
    service_id: int
    date_time: datetime
    exclude_appointment_id: int | None = None


class CheckAvailabilityResponse(BaseModel):
    available: bool = True
