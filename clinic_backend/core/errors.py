"""Booking domain errors.

Every error here is a per-request validation failure: the handler registered in
``main.py`` renders it as a 4xx JSON response and nothing retries it.
"""
from fastapi import status


class BookingError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Booking request rejected"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    @property
    def code(self) -> str:
        return type(self).__name__


class ServiceNotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Service not found"


class ServiceInactive(BookingError):
    default_detail = "Service is not active"


class ServiceInUse(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Service has active appointments"


class SlotUnavailable(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Time slot is not available"


class InThePast(BookingError):
    default_detail = "Cannot book an appointment in the past"


class InvalidTransition(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Appointment status change not allowed"


class AppointmentNotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Appointment not found"


class SlotTemplateNotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Slot template not found"


class InvalidSlotTemplate(BookingError):
    default_detail = "Slot template end time must be after its start time"
