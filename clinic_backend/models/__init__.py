from clinic_backend.models.patient import Patient, PatientCreate, PatientPublic, PatientStatistics
from clinic_backend.models.refresh_token import RefreshToken
from clinic_backend.models.service import Service, ServicePublic
from clinic_backend.models.slot_template import SlotTemplate, SlotTemplatePublic
from clinic_backend.models.appointment import (
    Appointment,
    AppointmentAdminPublic,
    AppointmentPublic,
    AppointmentStatus,
)

__all__ = [
    "Patient",
    "PatientCreate",
    "PatientPublic",
    "PatientStatistics",
    "RefreshToken",
    "Service",
    "ServicePublic",
    "SlotTemplate",
    "SlotTemplatePublic",
    "Appointment",
    "AppointmentAdminPublic",
    "AppointmentPublic",
    "AppointmentStatus",
]
