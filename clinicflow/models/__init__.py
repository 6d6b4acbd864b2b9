from .user import User, Role
from .clinic import Clinic
from .doctor import Doctor
from .patient import Patient
from .appointment import Appointment, AppointmentStatus, AppointmentType
from .medical_record import MedicalRecord

__all__ = [
    "User", "Role", "Clinic", "Doctor", "Patient",
    "Appointment", "AppointmentStatus", "AppointmentType", "MedicalRecord",
]
