from .appointment import appointment
from .user import user
from .patient import patient
from .doctor import doctor
from .clinic import clinic
from .medical_record import medical_record

__all__ = ["user", "patient", "doctor", "clinic", "appointment", "medical_record"]
