from .pagination import Page, PaginationMeta, build_page
from .user import (
    User, RegisterRequest, LoginRequest, RefreshTokenRequest, ProfileUpdate,
    PasswordChange, AuthResponse, AccessTokenResponse,
)
from .appointment import (
    Appointment, AppointmentCreate, AppointmentUpdate, AppointmentStatusUpdate, AppointmentStats,
)
from .patient import Patient, PatientCreate, PatientUpdate, PatientStats
from .doctor import Doctor, DoctorCreate, DoctorUpdate, DoctorStats
from .clinic import Clinic, ClinicCreate, ClinicUpdate, ClinicStats
from .medical_record import MedicalRecord, MedicalRecordCreate, MedicalRecordUpdate, MedicalRecordStats
