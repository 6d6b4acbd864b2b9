from typing import Any, Dict, List, Literal, Optional
from datetime import date, datetime
from pydantic import BaseModel, EmailStr, field_validator

from clinicflow.schemas.user import not_blank

Gender = Literal["male", "female", "other"]
BloodType = Literal["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]


class PatientBase(BaseModel):
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    emergency_contact: Optional[Dict[str, Any]] = None
    medical_history: List[str] = []
    allergies: List[str] = []
    blood_type: Optional[BloodType] = None


class PatientCreate(PatientBase):
    first_name: str
    last_name: str
    date_of_birth: date
    gender: Gender

    @field_validator("first_name", "last_name")
    @classmethod
    def names_not_blank(cls, v: str) -> str:
        return not_blank(v)


class PatientUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    emergency_contact: Optional[Dict[str, Any]] = None
    medical_history: Optional[List[str]] = None
    allergies: Optional[List[str]] = None
    blood_type: Optional[BloodType] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def names_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return not_blank(v)


class Patient(PatientBase):
    id: str
    first_name: str
    last_name: str
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    is_active: bool
    deleted_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PatientStats(BaseModel):
    total_appointments: int
    appointments_by_status: Dict[str, int]
    total_medical_records: int
    last_appointment_date: Optional[date] = None
