from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator

from clinicflow.schemas.appointment import AppointmentStats
from clinicflow.schemas.medical_record import MedicalRecordStats
from clinicflow.schemas.user import not_blank


class DoctorBase(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    qualifications: List[str] = []
    experience_years: Optional[int] = Field(None, ge=0)
    clinic_id: Optional[str] = None
    availability: Optional[Dict[str, Any]] = None
    consultation_fee: Optional[float] = Field(None, ge=0)
    bio: Optional[str] = None


class DoctorCreate(DoctorBase):
    user_id: Optional[str] = None
    specialization: str
    license_number: str

    @field_validator("specialization", "license_number")
    @classmethod
    def required_not_blank(cls, v: str) -> str:
        return not_blank(v)


class DoctorUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    specialization: Optional[str] = None
    license_number: Optional[str] = None
    qualifications: Optional[List[str]] = None
    experience_years: Optional[int] = Field(None, ge=0)
    clinic_id: Optional[str] = None
    availability: Optional[Dict[str, Any]] = None
    consultation_fee: Optional[float] = Field(None, ge=0)
    bio: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("specialization", "license_number")
    @classmethod
    def required_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return not_blank(v)


class Doctor(DoctorBase):
    id: str
    user_id: Optional[str] = None
    specialization: Optional[str] = None
    license_number: Optional[str] = None
    full_name: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DoctorStats(BaseModel):
    appointments: AppointmentStats
    medical_records: MedicalRecordStats
