from typing import Any, Dict, List, Optional
from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator

from clinicflow.schemas.user import not_blank


class MedicalRecordBase(BaseModel):
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    prescriptions: List[Any] = []
    vital_signs: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    follow_up_date: Optional[date] = None


class MedicalRecordCreate(MedicalRecordBase):
    patient_id: str = Field(..., min_length=1)
    doctor_id: str = Field(..., min_length=1)
    visit_date: date
    chief_complaint: str

    @field_validator("chief_complaint")
    @classmethod
    def complaint_not_blank(cls, v: str) -> str:
        return not_blank(v)


class MedicalRecordUpdate(BaseModel):
    visit_date: Optional[date] = None
    chief_complaint: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    prescriptions: Optional[List[Any]] = None
    vital_signs: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    follow_up_date: Optional[date] = None

    @field_validator("chief_complaint")
    @classmethod
    def complaint_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return not_blank(v)


class MedicalRecord(MedicalRecordBase):
    id: str
    patient_id: str
    doctor_id: str
    visit_date: date
    chief_complaint: str
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MedicalRecordStats(BaseModel):
    total_records: int
    unique_patients: int
    by_date: Dict[str, int]
    common_diagnoses: Dict[str, int]
