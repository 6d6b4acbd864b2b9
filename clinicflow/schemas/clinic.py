from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, field_validator

from clinicflow.schemas.appointment import AppointmentStats
from clinicflow.schemas.user import not_blank


class ClinicBase(BaseModel):
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    website: Optional[str] = None
    description: Optional[str] = None
    services: List[str] = []
    operating_hours: Optional[Dict[str, Any]] = None
    is_active: bool = True


class ClinicCreate(ClinicBase):
    name: str
    address: str

    @field_validator("name", "address")
    @classmethod
    def required_not_blank(cls, v: str) -> str:
        return not_blank(v)


class ClinicUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    website: Optional[str] = None
    description: Optional[str] = None
    services: Optional[List[str]] = None
    operating_hours: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None

    @field_validator("name", "address")
    @classmethod
    def required_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return not_blank(v)


class Clinic(ClinicBase):
    id: str
    name: str
    address: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ClinicStats(BaseModel):
    total_doctors: int
    appointments: AppointmentStats
