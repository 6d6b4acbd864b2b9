import re
from typing import Dict, Optional
from datetime import date, datetime, time
from pydantic import BaseModel, Field, field_serializer, field_validator

from clinicflow.models.appointment import (
    AppointmentStatus,
    AppointmentType,
    MAX_DURATION_MINUTES,
    MIN_DURATION_MINUTES,
)

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")


def parse_appointment_time(value) -> time:
    """Accept ``H:MM``/``HH:MM`` strings (minute precision) or ``datetime.time``."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if isinstance(value, str):
        match = TIME_PATTERN.match(value.strip())
        if match:
            return time(int(match.group(1)), int(match.group(2)))
    raise ValueError("Valid appointment time is required (HH:MM)")


class AppointmentCreate(BaseModel):
    patient_id: str = Field(..., min_length=1)
    doctor_id: str = Field(..., min_length=1)
    clinic_id: Optional[str] = None
    appointment_date: date
    appointment_time: time
    duration_minutes: int = Field(30, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)
    type: AppointmentType = AppointmentType.CONSULTATION
    reason: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("appointment_time", mode="before")
    @classmethod
    def validate_time(cls, v):
        return parse_appointment_time(v)


class AppointmentUpdate(BaseModel):
    doctor_id: Optional[str] = Field(None, min_length=1)
    clinic_id: Optional[str] = None
    appointment_date: Optional[date] = None
    appointment_time: Optional[time] = None
    duration_minutes: Optional[int] = Field(None, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)
    type: Optional[AppointmentType] = None
    status: Optional[AppointmentStatus] = None
    reason: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("appointment_time", mode="before")
    @classmethod
    def validate_time(cls, v):
        if v is None:
            return v
        return parse_appointment_time(v)


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class Appointment(BaseModel):
    id: str
    patient_id: str
    doctor_id: str
    clinic_id: Optional[str] = None
    appointment_date: date
    appointment_time: time
    duration_minutes: int
    type: AppointmentType
    status: AppointmentStatus
    reason: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @field_serializer("appointment_time")
    def serialize_time(self, value: time) -> str:
        return value.strftime("%H:%M")


class AppointmentStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_type: Dict[str, int]
    by_date: Dict[str, int]
