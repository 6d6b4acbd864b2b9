from enum import Enum
from typing import Dict, FrozenSet

from sqlalchemy import Column, Integer, String, Date, Time, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import relationship

from clinicflow.db.base import Base
from clinicflow.models.user import new_id
from clinicflow.utils.timezone import utcnow


class AppointmentType(str, Enum):
    CONSULTATION = "consultation"
    FOLLOW_UP = "follow-up"
    EMERGENCY = "emergency"
    ROUTINE = "routine"
    SURGERY = "surgery"


class AppointmentStatus(str, Enum):
    """Appointment lifecycle.

    State machine:
    - scheduled -> confirmed, cancelled, no-show
    - confirmed -> in-progress, cancelled, no-show
    - in-progress -> completed, cancelled
    - completed, cancelled, no-show -> (final states)
    """

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"

    def can_transition_to(self, new_status: "AppointmentStatus") -> bool:
        return new_status in TRANSITIONS[self]

    def is_active(self) -> bool:
        """Does the appointment still occupy the doctor's time?"""
        return self in ACTIVE_STATUSES

    def is_final(self) -> bool:
        return not TRANSITIONS[self]


TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {AppointmentStatus.IN_PROGRESS, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
    ),
    AppointmentStatus.IN_PROGRESS: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

ACTIVE_STATUSES: FrozenSet[AppointmentStatus] = frozenset(
    {AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED, AppointmentStatus.IN_PROGRESS}
)

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 240


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_doctor_interval", "doctor_id", "starts_at", "ends_at"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(String(36), ForeignKey("doctors.id"), nullable=False, index=True)
    clinic_id = Column(String(36), ForeignKey("clinics.id"), nullable=True, index=True)

    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=30)

    # Derived from date/time/duration by the scheduling engine; used for overlap checks
    starts_at = Column(DateTime, nullable=False)
    ends_at = Column(DateTime, nullable=False)

    type = Column(String, nullable=False, default=AppointmentType.CONSULTATION.value)
    status = Column(String, nullable=False, default=AppointmentStatus.SCHEDULED.value, index=True)

    reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    patient = relationship("Patient", foreign_keys=[patient_id])
    doctor = relationship("Doctor", foreign_keys=[doctor_id])
    clinic = relationship("Clinic", foreign_keys=[clinic_id])

    @property
    def slot_label(self) -> str:
        return (
            f"{self.appointment_date.isoformat()} "
            f"{self.starts_at.strftime('%H:%M')}-{self.ends_at.strftime('%H:%M')}"
        )
