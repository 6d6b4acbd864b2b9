from sqlalchemy import Column, String, Integer, Boolean, Float, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from clinicflow.db.base import Base
from clinicflow.models.user import new_id
from clinicflow.utils.timezone import utcnow


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, unique=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    email = Column(String, nullable=True, index=True)
    specialization = Column(String, nullable=True, index=True)  # e.g., "Cardiology"
    license_number = Column(String, unique=True, nullable=True)
    qualifications = Column(JSON, nullable=False, default=list)
    experience_years = Column(Integer, nullable=True)
    clinic_id = Column(String(36), ForeignKey("clinics.id"), nullable=True, index=True)
    availability = Column(JSON, nullable=True)
    consultation_fee = Column(Float, nullable=True)
    bio = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    clinic = relationship("Clinic", back_populates="doctors")

    @property
    def full_name(self) -> str:
        return " ".join(p for p in [self.first_name, self.last_name] if p).strip()
