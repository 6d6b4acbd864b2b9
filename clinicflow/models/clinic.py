from sqlalchemy import Column, String, Boolean, Text, DateTime, JSON
from sqlalchemy.orm import relationship

from clinicflow.db.base import Base
from clinicflow.models.user import new_id
from clinicflow.utils.timezone import utcnow


class Clinic(Base):
    __tablename__ = "clinics"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False, index=True)
    address = Column(Text, nullable=False)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    website = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    services = Column(JSON, nullable=False, default=list)
    operating_hours = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    doctors = relationship("Doctor", back_populates="clinic")
