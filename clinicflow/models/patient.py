from sqlalchemy import Column, String, DateTime, Boolean, Date, Text, JSON

from clinicflow.db.base import Base
from clinicflow.models.user import new_id
from clinicflow.utils.timezone import utcnow


class Patient(Base):
    __tablename__ = "patients"

    # Patients registered through /auth/register share their id with the User row
    id = Column(String(36), primary_key=True, default=new_id)
    first_name = Column(String, nullable=False, index=True)
    last_name = Column(String, nullable=False, index=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String, nullable=True)  # male, female, other
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True, index=True)
    address = Column(Text, nullable=True)
    emergency_contact = Column(JSON, nullable=True)
    medical_history = Column(JSON, nullable=False, default=list)
    allergies = Column(JSON, nullable=False, default=list)
    blood_type = Column(String, nullable=True)

    # Soft delete keeps history queryable
    is_active = Column(Boolean, nullable=False, default=True)
    deleted_at = Column(DateTime, nullable=True)

    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def full_name(self) -> str:
        return " ".join(p for p in [self.first_name, self.last_name] if p).strip()
