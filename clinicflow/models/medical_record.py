from sqlalchemy import Column, String, Text, Date, DateTime, JSON, ForeignKey

from clinicflow.db.base import Base
from clinicflow.models.user import new_id
from clinicflow.utils.timezone import utcnow


class MedicalRecord(Base):
    __tablename__ = "medical_records"

    id = Column(String(36), primary_key=True, default=new_id)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(String(36), ForeignKey("doctors.id"), nullable=False, index=True)
    visit_date = Column(Date, nullable=False, index=True)
    chief_complaint = Column(Text, nullable=False)
    diagnosis = Column(Text, nullable=True)
    treatment = Column(Text, nullable=True)
    prescriptions = Column(JSON, nullable=False, default=list)
    vital_signs = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    follow_up_date = Column(Date, nullable=True)

    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
