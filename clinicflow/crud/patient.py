from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from clinicflow.core.errors import NotFoundError
from clinicflow.core.query_planner import FilterField, ListSpec
from clinicflow.models.appointment import Appointment
from clinicflow.models.medical_record import MedicalRecord
from clinicflow.models.patient import Patient
from clinicflow.schemas.patient import PatientCreate, PatientUpdate, PatientStats
from clinicflow.utils.timezone import utcnow


class CRUDPatient:
    list_spec = ListSpec(
        model=Patient,
        filters={
            "gender": FilterField("gender"),
            "blood_type": FilterField("blood_type"),
            "is_active": FilterField("is_active"),
        },
        search_fields=("first_name", "last_name", "email"),
        sortable=("created_at", "updated_at", "first_name", "last_name", "date_of_birth"),
        default_sort="created_at",
        default_order="desc",
    )

    def get(self, db: Session, id: str) -> Optional[Patient]:
        return db.query(Patient).filter(Patient.id == id).first()

    def get_or_404(self, db: Session, id: str) -> Patient:
        patient = self.get(db, id)
        if not patient:
            raise NotFoundError("Patient not found")
        return patient

    def create(self, db: Session, *, obj_in: PatientCreate, created_by: str) -> Patient:
        db_obj = Patient(**obj_in.model_dump(), created_by=created_by)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def update(self, db: Session, *, db_obj: Patient, obj_in: PatientUpdate) -> Patient:
        update_data = obj_in.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(db_obj, field, value)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def soft_delete(self, db: Session, *, db_obj: Patient) -> Patient:
        db_obj.is_active = False
        db_obj.deleted_at = utcnow()
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def stats(self, db: Session, *, patient_id: str) -> PatientStats:
        by_status = dict(
            db.query(Appointment.status, func.count(Appointment.id))
            .filter(Appointment.patient_id == patient_id)
            .group_by(Appointment.status)
            .all()
        )
        last_date = (
            db.query(func.max(Appointment.appointment_date))
            .filter(Appointment.patient_id == patient_id)
            .scalar()
        )
        record_count = (
            db.query(func.count(MedicalRecord.id))
            .filter(MedicalRecord.patient_id == patient_id)
            .scalar()
        )
        return PatientStats(
            total_appointments=sum(by_status.values()),
            appointments_by_status=by_status,
            total_medical_records=record_count or 0,
            last_appointment_date=last_date,
        )


patient = CRUDPatient()
