from datetime import date
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from clinicflow.core.errors import NotFoundError
from clinicflow.core.query_planner import FilterField, ListSpec
from clinicflow.models.medical_record import MedicalRecord
from clinicflow.schemas.medical_record import MedicalRecordCreate, MedicalRecordUpdate, MedicalRecordStats


class CRUDMedicalRecord:
    list_spec = ListSpec(
        model=MedicalRecord,
        filters={
            "patient_id": FilterField("patient_id"),
            "doctor_id": FilterField("doctor_id"),
            "start_date": FilterField("visit_date", op="gte"),
            "end_date": FilterField("visit_date", op="lte"),
        },
        search_fields=("chief_complaint", "diagnosis", "treatment", "notes"),
        sortable=("visit_date", "created_at", "follow_up_date"),
        default_sort="visit_date",
        default_order="desc",
    )

    def get(self, db: Session, record_id: str) -> Optional[MedicalRecord]:
        return db.query(MedicalRecord).filter(MedicalRecord.id == record_id).first()

    def get_or_404(self, db: Session, record_id: str) -> MedicalRecord:
        record = self.get(db, record_id)
        if not record:
            raise NotFoundError("Medical record not found")
        return record

    def create(self, db: Session, *, obj_in: MedicalRecordCreate, created_by: str) -> MedicalRecord:
        db_obj = MedicalRecord(**obj_in.model_dump(), created_by=created_by)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def update(self, db: Session, *, db_obj: MedicalRecord, obj_in: MedicalRecordUpdate) -> MedicalRecord:
        for field, value in obj_in.model_dump(exclude_unset=True).items():
            setattr(db_obj, field, value)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def delete(self, db: Session, *, db_obj: MedicalRecord) -> None:
        db.delete(db_obj)
        db.commit()

    def stats(
        self,
        db: Session,
        *,
        doctor_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> MedicalRecordStats:
        query = db.query(MedicalRecord)
        if doctor_id:
            query = query.filter(MedicalRecord.doctor_id == doctor_id)
        if start_date:
            query = query.filter(MedicalRecord.visit_date >= start_date)
        if end_date:
            query = query.filter(MedicalRecord.visit_date <= end_date)

        total = query.order_by(None).count()
        unique_patients = (
            query.with_entities(func.count(func.distinct(MedicalRecord.patient_id))).scalar() or 0
        )
        by_date = {
            visit_date.isoformat(): count
            for visit_date, count in query.with_entities(
                MedicalRecord.visit_date, func.count(MedicalRecord.id)
            ).group_by(MedicalRecord.visit_date).all()
        }
        common_diagnoses = dict(
            query.filter(MedicalRecord.diagnosis.isnot(None))
            .with_entities(MedicalRecord.diagnosis, func.count(MedicalRecord.id))
            .group_by(MedicalRecord.diagnosis)
            .order_by(func.count(MedicalRecord.id).desc())
            .all()
        )
        return MedicalRecordStats(
            total_records=total,
            unique_patients=unique_patients,
            by_date=by_date,
            common_diagnoses=common_diagnoses,
        )


medical_record = CRUDMedicalRecord()
