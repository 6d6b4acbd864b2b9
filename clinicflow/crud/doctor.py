from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinicflow.core.errors import ConflictError, NotFoundError
from clinicflow.core.query_planner import FilterField, ListSpec
from clinicflow.models.doctor import Doctor
from clinicflow.schemas.doctor import DoctorCreate, DoctorUpdate


class CRUDDoctor:
    list_spec = ListSpec(
        model=Doctor,
        filters={
            "specialization": FilterField("specialization"),
            "clinic_id": FilterField("clinic_id"),
            "is_active": FilterField("is_active"),
        },
        search_fields=("first_name", "last_name", "specialization"),
        sortable=("created_at", "last_name", "specialization", "experience_years", "consultation_fee"),
    )

    def get(self, db: Session, doctor_id: str) -> Optional[Doctor]:
        return db.query(Doctor).filter(Doctor.id == doctor_id).first()

    def get_or_404(self, db: Session, doctor_id: str) -> Doctor:
        doctor = self.get(db, doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found")
        return doctor

    def create(self, db: Session, obj_in: DoctorCreate) -> Doctor:
        db_obj = Doctor(**obj_in.model_dump())
        if obj_in.user_id:
            # A directory entry attached to a login shares the user's id
            db_obj.id = obj_in.user_id
        db.add(db_obj)
        self._commit(db)
        db.refresh(db_obj)
        return db_obj

    def update(self, db: Session, db_obj: Doctor, obj_in: DoctorUpdate) -> Doctor:
        for field, value in obj_in.model_dump(exclude_unset=True).items():
            setattr(db_obj, field, value)
        db.add(db_obj)
        self._commit(db)
        db.refresh(db_obj)
        return db_obj

    def delete(self, db: Session, db_obj: Doctor) -> None:
        db.delete(db_obj)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Doctor still has appointments or medical records; deactivate it instead")

    def count_in_clinic(self, db: Session, clinic_id: str) -> int:
        return db.query(Doctor).filter(Doctor.clinic_id == clinic_id).count()

    @staticmethod
    def _commit(db: Session) -> None:
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("A doctor with this license number or user already exists")


doctor = CRUDDoctor()
