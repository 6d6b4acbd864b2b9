from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinicflow.core.errors import ConflictError, NotFoundError
from clinicflow.core.query_planner import FilterField, ListSpec
from clinicflow.models.clinic import Clinic
from clinicflow.schemas.clinic import ClinicCreate, ClinicUpdate


class CRUDClinic:
    list_spec = ListSpec(
        model=Clinic,
        filters={"is_active": FilterField("is_active")},
        search_fields=("name", "address", "description"),
        sortable=("created_at", "name"),
    )

    def get(self, db: Session, clinic_id: str) -> Optional[Clinic]:
        return db.query(Clinic).filter(Clinic.id == clinic_id).first()

    def get_or_404(self, db: Session, clinic_id: str) -> Clinic:
        clinic = self.get(db, clinic_id)
        if not clinic:
            raise NotFoundError("Clinic not found")
        return clinic

    def create(self, db: Session, obj_in: ClinicCreate) -> Clinic:
        db_obj = Clinic(**obj_in.model_dump())
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def update(self, db: Session, db_obj: Clinic, obj_in: ClinicUpdate) -> Clinic:
        for field, value in obj_in.model_dump(exclude_unset=True).items():
            setattr(db_obj, field, value)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj


    def delete(self, db: Session, db_obj: Clinic) -> None:
        db.delete(db_obj)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Clinic still has appointments; deactivate it instead")


clinic = CRUDClinic()
