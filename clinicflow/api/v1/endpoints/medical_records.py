from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from clinicflow import crud, schemas
from clinicflow.api import deps
from clinicflow.core.auth_gate import Principal
from clinicflow.core.errors import ValidationError
from clinicflow.core.query_planner import QueryPlanner

router = APIRouter()


@router.get("/", response_model=schemas.Page[schemas.MedicalRecord])
def read_medical_records(
    *,
    planner: QueryPlanner = Depends(deps.get_query_planner),
    list_query: deps.ListQuery = Depends(),
    patient_id: Optional[str] = None,
    doctor_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    params = list_query.params(
        patient_id=patient_id,
        doctor_id=doctor_id,
        start_date=start_date,
        end_date=end_date,
    )
    result = planner.paginate(crud.medical_record.list_spec, params)
    return schemas.build_page(schemas.MedicalRecord, result)


@router.post("/", response_model=schemas.MedicalRecord, status_code=status.HTTP_201_CREATED)
def create_medical_record(
    *,
    db: Session = Depends(deps.get_db),
    record_in: schemas.MedicalRecordCreate,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    crud.patient.get_or_404(db, record_in.patient_id)
    crud.doctor.get_or_404(db, record_in.doctor_id)
    return crud.medical_record.create(db, obj_in=record_in, created_by=principal.id)


@router.get("/stats/overview", response_model=schemas.MedicalRecordStats)
def read_medical_record_stats(
    *,
    db: Session = Depends(deps.get_db),
    doctor_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    if start_date and end_date and end_date < start_date:
        raise ValidationError("end_date must not be before start_date")
    return crud.medical_record.stats(db, doctor_id=doctor_id, start_date=start_date, end_date=end_date)


@router.get("/{record_id}", response_model=schemas.MedicalRecord)
def read_medical_record(
    *,
    db: Session = Depends(deps.get_db),
    record_id: str,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    return crud.medical_record.get_or_404(db, record_id)


@router.put("/{record_id}", response_model=schemas.MedicalRecord)
def update_medical_record(
    *,
    db: Session = Depends(deps.get_db),
    record_id: str,
    record_in: schemas.MedicalRecordUpdate,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    record = crud.medical_record.get_or_404(db, record_id)
    return crud.medical_record.update(db, db_obj=record, obj_in=record_in)


@router.delete("/{record_id}")
def delete_medical_record(
    *,
    db: Session = Depends(deps.get_db),
    record_id: str,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    record = crud.medical_record.get_or_404(db, record_id)
    crud.medical_record.delete(db, db_obj=record)
    return {"message": "Medical record deleted successfully"}
