import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from clinicflow import crud, schemas
from clinicflow.api import deps
from clinicflow.core.auth_gate import Principal
from clinicflow.core.query_planner import QueryPlanner
from clinicflow.models.appointment import AppointmentStatus
from clinicflow.schemas.patient import BloodType, Gender

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=schemas.Page[schemas.Patient])
def read_patients(
    *,
    planner: QueryPlanner = Depends(deps.get_query_planner),
    list_query: deps.ListQuery = Depends(),
    gender: Optional[Gender] = None,
    blood_type: Optional[BloodType] = None,
    is_active: Optional[bool] = None,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    params = list_query.params(gender=gender, blood_type=blood_type, is_active=is_active)
    result = planner.paginate(crud.patient.list_spec, params)
    return schemas.build_page(schemas.Patient, result)


@router.post("/", response_model=schemas.Patient, status_code=status.HTTP_201_CREATED)
def create_patient(
    *,
    db: Session = Depends(deps.get_db),
    patient_in: schemas.PatientCreate,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    patient = crud.patient.create(db, obj_in=patient_in, created_by=principal.id)
    logger.info(f"Patient {patient.id} created by {principal.id}")
    return patient


@router.get("/{patient_id}", response_model=schemas.Patient)
def read_patient(
    *,
    db: Session = Depends(deps.get_db),
    patient_id: str,
    principal: Principal = Depends(deps.require_patient_access),
) -> Any:
    return crud.patient.get_or_404(db, patient_id)


@router.put("/{patient_id}", response_model=schemas.Patient)
def update_patient(
    *,
    db: Session = Depends(deps.get_db),
    patient_id: str,
    patient_in: schemas.PatientUpdate,
    principal: Principal = Depends(deps.require_patient_access),
) -> Any:
    patient = crud.patient.get_or_404(db, patient_id)
    return crud.patient.update(db, db_obj=patient, obj_in=patient_in)


@router.delete("/{patient_id}")
def delete_patient(
    *,
    db: Session = Depends(deps.get_db),
    patient_id: str,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    """
    Soft delete: the patient is deactivated and stamped, never removed.
    """
    patient = crud.patient.get_or_404(db, patient_id)
    crud.patient.soft_delete(db, db_obj=patient)
    logger.info(f"Patient {patient_id} deactivated by {principal.id}")
    return {"message": "Patient deleted successfully"}


@router.get("/{patient_id}/appointments", response_model=schemas.Page[schemas.Appointment])
def read_patient_appointments(
    *,
    db: Session = Depends(deps.get_db),
    planner: QueryPlanner = Depends(deps.get_query_planner),
    list_query: deps.ListQuery = Depends(),
    patient_id: str,
    appointment_status: Optional[AppointmentStatus] = Query(None, alias="status"),
    principal: Principal = Depends(deps.require_patient_access),
) -> Any:
    crud.patient.get_or_404(db, patient_id)
    params = list_query.params(
        patient_id=patient_id,
        status=appointment_status.value if appointment_status else None,
    )
    result = planner.paginate(crud.appointment.list_spec, params)
    return schemas.build_page(schemas.Appointment, result)


@router.get("/{patient_id}/medical-records", response_model=schemas.Page[schemas.MedicalRecord])
def read_patient_medical_records(
    *,
    db: Session = Depends(deps.get_db),
    planner: QueryPlanner = Depends(deps.get_query_planner),
    list_query: deps.ListQuery = Depends(),
    patient_id: str,
    principal: Principal = Depends(deps.require_patient_access),
) -> Any:
    crud.patient.get_or_404(db, patient_id)
    result = planner.paginate(crud.medical_record.list_spec, list_query.params(patient_id=patient_id))
    return schemas.build_page(schemas.MedicalRecord, result)


@router.get("/{patient_id}/stats", response_model=schemas.PatientStats)
def read_patient_stats(
    *,
    db: Session = Depends(deps.get_db),
    patient_id: str,
    principal: Principal = Depends(deps.require_patient_access),
) -> Any:
    crud.patient.get_or_404(db, patient_id)
    return crud.patient.stats(db, patient_id=patient_id)
