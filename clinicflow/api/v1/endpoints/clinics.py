import logging
from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from clinicflow import crud, schemas
from clinicflow.api import deps
from clinicflow.core.auth_gate import Principal
from clinicflow.core.errors import ConflictError, NotFoundError
from clinicflow.core.query_planner import QueryPlanner
from clinicflow.models.appointment import AppointmentStatus
from clinicflow.services.scheduling import SchedulingEngine

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=schemas.Page[schemas.Clinic])
def read_clinics(
    *,
    planner: QueryPlanner = Depends(deps.get_query_planner),
    list_query: deps.ListQuery = Depends(),
    is_active: Optional[bool] = None,
    principal: Optional[Principal] = Depends(deps.get_optional_principal),
) -> Any:
    if not (principal and principal.is_admin):
        is_active = True
    result = planner.paginate(crud.clinic.list_spec, list_query.params(is_active=is_active))
    return schemas.build_page(schemas.Clinic, result)


@router.post("/", response_model=schemas.Clinic, status_code=status.HTTP_201_CREATED)
def create_clinic(
    *,
    db: Session = Depends(deps.get_db),
    clinic_in: schemas.ClinicCreate,
    principal: Principal = Depends(deps.require_admin),
) -> Any:
    return crud.clinic.create(db, obj_in=clinic_in)


@router.get("/{clinic_id}", response_model=schemas.Clinic)
def read_clinic(
    *,
    db: Session = Depends(deps.get_db),
    clinic_id: str,
    principal: Optional[Principal] = Depends(deps.get_optional_principal),
) -> Any:
    clinic = crud.clinic.get_or_404(db, clinic_id)
    if not clinic.is_active and not (principal and principal.is_admin):
        raise NotFoundError("Clinic not found")
    return clinic


@router.put("/{clinic_id}", response_model=schemas.Clinic)
def update_clinic(
    *,
    db: Session = Depends(deps.get_db),
    clinic_id: str,
    clinic_in: schemas.ClinicUpdate,
    principal: Principal = Depends(deps.require_admin),
) -> Any:
    clinic = crud.clinic.get_or_404(db, clinic_id)
    return crud.clinic.update(db, db_obj=clinic, obj_in=clinic_in)


@router.delete("/{clinic_id}")
def delete_clinic(
    *,
    db: Session = Depends(deps.get_db),
    clinic_id: str,
    principal: Principal = Depends(deps.require_admin),
) -> Any:
    clinic = crud.clinic.get_or_404(db, clinic_id)
    if crud.doctor.count_in_clinic(db, clinic_id):
        raise ConflictError("Clinic still has doctors; reassign them or deactivate the clinic instead")
    crud.clinic.delete(db, db_obj=clinic)
    logger.info(f"Clinic {clinic_id} deleted by {principal.id}")
    return {"message": "Clinic deleted successfully"}


@router.get("/{clinic_id}/doctors", response_model=schemas.Page[schemas.Doctor])
def read_clinic_doctors(
    *,
    db: Session = Depends(deps.get_db),
    planner: QueryPlanner = Depends(deps.get_query_planner),
    list_query: deps.ListQuery = Depends(),
    clinic_id: str,
    specialization: Optional[str] = None,
    principal: Optional[Principal] = Depends(deps.get_optional_principal),
) -> Any:
    is_admin = bool(principal and principal.is_admin)
    clinic = crud.clinic.get_or_404(db, clinic_id)
    if not clinic.is_active and not is_admin:
        raise NotFoundError("Clinic not found")
    params = list_query.params(
        clinic_id=clinic_id,
        specialization=specialization,
        is_active=None if is_admin else True,
    )
    result = planner.paginate(crud.doctor.list_spec, params)
    return schemas.build_page(schemas.Doctor, result)


@router.get("/{clinic_id}/appointments", response_model=schemas.Page[schemas.Appointment])
def read_clinic_appointments(
    *,
    db: Session = Depends(deps.get_db),
    planner: QueryPlanner = Depends(deps.get_query_planner),
    list_query: deps.ListQuery = Depends(),
    clinic_id: str,
    appointment_status: Optional[AppointmentStatus] = Query(None, alias="status"),
    on_date: Optional[date] = Query(None, alias="date"),
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    crud.clinic.get_or_404(db, clinic_id)
    params = list_query.params(
        clinic_id=clinic_id,
        status=appointment_status.value if appointment_status else None,
        date=on_date,
    )
    result = planner.paginate(crud.appointment.list_spec, params)
    return schemas.build_page(schemas.Appointment, result)


@router.get("/{clinic_id}/stats", response_model=schemas.ClinicStats)
def read_clinic_stats(
    *,
    db: Session = Depends(deps.get_db),
    engine: SchedulingEngine = Depends(deps.get_scheduling_engine),
    clinic_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    crud.clinic.get_or_404(db, clinic_id)
    return schemas.ClinicStats(
        total_doctors=crud.doctor.count_in_clinic(db, clinic_id),
        appointments=engine.stats(clinic_id=clinic_id, start_date=start_date, end_date=end_date),
    )
