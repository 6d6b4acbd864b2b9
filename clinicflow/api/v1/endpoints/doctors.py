import logging
from datetime import date
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from clinicflow import crud, schemas
from clinicflow.api import deps
from clinicflow.core.auth_gate import Principal
from clinicflow.core.errors import NotFoundError
from clinicflow.core.query_planner import QueryPlanner
from clinicflow.models.appointment import AppointmentStatus
from clinicflow.services.scheduling import SchedulingEngine

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=schemas.Page[schemas.Doctor])
def read_doctors(
    *,
    planner: QueryPlanner = Depends(deps.get_query_planner),
    list_query: deps.ListQuery = Depends(),
    specialization: Optional[str] = None,
    clinic_id: Optional[str] = None,
    is_active: Optional[bool] = None,
    principal: Optional[Principal] = Depends(deps.get_optional_principal),
) -> Any:
    """
    Doctor directory. Only admins can see inactive doctors.
    """
    if not (principal and principal.is_admin):
        is_active = True
    params = list_query.params(specialization=specialization, clinic_id=clinic_id, is_active=is_active)
    result = planner.paginate(crud.doctor.list_spec, params)
    return schemas.build_page(schemas.Doctor, result)


@router.post("/", response_model=schemas.Doctor, status_code=status.HTTP_201_CREATED)
def create_doctor(
    *,
    db: Session = Depends(deps.get_db),
    doctor_in: schemas.DoctorCreate,
    principal: Principal = Depends(deps.require_admin),
) -> Any:
    if doctor_in.clinic_id:
        crud.clinic.get_or_404(db, doctor_in.clinic_id)
    return crud.doctor.create(db, obj_in=doctor_in)


@router.get("/{doctor_id}", response_model=schemas.Doctor)
def read_doctor(
    *,
    db: Session = Depends(deps.get_db),
    doctor_id: str,
    principal: Optional[Principal] = Depends(deps.get_optional_principal),
) -> Any:
    doctor = crud.doctor.get_or_404(db, doctor_id)
    if not doctor.is_active and not (principal and principal.is_admin):
        raise NotFoundError("Doctor not found")
    return doctor


@router.put("/{doctor_id}", response_model=schemas.Doctor)
def update_doctor(
    *,
    db: Session = Depends(deps.get_db),
    doctor_id: str,
    doctor_in: schemas.DoctorUpdate,
    principal: Principal = Depends(deps.require_admin),
) -> Any:
    doctor = crud.doctor.get_or_404(db, doctor_id)
    if doctor_in.clinic_id:
        crud.clinic.get_or_404(db, doctor_in.clinic_id)
    return crud.doctor.update(db, db_obj=doctor, obj_in=doctor_in)


@router.delete("/{doctor_id}")
def delete_doctor(
    *,
    db: Session = Depends(deps.get_db),
    doctor_id: str,
    principal: Principal = Depends(deps.require_admin),
) -> Any:
    doctor = crud.doctor.get_or_404(db, doctor_id)
    crud.doctor.delete(db, db_obj=doctor)
    logger.info(f"Doctor {doctor_id} deleted by {principal.id}")
    return {"message": "Doctor deleted successfully"}


@router.get("/{doctor_id}/appointments", response_model=schemas.Page[schemas.Appointment])
def read_doctor_appointments(
    *,
    db: Session = Depends(deps.get_db),
    planner: QueryPlanner = Depends(deps.get_query_planner),
    list_query: deps.ListQuery = Depends(),
    doctor_id: str,
    appointment_status: Optional[AppointmentStatus] = Query(None, alias="status"),
    on_date: Optional[date] = Query(None, alias="date"),
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    crud.doctor.get_or_404(db, doctor_id)
    params = list_query.params(
        doctor_id=doctor_id,
        status=appointment_status.value if appointment_status else None,
        date=on_date,
    )
    result = planner.paginate(crud.appointment.list_spec, params)
    return schemas.build_page(schemas.Appointment, result)


@router.get("/{doctor_id}/schedule", response_model=List[schemas.Appointment])
def read_doctor_schedule(
    *,
    db: Session = Depends(deps.get_db),
    engine: SchedulingEngine = Depends(deps.get_scheduling_engine),
    doctor_id: str,
    start_date: date,
    end_date: date,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    """
    Active appointments for one doctor between start_date and end_date
    (inclusive), ordered by date then time.
    """
    crud.doctor.get_or_404(db, doctor_id)
    return engine.schedule_for(doctor_id, start_date, end_date)


@router.get("/{doctor_id}/medical-records", response_model=schemas.Page[schemas.MedicalRecord])
def read_doctor_medical_records(
    *,
    db: Session = Depends(deps.get_db),
    planner: QueryPlanner = Depends(deps.get_query_planner),
    list_query: deps.ListQuery = Depends(),
    doctor_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    crud.doctor.get_or_404(db, doctor_id)
    params = list_query.params(doctor_id=doctor_id, start_date=start_date, end_date=end_date)
    result = planner.paginate(crud.medical_record.list_spec, params)
    return schemas.build_page(schemas.MedicalRecord, result)


@router.get("/{doctor_id}/stats", response_model=schemas.DoctorStats)
def read_doctor_stats(
    *,
    db: Session = Depends(deps.get_db),
    engine: SchedulingEngine = Depends(deps.get_scheduling_engine),
    doctor_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    crud.doctor.get_or_404(db, doctor_id)
    return schemas.DoctorStats(
        appointments=engine.stats(doctor_id=doctor_id, start_date=start_date, end_date=end_date),
        medical_records=crud.medical_record.stats(
            db, doctor_id=doctor_id, start_date=start_date, end_date=end_date
        ),
    )
