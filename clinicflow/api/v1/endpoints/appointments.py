from datetime import date
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, status

from clinicflow import crud, schemas
from clinicflow.api import deps
from clinicflow.core.auth_gate import Principal
from clinicflow.core.query_planner import QueryPlanner
from clinicflow.models.appointment import AppointmentStatus, AppointmentType
from clinicflow.services.scheduling import SchedulingEngine

router = APIRouter()


@router.get("/", response_model=schemas.Page[schemas.Appointment])
def read_appointments(
    *,
    planner: QueryPlanner = Depends(deps.get_query_planner),
    list_query: deps.ListQuery = Depends(),
    appointment_status: Optional[AppointmentStatus] = Query(None, alias="status"),
    appointment_type: Optional[AppointmentType] = Query(None, alias="type"),
    doctor_id: Optional[str] = None,
    patient_id: Optional[str] = None,
    clinic_id: Optional[str] = None,
    on_date: Optional[date] = Query(None, alias="date"),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    """
    List appointments with filters, search and pagination.
    """
    params = list_query.params(
        status=appointment_status.value if appointment_status else None,
        type=appointment_type.value if appointment_type else None,
        doctor_id=doctor_id,
        patient_id=patient_id,
        clinic_id=clinic_id,
        date=on_date,
        date_from=date_from,
        date_to=date_to,
    )
    result = planner.paginate(crud.appointment.list_spec, params)
    return schemas.build_page(schemas.Appointment, result)


@router.post("/", response_model=schemas.Appointment, status_code=status.HTTP_201_CREATED)
def create_appointment(
    *,
    engine: SchedulingEngine = Depends(deps.get_scheduling_engine),
    appointment_in: schemas.AppointmentCreate,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    """
    Book an appointment. Fails with 409 when the doctor already has an active
    appointment overlapping the requested slot.
    """
    return engine.create(appointment_in, principal)


@router.get("/today/schedule", response_model=List[schemas.Appointment])
def read_today_schedule(
    *,
    engine: SchedulingEngine = Depends(deps.get_scheduling_engine),
    doctor_id: Optional[str] = None,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    return engine.today(doctor_id)


@router.get("/upcoming/schedule", response_model=List[schemas.Appointment])
def read_upcoming_schedule(
    *,
    engine: SchedulingEngine = Depends(deps.get_scheduling_engine),
    doctor_id: Optional[str] = None,
    days: Optional[int] = Query(None, description="Days ahead of today to include"),
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    return engine.upcoming(doctor_id, days)


@router.get("/stats/overview", response_model=schemas.AppointmentStats)
def read_appointment_stats(
    *,
    engine: SchedulingEngine = Depends(deps.get_scheduling_engine),
    doctor_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    return engine.stats(doctor_id=doctor_id, start_date=start_date, end_date=end_date)


@router.get("/{appointment_id}", response_model=schemas.Appointment)
def read_appointment(
    *,
    engine: SchedulingEngine = Depends(deps.get_scheduling_engine),
    appointment_id: str,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    return engine.get(appointment_id)


@router.put("/{appointment_id}", response_model=schemas.Appointment)
def update_appointment(
    *,
    engine: SchedulingEngine = Depends(deps.get_scheduling_engine),
    appointment_id: str,
    appointment_in: schemas.AppointmentUpdate,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    return engine.update(appointment_id, appointment_in, principal)


@router.patch("/{appointment_id}/status", response_model=schemas.Appointment)
def update_appointment_status(
    *,
    engine: SchedulingEngine = Depends(deps.get_scheduling_engine),
    appointment_id: str,
    status_in: schemas.AppointmentStatusUpdate,
    principal: Principal = Depends(deps.require_doctor),
) -> Any:
    return engine.update_status(appointment_id, status_in.status, principal)


@router.delete("/{appointment_id}")
def delete_appointment(
    *,
    engine: SchedulingEngine = Depends(deps.get_scheduling_engine),
    appointment_id: str,
    principal: Principal = Depends(deps.require_admin),
) -> Any:
    engine.delete(appointment_id, principal)
    return {"message": "Appointment deleted successfully"}
