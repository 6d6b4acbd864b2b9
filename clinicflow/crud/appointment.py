from datetime import date, datetime
from typing import Iterable, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from clinicflow.core.query_planner import FilterField, ListSpec
from clinicflow.models.appointment import Appointment, ACTIVE_STATUSES

ACTIVE_STATUS_VALUES = [s.value for s in ACTIVE_STATUSES]


class CRUDAppointment:
    list_spec = ListSpec(
        model=Appointment,
        filters={
            "status": FilterField("status"),
            "doctor_id": FilterField("doctor_id"),
            "patient_id": FilterField("patient_id"),
            "clinic_id": FilterField("clinic_id"),
            "type": FilterField("type"),
            "date": FilterField("appointment_date"),
            "date_from": FilterField("appointment_date", op="gte"),
            "date_to": FilterField("appointment_date", op="lte"),
        },
        search_fields=("reason", "notes"),
        sortable=("appointment_date", "starts_at", "created_at", "updated_at", "status", "type"),
        default_sort="starts_at",
        default_order="asc",
    )

    def get(self, db: Session, id: str) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == id).first()

    def _active_for_doctor(self, db: Session, doctor_id: str, exclude_id: Optional[str]) -> Query:
        query = db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.status.in_(ACTIVE_STATUS_VALUES),
        )
        if exclude_id:
            query = query.filter(Appointment.id != exclude_id)
        return query

    def find_overlapping(
        self,
        db: Session,
        *,
        doctor_id: str,
        starts_at: datetime,
        ends_at: datetime,
        exclude_id: Optional[str] = None,
    ) -> List[Appointment]:
        """Active appointments of the doctor whose [starts_at, ends_at) intersects the given one."""
        return (
            self._active_for_doctor(db, doctor_id, exclude_id)
            .filter(Appointment.starts_at < ends_at, Appointment.ends_at > starts_at)
            .order_by(Appointment.starts_at.asc())
            .all()
        )

    def find_on_dates(
        self,
        db: Session,
        *,
        doctor_id: str,
        dates: Iterable[date],
        exclude_id: Optional[str] = None,
    ) -> List[Appointment]:
        return (
            self._active_for_doctor(db, doctor_id, exclude_id)
            .filter(Appointment.appointment_date.in_(list(dates)))
            .order_by(Appointment.starts_at.asc())
            .all()
        )

    def schedule(
        self,
        db: Session,
        *,
        date_from: date,
        date_to: date,
        doctor_id: Optional[str] = None,
    ) -> List[Appointment]:
        query = db.query(Appointment).filter(
            Appointment.appointment_date >= date_from,
            Appointment.appointment_date <= date_to,
            Appointment.status.in_(ACTIVE_STATUS_VALUES),
        )
        if doctor_id:
            query = query.filter(Appointment.doctor_id == doctor_id)
        return (
            query.order_by(
                Appointment.appointment_date.asc(),
                Appointment.appointment_time.asc(),
                Appointment.id.asc(),
            )
            .all()
        )

    def filtered(
        self,
        db: Session,
        *,
        doctor_id: Optional[str] = None,
        clinic_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Query:
        query = db.query(Appointment)
        if doctor_id:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if clinic_id:
            query = query.filter(Appointment.clinic_id == clinic_id)
        if start_date:
            query = query.filter(Appointment.appointment_date >= start_date)
        if end_date:
            query = query.filter(Appointment.appointment_date <= end_date)
        return query

    def count_by(self, query: Query, column) -> dict:
        return dict(
            query.with_entities(column, func.count(Appointment.id)).group_by(column).all()
        )

    def create(self, db: Session, *, db_obj: Appointment) -> Appointment:
        db.add(db_obj)
        db.flush()
        return db_obj

    def delete(self, db: Session, *, db_obj: Appointment) -> None:
        db.delete(db_obj)
        db.commit()


appointment = CRUDAppointment()
