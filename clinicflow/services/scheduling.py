"""
Appointment scheduling engine.

Owns the appointment lifecycle: booking with double-booking detection, partial
updates that re-validate the slot, status transitions along the state machine in
``clinicflow.models.appointment``, schedule views and statistics.

Booking is a reserve-if-free operation. The overlap check and the write run in one
transaction opened with ``BOOKING_ISOLATION_LEVEL``; on PostgreSQL the
``ex_appointments_no_overlap`` exclusion constraint backs it up. On SQLite the
transaction starts with ``BEGIN IMMEDIATE`` (see ``clinicflow.db.session``), so
concurrent bookings queue on the database write lock. Whatever the datastore
rejects (exclusion violation, serialization failure, lock timeout) is reported
as a ConflictError, just like a hit from the in-engine check.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from typing import Iterator, List, Optional, Tuple

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from clinicflow import crud
from clinicflow.core.auth_gate import Principal
from clinicflow.core.config import settings
from clinicflow.core.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from clinicflow.models.appointment import (
    Appointment,
    AppointmentStatus,
    MAX_DURATION_MINUTES,
    MIN_DURATION_MINUTES,
)
from clinicflow.schemas.appointment import AppointmentCreate, AppointmentStats, AppointmentUpdate
from clinicflow.utils.timezone import today_local, utcnow

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATEs the datastore uses to refuse a concurrent double booking
EXCLUSION_VIOLATION = "23P01"
FOREIGN_KEY_VIOLATION = "23503"
RETRYABLE_TXN_STATES = {"40001", "40P01"}  # serialization_failure, deadlock_detected

SCHEDULING_FIELDS = ("doctor_id", "appointment_date", "appointment_time", "duration_minutes")
REQUIRED_FIELDS = SCHEDULING_FIELDS + ("type", "status")


def appointment_interval(day: date, start: time, duration_minutes: int) -> Tuple[datetime, datetime]:
    starts_at = datetime.combine(day, start.replace(second=0, microsecond=0))
    return starts_at, starts_at + timedelta(minutes=duration_minutes)


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def _is_sqlite_lock_timeout(exc: DBAPIError) -> bool:
    return isinstance(exc.orig, sqlite3.OperationalError) and "database is locked" in str(exc.orig)


class SchedulingEngine:
    def __init__(
        self,
        db: Session,
        conflict_policy: Optional[str] = None,
        isolation_level: Optional[str] = None,
    ):
        self.db = db
        self.conflict_policy = conflict_policy or settings.CONFLICT_POLICY
        self.isolation_level = isolation_level if isolation_level is not None else settings.BOOKING_ISOLATION_LEVEL

    # ------------------------------------------------------------------ reads

    def get(self, appointment_id: str) -> Appointment:
        appointment = crud.appointment.get(self.db, appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment not found")
        return appointment

    def schedule_for(
        self, doctor_id: Optional[str], date_from: date, date_to: date
    ) -> List[Appointment]:
        """Active appointments in [date_from, date_to], ordered by date then time."""
        if date_to < date_from:
            raise ValidationError("date_to must not be before date_from")
        return crud.appointment.schedule(
            self.db, date_from=date_from, date_to=date_to, doctor_id=doctor_id
        )

    def today(self, doctor_id: Optional[str] = None) -> List[Appointment]:
        today = today_local()
        return self.schedule_for(doctor_id, today, today)

    def upcoming(self, doctor_id: Optional[str] = None, days: Optional[int] = None) -> List[Appointment]:
        days = settings.UPCOMING_DEFAULT_DAYS if days is None else days
        if days < 1 or days > settings.UPCOMING_MAX_DAYS:
            raise ValidationError(f"days must be between 1 and {settings.UPCOMING_MAX_DAYS}")
        today = today_local()
        return self.schedule_for(doctor_id, today, today + timedelta(days=days))

    def stats(
        self,
        doctor_id: Optional[str] = None,
        clinic_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> AppointmentStats:
        if start_date and end_date and end_date < start_date:
            raise ValidationError("end_date must not be before start_date")
        query = crud.appointment.filtered(
            self.db, doctor_id=doctor_id, clinic_id=clinic_id, start_date=start_date, end_date=end_date
        )
        by_date = crud.appointment.count_by(query, Appointment.appointment_date)
        return AppointmentStats(
            total=query.order_by(None).count(),
            by_status=crud.appointment.count_by(query, Appointment.status),
            by_type=crud.appointment.count_by(query, Appointment.type),
            by_date={day.isoformat(): count for day, count in by_date.items()},
        )

    # ------------------------------------------------------------- mutations

    def create(self, obj_in: AppointmentCreate, principal: Principal) -> Appointment:
        self._validate_duration(obj_in.duration_minutes)
        starts_at, ends_at = appointment_interval(
            obj_in.appointment_date, obj_in.appointment_time, obj_in.duration_minutes
        )

        with self._reservation():
            self._ensure_slot_free(
                doctor_id=obj_in.doctor_id,
                day=obj_in.appointment_date,
                starts_at=starts_at,
                ends_at=ends_at,
            )
            now = utcnow()
            appointment = Appointment(
                patient_id=obj_in.patient_id,
                doctor_id=obj_in.doctor_id,
                clinic_id=obj_in.clinic_id,
                appointment_date=obj_in.appointment_date,
                appointment_time=starts_at.time(),
                duration_minutes=obj_in.duration_minutes,
                starts_at=starts_at,
                ends_at=ends_at,
                type=obj_in.type.value,
                status=AppointmentStatus.SCHEDULED.value,
                reason=obj_in.reason,
                notes=obj_in.notes,
                created_by=principal.id,
                created_at=now,
                updated_at=now,
            )
            crud.appointment.create(self.db, db_obj=appointment)

        self.db.refresh(appointment)
        logger.info(
            f"Appointment {appointment.id} booked for doctor {appointment.doctor_id} "
            f"at {appointment.slot_label} by {principal.id}"
        )
        return appointment

    def update(self, appointment_id: str, obj_in: AppointmentUpdate, principal: Principal) -> Appointment:
        changes = obj_in.model_dump(exclude_unset=True)
        for field in REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be null")

        with self._reservation():
            appointment = self.get(appointment_id)
            current = AppointmentStatus(appointment.status)

            new_status = changes.pop("status", None)
            if new_status is not None and new_status != current:
                self._check_transition(appointment, current, new_status)

            rescheduled = [
                f for f in SCHEDULING_FIELDS
                if f in changes and changes[f] != getattr(appointment, f)
            ]
            if rescheduled and current.is_final():
                logger.info(f"Rejected reschedule of {current.value} appointment {appointment.id}")
                raise InvalidTransitionError(
                    f"Cannot reschedule an appointment that is {current.value}"
                )

            for field, value in changes.items():
                if field == "type":
                    value = value.value
                setattr(appointment, field, value)

            if rescheduled:
                self._validate_duration(appointment.duration_minutes)
                starts_at, ends_at = appointment_interval(
                    appointment.appointment_date,
                    appointment.appointment_time,
                    appointment.duration_minutes,
                )
                resulting_status = new_status or current
                if resulting_status.is_active():
                    self._ensure_slot_free(
                        doctor_id=appointment.doctor_id,
                        day=appointment.appointment_date,
                        starts_at=starts_at,
                        ends_at=ends_at,
                        exclude_id=appointment.id,
                    )
                appointment.appointment_time = starts_at.time()
                appointment.starts_at = starts_at
                appointment.ends_at = ends_at

            if new_status is not None:
                appointment.status = new_status.value
            appointment.updated_at = utcnow()
            self.db.flush()

        self.db.refresh(appointment)
        logger.info(f"Appointment {appointment.id} updated by {principal.id}: {sorted(obj_in.model_fields_set)}")
        return appointment

    def update_status(
        self, appointment_id: str, new_status: AppointmentStatus, principal: Principal
    ) -> Appointment:
        new_status = AppointmentStatus(new_status)
        with self._reservation():
            appointment = self.get(appointment_id)
            current = AppointmentStatus(appointment.status)
            self._check_transition(appointment, current, new_status)
            appointment.status = new_status.value
            appointment.updated_at = utcnow()
            self.db.flush()

        self.db.refresh(appointment)
        logger.info(
            f"Appointment {appointment.id} moved {current.value} -> {new_status.value} by {principal.id}"
        )
        return appointment

    def delete(self, appointment_id: str, principal: Principal) -> None:
        """Hard delete; bypasses the state machine."""
        appointment = self.get(appointment_id)
        crud.appointment.delete(self.db, db_obj=appointment)
        logger.info(f"Appointment {appointment_id} deleted by {principal.id}")

    # -------------------------------------------------------------- internals

    @staticmethod
    def _validate_duration(duration_minutes: int) -> None:
        if not MIN_DURATION_MINUTES <= duration_minutes <= MAX_DURATION_MINUTES:
            raise ValidationError(
                f"Duration must be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes"
            )

    @staticmethod
    def _check_transition(
        appointment: Appointment, current: AppointmentStatus, new_status: AppointmentStatus
    ) -> None:
        if not current.can_transition_to(new_status):
            logger.info(
                f"Rejected transition {current.value} -> {new_status.value} for appointment {appointment.id}"
            )
            raise InvalidTransitionError(
                f"Cannot change appointment status from '{current.value}' to '{new_status.value}'"
            )

    def _ensure_slot_free(
        self,
        *,
        doctor_id: str,
        day: date,
        starts_at: datetime,
        ends_at: datetime,
        exclude_id: Optional[str] = None,
    ) -> None:
        if self.conflict_policy == "whole_day":
            clashes = crud.appointment.find_on_dates(
                self.db, doctor_id=doctor_id, dates=[day], exclude_id=exclude_id
            )
        else:
            clashes = crud.appointment.find_overlapping(
                self.db,
                doctor_id=doctor_id,
                starts_at=starts_at,
                ends_at=ends_at,
                exclude_id=exclude_id,
            )
        if clashes:
            existing = clashes[0]
            logger.info(
                f"Booking conflict for doctor {doctor_id}: requested "
                f"{starts_at:%Y-%m-%d %H:%M}-{ends_at:%H:%M}, held by {existing.id}"
            )
            raise ConflictError(
                f"Appointment time conflicts with an existing appointment ({existing.slot_label})",
                details={"conflicting_appointment_id": existing.id, "slot": existing.slot_label},
            )

    @contextmanager
    def _reservation(self) -> Iterator[None]:
        """One transaction around check + write, committed on success."""
        if self.db.in_transaction():
            # End the read transaction opened by authentication so the isolation level applies
            self.db.commit()
        try:
            if self.isolation_level and self.db.get_bind().dialect.name != "sqlite":
                self.db.connection(execution_options={"isolation_level": self.isolation_level})
            else:
                # SQLite engines from Database.init take the write lock at BEGIN
                self.db.connection()
            yield
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            state = _sqlstate(exc)
            if state == EXCLUSION_VIOLATION:
                raise ConflictError("Appointment time conflicts with an existing appointment") from exc
            if state == FOREIGN_KEY_VIOLATION:
                raise ValidationError("Referenced patient, doctor or clinic does not exist") from exc
            raise
        except DBAPIError as exc:
            self.db.rollback()
            if _sqlstate(exc) in RETRYABLE_TXN_STATES or _is_sqlite_lock_timeout(exc):
                raise ConflictError(
                    "Another booking for this doctor was made at the same time; please resubmit"
                ) from exc
            raise
        except Exception:
            self.db.rollback()
            raise
