import sqlite3
from datetime import date, time, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from clinicflow.core.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from clinicflow.models.appointment import ACTIVE_STATUSES, AppointmentStatus
from clinicflow.schemas.appointment import AppointmentCreate, AppointmentUpdate
from clinicflow.services.scheduling import SchedulingEngine
from clinicflow.utils.timezone import today_local

DAY = date(2024, 3, 1)
TERMINAL = [AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW]


@pytest.fixture
def scheduler(db):
    return SchedulingEngine(db)


@pytest.fixture
def book(scheduler, doctor_user, patient_user, doctor_principal):
    def _book(at="10:00", duration=30, day=DAY, doctor_id=None):
        obj_in = AppointmentCreate(
            patient_id=patient_user.id,
            doctor_id=doctor_id or doctor_user.id,
            appointment_date=day,
            appointment_time=at,
            duration_minutes=duration,
            reason="Check-up",
        )
        return scheduler.create(obj_in, doctor_principal)

    return _book


def test_create_books_scheduled_appointment(book, doctor_principal):
    appointment = book()

    assert appointment.status == AppointmentStatus.SCHEDULED.value
    assert appointment.created_by == doctor_principal.id
    assert appointment.appointment_time == time(10, 0)
    assert appointment.slot_label == "2024-03-01 10:00-10:30"


def test_overlapping_booking_conflicts_and_adjacent_succeeds(book):
    book("10:00")

    with pytest.raises(ConflictError) as exc_info:
        book("10:15")
    assert "2024-03-01 10:00-10:30" in exc_info.value.message

    assert book("10:30").status == "scheduled"


def test_contained_and_enclosing_bookings_conflict(book):
    book("10:00", duration=60)

    with pytest.raises(ConflictError):
        book("10:15", duration=15)
    with pytest.raises(ConflictError):
        book("09:30", duration=120)


def test_other_doctor_same_slot_is_free(book, second_doctor):
    book("10:00")
    assert book("10:00", doctor_id=second_doctor.id).doctor_id == second_doctor.id


def test_cancelled_appointment_frees_the_slot(book, scheduler, doctor_principal):
    first = book("10:00")
    scheduler.update_status(first.id, AppointmentStatus.CANCELLED, doctor_principal)

    assert book("10:15").status == "scheduled"


def test_booking_that_crosses_midnight_blocks_next_morning(book):
    book("23:30", duration=60)

    with pytest.raises(ConflictError):
        book("00:00", day=DAY + timedelta(days=1))


def test_whole_day_policy_blocks_same_date(db, book, doctor_user, patient_user, doctor_principal):
    book("09:00")
    strict = SchedulingEngine(db, conflict_policy="whole_day")
    obj_in = AppointmentCreate(
        patient_id=patient_user.id,
        doctor_id=doctor_user.id,
        appointment_date=DAY,
        appointment_time="15:00",
    )

    with pytest.raises(ConflictError):
        strict.create(obj_in, doctor_principal)


def test_engine_rechecks_duration_bounds(scheduler, doctor_user, patient_user, doctor_principal):
    obj_in = AppointmentCreate.model_construct(
        patient_id=patient_user.id,
        doctor_id=doctor_user.id,
        clinic_id=None,
        appointment_date=DAY,
        appointment_time=time(9, 0),
        duration_minutes=10,
    )

    with pytest.raises(ValidationError, match="between 15 and 240"):
        scheduler.create(obj_in, doctor_principal)


def test_status_walks_the_happy_path(book, scheduler, doctor_principal):
    appointment = book()

    for next_status in ("confirmed", "in-progress", "completed"):
        appointment = scheduler.update_status(appointment.id, AppointmentStatus(next_status), doctor_principal)
        assert appointment.status == next_status


def test_confirmed_cannot_jump_to_completed(book, scheduler, doctor_principal):
    appointment = book()
    scheduler.update_status(appointment.id, AppointmentStatus.CONFIRMED, doctor_principal)

    with pytest.raises(InvalidTransitionError):
        scheduler.update_status(appointment.id, AppointmentStatus.COMPLETED, doctor_principal)


@pytest.mark.parametrize("terminal", TERMINAL)
@pytest.mark.parametrize("target", list(AppointmentStatus))
def test_terminal_status_never_transitions(book, scheduler, doctor_principal, terminal, target):
    appointment = book()
    if terminal == AppointmentStatus.COMPLETED:
        for step in (AppointmentStatus.CONFIRMED, AppointmentStatus.IN_PROGRESS):
            scheduler.update_status(appointment.id, step, doctor_principal)
    scheduler.update_status(appointment.id, terminal, doctor_principal)

    with pytest.raises(InvalidTransitionError):
        scheduler.update_status(appointment.id, target, doctor_principal)


def test_update_status_unknown_appointment(scheduler, doctor_principal):
    with pytest.raises(NotFoundError):
        scheduler.update_status("missing", AppointmentStatus.CONFIRMED, doctor_principal)


def test_update_keeps_own_slot(book, scheduler, doctor_principal):
    appointment = book("10:00")

    updated = scheduler.update(
        appointment.id,
        AppointmentUpdate(appointment_time="10:00", notes="Bring previous results"),
        doctor_principal,
    )

    assert updated.notes == "Bring previous results"


def test_update_reschedule_rechecks_conflicts(book, scheduler, doctor_principal):
    book("10:00")
    later = book("11:00")

    with pytest.raises(ConflictError):
        scheduler.update(later.id, AppointmentUpdate(appointment_time="10:20"), doctor_principal)

    moved = scheduler.update(later.id, AppointmentUpdate(appointment_time="12:00", duration_minutes=45), doctor_principal)
    assert moved.slot_label == "2024-03-01 12:00-12:45"


def test_update_extending_duration_into_next_booking_conflicts(book, scheduler, doctor_principal):
    first = book("10:00")
    book("10:30")

    with pytest.raises(ConflictError):
        scheduler.update(first.id, AppointmentUpdate(duration_minutes=45), doctor_principal)


def test_update_cannot_reschedule_terminal_appointment(book, scheduler, doctor_principal):
    appointment = book()
    scheduler.update_status(appointment.id, AppointmentStatus.CANCELLED, doctor_principal)

    with pytest.raises(InvalidTransitionError):
        scheduler.update(appointment.id, AppointmentUpdate(appointment_time="14:00"), doctor_principal)


def test_update_status_field_follows_transition_table(book, scheduler, doctor_principal):
    appointment = book()

    with pytest.raises(InvalidTransitionError):
        scheduler.update(appointment.id, AppointmentUpdate(status=AppointmentStatus.COMPLETED), doctor_principal)

    confirmed = scheduler.update(appointment.id, AppointmentUpdate(status=AppointmentStatus.CONFIRMED), doctor_principal)
    assert confirmed.status == "confirmed"


def test_no_overlapping_active_appointments_after_updates(book, scheduler, doctor_principal, db):
    a = book("09:00")
    b = book("09:30")
    for candidate in ("09:10", "09:45", "08:45"):
        try:
            scheduler.update(b.id, AppointmentUpdate(appointment_time=candidate), doctor_principal)
        except ConflictError:
            pass

    rows = [scheduler.get(a.id), scheduler.get(b.id)]
    active = [r for r in rows if AppointmentStatus(r.status) in ACTIVE_STATUSES]
    active.sort(key=lambda r: r.starts_at)
    assert active[0].ends_at <= active[1].starts_at


def test_schedule_views(book, scheduler, doctor_principal, second_doctor):
    today = today_local()
    late = book("15:00", day=today)
    early = book("08:00", day=today)
    book("09:00", day=today, doctor_id=second_doctor.id)
    soon = book("10:00", day=today + timedelta(days=3))
    book("10:00", day=today + timedelta(days=10))
    cancelled = book("12:00", day=today)
    scheduler.update_status(cancelled.id, AppointmentStatus.CANCELLED, doctor_principal)

    todays = scheduler.today(doctor_principal.id)
    assert [a.id for a in todays] == [early.id, late.id]

    upcoming = scheduler.upcoming(doctor_principal.id)
    assert [a.id for a in upcoming] == [early.id, late.id, soon.id]

    assert len(scheduler.today()) == 3


@pytest.mark.parametrize("days", [0, 91])
def test_upcoming_days_bounds(scheduler, days):
    with pytest.raises(ValidationError):
        scheduler.upcoming(days=days)


def test_stats(book, scheduler, doctor_principal):
    first = book("09:00")
    book("10:00")
    book("11:00", day=DAY + timedelta(days=1))
    scheduler.update_status(first.id, AppointmentStatus.CANCELLED, doctor_principal)

    stats = scheduler.stats(doctor_id=doctor_principal.id)

    assert stats.total == 3
    assert stats.by_status == {"scheduled": 2, "cancelled": 1}
    assert stats.by_type == {"consultation": 3}
    assert stats.by_date == {"2024-03-01": 2, "2024-03-02": 1}


def test_delete_is_hard(book, scheduler, doctor_principal):
    appointment = book()
    scheduler.delete(appointment.id, doctor_principal)

    with pytest.raises(NotFoundError):
        scheduler.get(appointment.id)


def test_serialization_failure_is_reported_as_conflict(scheduler):
    class SerializationFailure(Exception):
        pgcode = "40001"

    with pytest.raises(ConflictError):
        with scheduler._reservation():
            raise OperationalError("INSERT INTO appointments", {}, SerializationFailure())


def test_sqlite_lock_timeout_is_reported_as_conflict(scheduler):
    with pytest.raises(ConflictError):
        with scheduler._reservation():
            raise OperationalError("BEGIN IMMEDIATE", {}, sqlite3.OperationalError("database is locked"))


def test_other_operational_errors_propagate(scheduler):
    with pytest.raises(OperationalError):
        with scheduler._reservation():
            raise OperationalError("SELECT 1", {}, sqlite3.OperationalError("disk I/O error"))
