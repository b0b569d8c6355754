"""
Appointment service - scheduling with conflict detection.

A clinician's scheduled or confirmed appointments may not overlap. Overlap
is checked against the full interval [scheduled_at, scheduled_at + duration).
"""

import logging
from datetime import date, datetime, timedelta
from uuid import UUID

from sqlalchemy import false
from sqlalchemy.orm import Query, Session, joinedload

from app.db.enums import (
    BLOCKING_APPOINTMENT_STATUSES, MAX_DURATION_MINUTES, AppointmentStatus, Role,
)
from app.db.models import Appointment, Case, User
from app.schemas.appointment import AppointmentCreate, AppointmentUpdate
from app.schemas.auth import UserSession
from app.services import activity_service, notification_service, user_service
from app.utils.dates import as_utc, day_bounds, utcnow

logger = logging.getLogger(__name__)

_BLOCKING_VALUES = [s.value for s in BLOCKING_APPOINTMENT_STATUSES]


class AppointmentConflictError(Exception):
    """Requested slot overlaps another appointment of the same clinician."""


def _with_people(query: Query) -> Query:
    return query.options(
        joinedload(Appointment.worker),
        joinedload(Appointment.clinician),
        joinedload(Appointment.case),
    )


def get_appointment(db: Session, appointment_id: UUID) -> Appointment | None:
    return _with_people(db.query(Appointment)).filter(Appointment.id == appointment_id).first()


# =============================================================================
# Conflict detection
# =============================================================================


def find_conflict(
    db: Session,
    clinician_id: UUID,
    start: datetime,
    duration_minutes: int,
    exclude_id: UUID | None = None,
) -> Appointment | None:
    """
    First blocking appointment of the clinician overlapping [start, start + duration).

    Candidates are narrowed in SQL by the longest possible duration, then
    checked exactly in Python so the test works the same on every backend.
    """
    start = as_utc(start)
    end = start + timedelta(minutes=duration_minutes)
    query = db.query(Appointment).filter(
        Appointment.clinician_id == clinician_id,
        Appointment.status.in_(_BLOCKING_VALUES),
        Appointment.scheduled_at < end,
        Appointment.scheduled_at > start - timedelta(minutes=MAX_DURATION_MINUTES),
    )
    if exclude_id:
        query = query.filter(Appointment.id != exclude_id)

    for existing in query.order_by(Appointment.scheduled_at).all():
        existing_start = as_utc(existing.scheduled_at)
        existing_end = existing_start + timedelta(minutes=existing.duration_minutes)
        if existing_start < end and existing_end > start:
            return existing
    return None


def _ensure_free(db: Session, clinician_id: UUID, start: datetime, duration: int, exclude_id=None) -> None:
    conflict = find_conflict(db, clinician_id, start, duration, exclude_id=exclude_id)
    if conflict:
        raise AppointmentConflictError(
            f"Clinician already has an appointment at {as_utc(conflict.scheduled_at):%Y-%m-%d %H:%M} UTC"
        )


# =============================================================================
# Create / update
# =============================================================================


def create_appointment(db: Session, case: Case, data: AppointmentCreate, actor: User) -> Appointment:
    """
    Book an appointment.

    Raises:
        ValueError: worker is not a worker, or no clinician can be resolved
        AppointmentConflictError: the clinician is already booked
    """
    worker = user_service.get_active_user_with_role(db, data.worker_id, Role.WORKER)
    if not worker:
        raise ValueError("Worker not found or inactive")

    if actor.role == Role.CLINICIAN.value:
        clinician_id = actor.id
    else:
        clinician_id = data.clinician_id or case.clinician_id
    if not clinician_id:
        raise ValueError("No clinician assigned to this case")
    if not user_service.get_active_user_with_role(db, clinician_id, Role.CLINICIAN):
        raise ValueError("Clinician not found or inactive")

    scheduled_at = as_utc(data.scheduled_at)
    _ensure_free(db, clinician_id, scheduled_at, data.duration_minutes)

    appointment = Appointment(
        case_id=case.id,
        worker_id=worker.id,
        clinician_id=clinician_id,
        appointment_type=data.appointment_type.value,
        scheduled_at=scheduled_at,
        duration_minutes=data.duration_minutes,
        location=data.location.value,
        purpose=data.purpose,
        notes=data.notes,
    )
    db.add(appointment)
    db.commit()

    with notification_service.best_effort(db, "Appointment notification failed", case_id=str(case.id)):
        notification_service.notify_appointment_scheduled(db, appointment, actor)
        notification_service.commit_and_push(db)

    return get_appointment(db, appointment.id)


def update_appointment(db: Session, appointment: Appointment, data: AppointmentUpdate) -> Appointment:
    """
    Partial update; rescheduling re-checks conflicts excluding this appointment.

    Raises:
        AppointmentConflictError: the new slot is taken
    """
    changes = data.model_dump(exclude_unset=True)
    if "scheduled_at" in changes and changes["scheduled_at"] is not None:
        changes["scheduled_at"] = as_utc(changes["scheduled_at"])

    if {"scheduled_at", "duration_minutes"} & changes.keys():
        start = changes.get("scheduled_at") or appointment.scheduled_at
        duration = changes.get("duration_minutes") or appointment.duration_minutes
        if appointment.status in _BLOCKING_VALUES:
            _ensure_free(db, appointment.clinician_id, start, duration, exclude_id=appointment.id)

    for field, value in changes.items():
        if value is None and field in ("scheduled_at", "duration_minutes", "appointment_type", "location"):
            continue
        if hasattr(value, "value"):
            value = value.value
        setattr(appointment, field, value)

    db.commit()
    return get_appointment(db, appointment.id)


def change_status(
    db: Session,
    appointment: Appointment,
    new_status: AppointmentStatus,
    actor: User,
    reason: str | None = None,
) -> Appointment:
    """
    Set status; cancellation and completion stamp who/when.

    Moving a cancelled or completed appointment back to a blocking status
    re-checks the slot like a new booking.

    Raises:
        AppointmentConflictError: the slot was taken in the meantime
    """
    if new_status.value in _BLOCKING_VALUES and appointment.status not in _BLOCKING_VALUES:
        _ensure_free(
            db,
            appointment.clinician_id,
            appointment.scheduled_at,
            appointment.duration_minutes,
            exclude_id=appointment.id,
        )

    appointment.status = new_status.value
    now = utcnow()

    if new_status == AppointmentStatus.CANCELLED:
        appointment.cancelled_by_id = actor.id
        appointment.cancelled_at = now
        appointment.cancellation_reason = reason
    elif new_status == AppointmentStatus.COMPLETED:
        appointment.completed_at = now
        activity_service.log_appointment_completed(
            db,
            worker_id=appointment.worker_id,
            case_id=appointment.case_id,
            clinician_id=appointment.clinician_id,
            appointment_id=appointment.id,
        )

    db.commit()

    if new_status == AppointmentStatus.CANCELLED:
        with notification_service.best_effort(db, "Cancellation notification failed"):
            notification_service.notify_appointment_cancelled(db, appointment, actor)
            notification_service.commit_and_push(db)

    return get_appointment(db, appointment.id)


def cancel_appointment(db: Session, appointment: Appointment, actor: User, reason: str | None = None) -> Appointment:
    return change_status(db, appointment, AppointmentStatus.CANCELLED, actor, reason)


# =============================================================================
# Access, listing, stats
# =============================================================================


def can_view_appointment(appointment: Appointment, session: UserSession) -> bool:
    if session.role == Role.ADMIN:
        return True
    if session.user_id in (appointment.clinician_id, appointment.worker_id):
        return True
    return session.role == Role.CASE_MANAGER and appointment.case.case_manager_id == session.user_id


def can_manage_appointment(appointment: Appointment, session: UserSession) -> bool:
    """Owning clinician, the case manager on the case, or admin."""
    if session.role == Role.ADMIN:
        return True
    if session.role == Role.CLINICIAN:
        return appointment.clinician_id == session.user_id
    return session.role == Role.CASE_MANAGER and appointment.case.case_manager_id == session.user_id


def scope_appointment_query(query: Query, session: UserSession) -> Query:
    """
    Raises:
        PermissionError: for roles without an appointment view
    """
    if session.role == Role.ADMIN:
        return query
    if session.role == Role.CLINICIAN:
        return query.filter(Appointment.clinician_id == session.user_id)
    if session.role == Role.WORKER:
        return query.filter(Appointment.worker_id == session.user_id)
    if session.role == Role.CASE_MANAGER:
        return query.join(Case, Appointment.case_id == Case.id).filter(
            Case.case_manager_id == session.user_id
        )
    raise PermissionError("Access denied")


def list_appointments_query(
    db: Session,
    session: UserSession,
    case_id: UUID | None = None,
    clinician_id: UUID | None = None,
    worker_id: UUID | None = None,
    status: AppointmentStatus | None = None,
    appointment_type: str | None = None,
    day: date | None = None,
) -> Query:
    query = scope_appointment_query(_with_people(db.query(Appointment)), session)
    if case_id:
        query = query.filter(Appointment.case_id == case_id)
    if clinician_id:
        query = query.filter(Appointment.clinician_id == clinician_id)
    if worker_id:
        query = query.filter(Appointment.worker_id == worker_id)
    if status:
        query = query.filter(Appointment.status == status.value)
    if appointment_type:
        query = query.filter(Appointment.appointment_type == appointment_type)
    if day:
        start, end = day_bounds(day)
        query = query.filter(Appointment.scheduled_at >= start, Appointment.scheduled_at < end)
    return query.order_by(Appointment.scheduled_at.asc())


def get_stats(db: Session, session: UserSession, today: date) -> dict:
    """
    Role-scoped totals.

    Roles without an appointment view get zeros.
    """
    try:
        base = scope_appointment_query(db.query(Appointment), session)
    except PermissionError:
        base = db.query(Appointment).filter(false())

    now = utcnow()
    start, end = day_bounds(today)
    today_query = base.filter(Appointment.scheduled_at >= start, Appointment.scheduled_at < end)

    return {
        "total": base.count(),
        "today": today_query.count(),
        "upcoming": base.filter(
            Appointment.scheduled_at > now,
            Appointment.status.in_(_BLOCKING_VALUES),
        ).count(),
        "completed": base.filter(Appointment.status == AppointmentStatus.COMPLETED.value).count(),
        "today_appointments": _with_people(today_query).order_by(Appointment.scheduled_at).all(),
    }
