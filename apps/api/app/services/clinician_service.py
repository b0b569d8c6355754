"""Clinician service - workload, availability scoring and availability updates."""

from datetime import timedelta
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db.enums import ACTIVE_CLINICAL_STATUSES, BLOCKING_APPOINTMENT_STATUSES, Role
from app.db.models import Appointment, Case, User
from app.utils.dates import app_today, day_bounds, utcnow

_ACTIVE_CASE_VALUES = [s.value for s in ACTIVE_CLINICAL_STATUSES]
_BLOCKING_VALUES = [s.value for s in BLOCKING_APPOINTMENT_STATUSES]

BUSY_BELOW = 30
MODERATE_BELOW = 60


def availability_score(active_cases: int, today_appointments: int, week_appointments: int) -> int:
    """100 minus 10 per active case, 5 per appointment today and 1 per two this week; floor 0."""
    return max(0, 100 - active_cases * 10 - today_appointments * 5 - week_appointments // 2)


def availability_status(score: int) -> str:
    if score < BUSY_BELOW:
        return "busy"
    if score < MODERATE_BELOW:
        return "moderate"
    return "available"


def list_active_clinicians(db: Session) -> list[User]:
    return db.query(User).filter(
        User.role == Role.CLINICIAN.value,
        User.is_active.is_(True),
    ).order_by(User.first_name, User.last_name).all()


def get_clinician(db: Session, clinician_id: UUID) -> User | None:
    return db.query(User).filter(
        User.id == clinician_id,
        User.role == Role.CLINICIAN.value,
    ).first()


def _count_by_clinician(query, column, clinician_ids: list[UUID]) -> dict[UUID, int]:
    rows = query.filter(column.in_(clinician_ids)).with_entities(column, func.count()).group_by(column).all()
    return {clinician_id: count for clinician_id, count in rows}


def workloads(db: Session, clinician_ids: list[UUID]) -> dict[UUID, dict]:
    """
    Workload per clinician.

    active_cases: triaged/assessed/in_rehab cases.
    today_appointments / week_appointments: scheduled or confirmed, today
    and in the 7 days starting today (APP_TIMEZONE).
    """
    if not clinician_ids:
        return {}
    today = app_today()
    today_start, today_end = day_bounds(today)
    week_end, _ = day_bounds(today + timedelta(days=7))

    cases = _count_by_clinician(
        db.query(Case).filter(Case.status.in_(_ACTIVE_CASE_VALUES)),
        Case.clinician_id, clinician_ids,
    )
    booked = db.query(Appointment).filter(Appointment.status.in_(_BLOCKING_VALUES))
    today_counts = _count_by_clinician(
        booked.filter(Appointment.scheduled_at >= today_start, Appointment.scheduled_at < today_end),
        Appointment.clinician_id, clinician_ids,
    )
    week_counts = _count_by_clinician(
        booked.filter(Appointment.scheduled_at >= today_start, Appointment.scheduled_at < week_end),
        Appointment.clinician_id, clinician_ids,
    )

    result = {}
    for clinician_id in clinician_ids:
        active = cases.get(clinician_id, 0)
        today_count = today_counts.get(clinician_id, 0)
        week_count = week_counts.get(clinician_id, 0)
        score = availability_score(active, today_count, week_count)
        result[clinician_id] = {
            "active_cases": active,
            "today_appointments": today_count,
            "week_appointments": week_count,
            "availability_score": score,
            "status": availability_status(score),
        }
    return result


def available_with_workload(db: Session) -> list[tuple[User, dict]]:
    """Active, available clinicians with workload, best score first."""
    clinicians = db.query(User).filter(
        User.role == Role.CLINICIAN.value,
        User.is_active.is_(True),
        User.is_available.is_(True),
    ).all()
    loads = workloads(db, [c.id for c in clinicians])
    ranked = [(c, loads[c.id]) for c in clinicians]
    ranked.sort(key=lambda pair: pair[1]["availability_score"], reverse=True)
    return ranked


def active_cases(db: Session, clinician_id: UUID) -> list[Case]:
    return db.query(Case).filter(
        Case.clinician_id == clinician_id,
        Case.status.in_(_ACTIVE_CASE_VALUES),
    ).order_by(Case.created_at.desc()).all()


def set_availability(db: Session, clinician: User, is_available: bool, reason: str | None) -> User:
    clinician.is_available = is_available
    clinician.availability_reason = reason
    clinician.last_availability_update = utcnow()
    db.commit()
    db.refresh(clinician)
    return clinician
