"""Check-in service - daily worker self-reports, review and stats."""

import logging
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import false
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from app.db.enums import OPEN_PLAN_STATUSES, Role
from app.db.models import Case, CheckIn, RehabPlan, User
from app.schemas.auth import UserSession
from app.schemas.check_in import CheckInCreate, CheckInUpdate
from app.services import activity_service, alert_service
from app.utils.dates import app_today, utcnow

logger = logging.getLogger(__name__)

DUPLICATE_CHECK_IN = "Check-in already exists for today"
STATS_WINDOW_DAYS = 7

_JSON_SECTIONS = (
    "functional_status",
    "medication_compliance",
    "exercise_compliance",
    "work_status",
    "symptoms",
)


def _dump_sections(data: CheckInCreate | CheckInUpdate, changes: dict) -> dict:
    """Replace nested models with plain JSON so the columns store dicts."""
    for section in _JSON_SECTIONS:
        if changes.get(section) is not None:
            changes[section] = getattr(data, section).model_dump(mode="json")
    return changes


def get_check_in(db: Session, check_in_id: UUID) -> CheckIn | None:
    return db.query(CheckIn).filter(CheckIn.id == check_in_id).first()


def get_today_check_in(db: Session, case_id: UUID, worker_id: UUID, today: date) -> CheckIn | None:
    return db.query(CheckIn).filter(
        CheckIn.case_id == case_id,
        CheckIn.worker_id == worker_id,
        CheckIn.check_in_date == today,
    ).first()


def active_plan_id(db: Session, case_id: UUID) -> UUID | None:
    row = db.query(RehabPlan.id).filter(
        RehabPlan.case_id == case_id,
        RehabPlan.status.in_([s.value for s in OPEN_PLAN_STATUSES]),
    ).order_by(RehabPlan.created_at.desc()).first()
    return row.id if row else None


def create_check_in(db: Session, case: Case, data: CheckInCreate, worker: User) -> tuple[CheckIn, list[str]]:
    """
    Store today's check-in, log it to the activity feed and run alerting.

    The caller has already checked that the case belongs to the worker and
    is not closed.

    Raises:
        ValueError: a check-in for today already exists
    """
    today = app_today()
    if get_today_check_in(db, case.id, worker.id, today):
        raise ValueError(DUPLICATE_CHECK_IN)

    values = _dump_sections(data, data.model_dump(exclude={"case_id"}))
    check_in = CheckIn(
        case_id=case.id,
        worker_id=worker.id,
        check_in_date=today,
        **values,
    )
    db.add(check_in)
    try:
        db.flush()
    except IntegrityError:
        # Lost the race with a concurrent submit for the same day
        db.rollback()
        raise ValueError(DUPLICATE_CHECK_IN)

    activity_service.log_daily_check_in(
        db,
        worker_id=worker.id,
        case_id=case.id,
        pain_level=check_in.pain_current,
        clinician_id=case.clinician_id,
        rehab_plan_id=active_plan_id(db, case.id),
        check_in_id=check_in.id,
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError(DUPLICATE_CHECK_IN)
    db.refresh(check_in)

    alerts = alert_service.run_check_in_alerts(
        db, case, alert_service.CheckInSignal.from_check_in(check_in)
    )
    return check_in, alerts


# =============================================================================
# Access & listing
# =============================================================================


def can_view_check_in(check_in: CheckIn, session: UserSession) -> bool:
    if session.role == Role.ADMIN or check_in.worker_id == session.user_id:
        return True
    case = check_in.case
    if session.role == Role.CLINICIAN:
        return case.clinician_id == session.user_id
    if session.role == Role.CASE_MANAGER:
        return case.case_manager_id == session.user_id
    return False


def is_case_reviewer(check_in: CheckIn, session: UserSession) -> bool:
    """Clinician or case manager assigned to the check-in's case."""
    return session.user_id in (check_in.case.clinician_id, check_in.case.case_manager_id)


def scope_check_in_query(query: Query, session: UserSession) -> Query:
    if session.role == Role.ADMIN:
        return query
    if session.role == Role.WORKER:
        return query.filter(CheckIn.worker_id == session.user_id)
    if session.role == Role.CLINICIAN:
        return query.join(Case, CheckIn.case_id == Case.id).filter(Case.clinician_id == session.user_id)
    if session.role == Role.CASE_MANAGER:
        return query.join(Case, CheckIn.case_id == Case.id).filter(Case.case_manager_id == session.user_id)
    return query.filter(false())


def list_check_ins_query(
    db: Session,
    session: UserSession,
    case_id: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> Query:
    query = scope_check_in_query(db.query(CheckIn), session)
    if case_id:
        query = query.filter(CheckIn.case_id == case_id)
    if date_from:
        query = query.filter(CheckIn.check_in_date >= date_from)
    if date_to:
        query = query.filter(CheckIn.check_in_date <= date_to)
    return query.order_by(CheckIn.check_in_date.desc(), CheckIn.created_at.desc())


# =============================================================================
# Update
# =============================================================================


def update_check_in(db: Session, check_in: CheckIn, data: CheckInUpdate, session: UserSession) -> CheckIn:
    """
    Apply an update.

    Reviewers (case clinician / case manager) may only set review_notes.
    The worker may edit their own self-report on the day it was submitted.

    Raises:
        PermissionError: anyone else, or a worker editing a past day
    """
    changes = data.model_dump(exclude_unset=True)
    review_notes = changes.pop("review_notes", None)

    if session.role in (Role.CLINICIAN, Role.CASE_MANAGER) and is_case_reviewer(check_in, session):
        if changes:
            raise PermissionError("Reviewers can only add review notes")
        if review_notes is not None:
            check_in.review_notes = review_notes
            check_in.reviewed_by_id = session.user_id
            check_in.reviewed_at = utcnow()
    elif check_in.worker_id == session.user_id:
        if review_notes is not None:
            raise PermissionError("Workers cannot add review notes")
        if check_in.check_in_date != app_today():
            raise PermissionError("Check-ins can only be edited on the day they were submitted")
        for field, value in _dump_sections(data, changes).items():
            if field == "pain_current" and value is None:
                continue
            setattr(check_in, field, value)
    else:
        raise PermissionError("Access denied")

    db.commit()
    db.refresh(check_in)
    return check_in


# =============================================================================
# Stats
# =============================================================================


def calculate_streak(check_in_dates: list[date], today: date) -> int:
    """Consecutive days with a check-in, ending today."""
    days = set(check_in_dates)
    streak = 0
    cursor = today
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def get_stats(db: Session, session: UserSession) -> dict:
    """Dashboard stats; workers see their own, everyone else the whole table."""
    today = app_today()
    query = db.query(CheckIn)
    if session.role == Role.WORKER:
        query = query.filter(CheckIn.worker_id == session.user_id)

    window_start = today - timedelta(days=STATS_WINDOW_DAYS - 1)
    recent = (
        query.filter(CheckIn.check_in_date >= window_start, CheckIn.check_in_date <= today)
        .order_by(CheckIn.check_in_date.desc(), CheckIn.created_at.desc())
        .all()
    )

    total = len(recent)
    avg_pain = round(sum(c.pain_current for c in recent) / total, 1) if total else None
    completed = sum(1 for c in recent if (c.exercise_compliance or {}).get("completed"))

    return {
        "today_check_in": any(c.check_in_date == today for c in recent),
        "last_check_in": recent[0] if recent else None,
        "avg_pain_level": avg_pain,
        "exercise_compliance": round(completed / max(total, 1) * 100),
        "total_check_ins": total,
        "streak": calculate_streak([c.check_in_date for c in recent], today),
    }
