"""Activity logging service - worker activity feed shown to clinicians."""

from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Query, Session, joinedload

from app.db.enums import ActivityLogType, ActivityPriority, Role
from app.db.models import ActivityLog, Case
from app.schemas.auth import UserSession
from app.utils.dates import app_today, day_bounds, utcnow


def log_activity(
    db: Session,
    worker_id: UUID,
    activity_type: ActivityLogType,
    title: str,
    case_id: UUID | None = None,
    clinician_id: UUID | None = None,
    rehab_plan_id: UUID | None = None,
    description: str | None = None,
    priority: str = "low",
    details: dict | None = None,
) -> ActivityLog:
    """
    Log a worker activity.

    Args:
        db: Database session
        worker_id: Worker the activity belongs to
        activity_type: Type of activity (from ActivityLogType enum)
        title: Short headline for the feed
        case_id: Case context, if any
        clinician_id: Clinician who should see the entry
        rehab_plan_id: Active rehab plan at the time, if any
        description: Longer text
        priority: low / medium / high
        details: Type-specific details as JSON (identifiers and scores only)

    Returns:
        The created activity log entry
    """
    activity = ActivityLog(
        worker_id=worker_id,
        case_id=case_id,
        clinician_id=clinician_id,
        rehab_plan_id=rehab_plan_id,
        activity_type=activity_type.value,
        title=title,
        description=description,
        priority=priority,
        details=details,
    )
    db.add(activity)
    db.flush()  # Don't commit - let caller control transaction
    return activity


def check_in_priority(pain_level: int) -> str:
    """Feed priority for a check-in by current pain."""
    if pain_level >= 7:
        return "high"
    if pain_level >= 5:
        return "medium"
    return "low"


def log_daily_check_in(
    db: Session,
    worker_id: UUID,
    case_id: UUID,
    pain_level: int,
    clinician_id: UUID | None = None,
    rehab_plan_id: UUID | None = None,
    check_in_id: UUID | None = None,
) -> ActivityLog:
    """Log a submitted daily check-in."""
    return log_activity(
        db=db,
        worker_id=worker_id,
        case_id=case_id,
        clinician_id=clinician_id,
        rehab_plan_id=rehab_plan_id,
        activity_type=ActivityLogType.DAILY_CHECK_IN,
        title="Daily check-in submitted",
        description=f"Pain level {pain_level}/10",
        priority=check_in_priority(pain_level),
        details={"pain_level": pain_level, "check_in_id": str(check_in_id) if check_in_id else None},
    )


def log_rehab_progress(
    db: Session,
    worker_id: UUID,
    case_id: UUID,
    rehab_plan_id: UUID,
    clinician_id: UUID | None,
    progress_type: str,
) -> ActivityLog:
    """Log a rehab progress entry."""
    return log_activity(
        db=db,
        worker_id=worker_id,
        case_id=case_id,
        clinician_id=clinician_id,
        rehab_plan_id=rehab_plan_id,
        activity_type=ActivityLogType.REHAB_PROGRESS,
        title="Rehab progress recorded",
        description=progress_type.replace("_", " "),
        details={"progress_type": progress_type},
    )


def log_appointment_completed(
    db: Session,
    worker_id: UUID,
    case_id: UUID,
    clinician_id: UUID,
    appointment_id: UUID,
) -> ActivityLog:
    return log_activity(
        db=db,
        worker_id=worker_id,
        case_id=case_id,
        clinician_id=clinician_id,
        activity_type=ActivityLogType.APPOINTMENT_COMPLETED,
        title="Appointment completed",
        details={"appointment_id": str(appointment_id)},
    )


# =============================================================================
# Reading & review
# =============================================================================


def get_activity(db: Session, activity_id: UUID) -> ActivityLog | None:
    return db.query(ActivityLog).options(
        joinedload(ActivityLog.worker),
        joinedload(ActivityLog.case),
    ).filter(ActivityLog.id == activity_id).first()


def can_view_activity(activity: ActivityLog, session: UserSession) -> bool:
    """Admin, or the clinician / case manager on the entry's case."""
    if session.role == Role.ADMIN:
        return True
    if activity.case is None:
        return session.role == Role.CLINICIAN and activity.clinician_id == session.user_id
    if session.role == Role.CLINICIAN:
        return activity.case.clinician_id == session.user_id
    if session.role == Role.CASE_MANAGER:
        return activity.case.case_manager_id == session.user_id
    return False


def scope_activity_query(query: Query, session: UserSession) -> Query:
    """
    Raises:
        PermissionError: for roles without an activity feed
    """
    if session.role == Role.ADMIN:
        return query
    if session.role == Role.CLINICIAN:
        return query.outerjoin(Case, ActivityLog.case_id == Case.id).filter(or_(
            Case.clinician_id == session.user_id,
            and_(ActivityLog.case_id.is_(None), ActivityLog.clinician_id == session.user_id),
        ))
    if session.role == Role.CASE_MANAGER:
        return query.join(Case, ActivityLog.case_id == Case.id).filter(
            Case.case_manager_id == session.user_id
        )
    raise PermissionError("Access denied")


def list_activity_query(
    db: Session,
    session: UserSession,
    case_id: UUID | None = None,
    worker_id: UUID | None = None,
    activity_type: ActivityLogType | None = None,
    is_reviewed: bool | None = None,
    priority: ActivityPriority | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> Query:
    """Newest first. Date bounds are calendar days in APP_TIMEZONE, both inclusive."""
    query = scope_activity_query(
        db.query(ActivityLog).options(joinedload(ActivityLog.worker), joinedload(ActivityLog.case)),
        session,
    )
    if case_id:
        query = query.filter(ActivityLog.case_id == case_id)
    if worker_id:
        query = query.filter(ActivityLog.worker_id == worker_id)
    if activity_type:
        query = query.filter(ActivityLog.activity_type == activity_type.value)
    if is_reviewed is not None:
        query = query.filter(ActivityLog.is_reviewed.is_(is_reviewed))
    if priority:
        query = query.filter(ActivityLog.priority == priority.value)
    if date_from:
        query = query.filter(ActivityLog.created_at >= day_bounds(date_from)[0])
    if date_to:
        query = query.filter(ActivityLog.created_at < day_bounds(date_to)[1])
    return query.order_by(ActivityLog.created_at.desc())


def has_worker_access(db: Session, worker_id: UUID, session: UserSession) -> bool:
    """Admins, or a clinician / case manager on any of the worker's cases."""
    if session.role == Role.ADMIN:
        return True
    return db.query(Case.id).filter(
        Case.worker_id == worker_id,
        or_(Case.clinician_id == session.user_id, Case.case_manager_id == session.user_id),
    ).first() is not None


def mark_reviewed(db: Session, activity: ActivityLog, reviewer_id: UUID, notes: str | None = None) -> ActivityLog:
    """Reviewing again replaces the notes and reviewer."""
    activity.is_reviewed = True
    activity.reviewed_by_id = reviewer_id
    activity.reviewed_at = utcnow()
    if notes is not None:
        activity.review_notes = notes
    db.commit()
    return get_activity(db, activity.id)


def get_summary(db: Session, session: UserSession) -> dict:
    """Feed counts for the caller's scope."""
    base = scope_activity_query(db.query(ActivityLog), session)
    now = utcnow()
    today_start, _ = day_bounds(app_today())

    by_type = base.with_entities(ActivityLog.activity_type, func.count(ActivityLog.id)).group_by(
        ActivityLog.activity_type
    ).order_by(func.count(ActivityLog.id).desc()).all()
    by_priority = base.with_entities(ActivityLog.priority, func.count(ActivityLog.id)).group_by(
        ActivityLog.priority
    ).order_by(func.count(ActivityLog.id).desc()).all()

    return {
        "total": base.count(),
        "unreviewed": base.filter(ActivityLog.is_reviewed.is_(False)).count(),
        "last_30_days": base.filter(ActivityLog.created_at >= now - timedelta(days=30)).count(),
        "last_7_days": base.filter(ActivityLog.created_at >= now - timedelta(days=7)).count(),
        "today": base.filter(ActivityLog.created_at >= today_start).count(),
        "by_type": [{"activity_type": t, "count": c} for t, c in by_type],
        "by_priority": [{"priority": p, "count": c} for p, c in by_priority],
    }
