"""
Work readiness service - daily pre-shift self-assessments.

Each submission advances the worker's 7-day cycle: consecutive days extend
the streak, a missed day restarts the cycle, and the seventh consecutive
day completes it. The next submission after a completed cycle opens a new
one.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session, joinedload

from app.core.structured_logging import build_log_context
from app.db.enums import (
    CYCLE_LENGTH_DAYS, ActivityLogType, CaseStatus, Mood, ReadinessLevel, Role, WorkReadinessStatus
)
from app.db.models import Case, Notification, User, WorkReadiness
from app.schemas.work_readiness import WorkReadinessCreate
from app.services import activity_service, notification_service, readiness_assignment_service
from app.utils.dates import app_today, utcnow

logger = logging.getLogger(__name__)

DUPLICATE_SUBMISSION = "You have already submitted your work readiness assessment for today"

_ACTIVITY_PRIORITY = {
    ReadinessLevel.FIT.value: "low",
    ReadinessLevel.MINOR.value: "medium",
    ReadinessLevel.NOT_FIT.value: "high",
}


@dataclass(frozen=True)
class CycleState:
    cycle_start: date
    cycle_day: int
    streak_days: int
    cycle_completed: bool


def next_cycle_state(previous: WorkReadiness | None, today: date) -> CycleState:
    """Cycle state for a submission made today, given the worker's latest one."""
    if previous is None or previous.cycle_completed:
        return CycleState(today, 1, 1, False)
    if today - previous.submitted_date > timedelta(days=1):
        # Missed at least one day: today starts a fresh cycle
        return CycleState(today, 1, 1, False)
    streak = previous.streak_days + 1
    return CycleState(
        previous.cycle_start,
        previous.cycle_day + 1,
        streak,
        streak >= CYCLE_LENGTH_DAYS,
    )


def cycle_message(state: CycleState) -> str:
    if state.cycle_completed:
        return f"Cycle complete! {CYCLE_LENGTH_DAYS} consecutive days achieved."
    if state.streak_days == 1:
        return "Day 1 complete! Great start to your new cycle."
    return f"Day {state.streak_days} complete! Keep the streak going."


def latest_assessment(db: Session, worker_id: UUID) -> WorkReadiness | None:
    return db.query(WorkReadiness).filter(
        WorkReadiness.worker_id == worker_id
    ).order_by(WorkReadiness.submitted_date.desc(), WorkReadiness.submitted_at.desc()).first()


def get_assessment(db: Session, assessment_id: UUID) -> WorkReadiness | None:
    return db.query(WorkReadiness).options(
        joinedload(WorkReadiness.worker)
    ).filter(WorkReadiness.id == assessment_id).first()


def get_today_assessment(db: Session, worker_id: UUID, today: date | None = None) -> WorkReadiness | None:
    return db.query(WorkReadiness).filter(
        WorkReadiness.worker_id == worker_id,
        WorkReadiness.submitted_date == (today or app_today()),
    ).first()


def _open_case(db: Session, worker_id: UUID) -> Case | None:
    return db.query(Case).filter(
        Case.worker_id == worker_id,
        Case.status != CaseStatus.CLOSED.value,
    ).order_by(Case.created_at.desc()).first()


def submit_assessment(
    db: Session,
    worker: User,
    data: WorkReadinessCreate,
) -> tuple[WorkReadiness, CycleState, bool]:
    """
    Store today's assessment and advance the cycle.

    Also completes today's open assignment, logs the assessment on the
    worker's open case feed and notifies the team leader (best-effort).

    Returns:
        (assessment, cycle state, whether an assignment was completed)

    Raises:
        ValueError: the worker already submitted today
    """
    today = app_today()
    if get_today_assessment(db, worker.id, today):
        raise ValueError(DUPLICATE_SUBMISSION)

    state = next_cycle_state(latest_assessment(db, worker.id), today)
    assessment = WorkReadiness(
        worker_id=worker.id,
        team_leader_id=worker.team_leader_id,
        team=worker.team,
        fatigue_level=data.fatigue_level,
        pain_discomfort=data.pain_discomfort,
        pain_areas=[area.value for area in data.pain_areas],
        readiness_level=data.readiness_level.value,
        mood=data.mood.value,
        notes=data.notes,
        cycle_start=state.cycle_start,
        cycle_day=state.cycle_day,
        streak_days=state.streak_days,
        cycle_completed=state.cycle_completed,
        submitted_date=today,
    )
    db.add(assessment)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ValueError(DUPLICATE_SUBMISSION)

    completed = readiness_assignment_service.complete_for_submission(db, worker.id, today, assessment.id)

    case = _open_case(db, worker.id)
    if case:
        activity_service.log_activity(
            db,
            worker_id=worker.id,
            activity_type=ActivityLogType.WORK_READINESS,
            title="Work readiness submitted",
            case_id=case.id,
            clinician_id=case.clinician_id,
            description=f"Readiness: {data.readiness_level.value.replace('_', ' ')}",
            priority=_ACTIVITY_PRIORITY[data.readiness_level.value],
            details={"assessment_id": str(assessment.id), "fatigue_level": data.fatigue_level},
        )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError(DUPLICATE_SUBMISSION)
    db.refresh(assessment)

    logger.info(
        "Work readiness submitted (cycle day %s)", state.cycle_day,
        extra=build_log_context(user_id=str(worker.id), role=worker.role),
    )
    if assessment.team_leader_id:
        with notification_service.best_effort(db, "Work readiness notification failed", user_id=str(worker.id)):
            notification_service.notify_work_readiness_submitted(db, assessment, worker)
            notification_service.commit_and_push(db)
    return assessment, state, completed


# =============================================================================
# Team leader views
# =============================================================================


def team_members(db: Session, leader_id: UUID) -> list[User]:
    """Active workers on the leader's team."""
    return db.query(User).filter(
        User.team_leader_id == leader_id,
        User.role == Role.WORKER.value,
        User.is_active.is_(True),
    ).order_by(User.last_name, User.first_name).all()


def assessments_between(db: Session, worker_ids: list[UUID], start: date, end: date) -> list[WorkReadiness]:
    """Assessments with submitted_date in [start, end], newest first."""
    if not worker_ids:
        return []
    return db.query(WorkReadiness).options(joinedload(WorkReadiness.worker)).filter(
        WorkReadiness.worker_id.in_(worker_ids),
        WorkReadiness.submitted_date >= start,
        WorkReadiness.submitted_date <= end,
    ).order_by(WorkReadiness.submitted_date.desc(), WorkReadiness.submitted_at.desc()).all()


def readiness_breakdown(assessments: list[WorkReadiness]) -> dict[str, int]:
    counts = Counter(a.readiness_level for a in assessments)
    return {level.value: counts.get(level.value, 0) for level in ReadinessLevel}


def get_team_readiness(db: Session, leader: User, start: date | None = None, end: date | None = None) -> dict:
    """Compliance over [start, end] (default today): who submitted, who didn't, and how they feel."""
    end = end or app_today()
    start = start or end
    if start > end:
        raise ValueError("start_date must not be after end_date")

    members = team_members(db, leader.id)
    assessments = assessments_between(db, [m.id for m in members], start, end)
    submitted_ids = {a.worker_id for a in assessments}
    missing = [m for m in members if m.id not in submitted_ids]
    fatigue = Counter(a.fatigue_level for a in assessments)
    total = len(members)

    return {
        "start_date": start,
        "end_date": end,
        "compliance": {
            "total_team_members": total,
            "submitted_assessments": len(assessments),
            "compliance_rate": round(len(submitted_ids) / total * 100) if total else 0,
            "non_compliant_count": len(missing),
        },
        "assessments": assessments,
        "non_compliant_workers": missing,
        "readiness_stats": readiness_breakdown(assessments),
        "fatigue_stats": {level: fatigue.get(level, 0) for level in range(1, 6)},
    }


def get_history(db: Session, leader: User, days: int = 7) -> dict:
    """Daily compliance for each of the last `days` days, newest first."""
    today = app_today()
    start = today - timedelta(days=days - 1)
    members = team_members(db, leader.id)
    total = len(members)
    per_day: dict[date, set[UUID]] = {}
    for assessment in assessments_between(db, [m.id for m in members], start, today):
        per_day.setdefault(assessment.submitted_date, set()).add(assessment.worker_id)

    daily = []
    for offset in range(days):
        day = today - timedelta(days=offset)
        count = len(per_day.get(day, ()))
        daily.append({
            "date": day,
            "submitted_count": count,
            "total_team_members": total,
            "compliance_rate": round(count / total * 100) if total else 0,
        })
    return {"days": days, "daily_compliance": daily}


def logs_query(
    db: Session,
    leader: User,
    worker_id: UUID | None = None,
    readiness_level: ReadinessLevel | None = None,
    fatigue_level: int | None = None,
    mood: Mood | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> Query:
    """Assessments submitted to this leader, filtered, newest first."""
    query = db.query(WorkReadiness).options(joinedload(WorkReadiness.worker)).filter(
        WorkReadiness.team_leader_id == leader.id
    )
    if worker_id:
        query = query.filter(WorkReadiness.worker_id == worker_id)
    if readiness_level:
        query = query.filter(WorkReadiness.readiness_level == readiness_level.value)
    if fatigue_level:
        query = query.filter(WorkReadiness.fatigue_level == fatigue_level)
    if mood:
        query = query.filter(WorkReadiness.mood == mood.value)
    if date_from:
        query = query.filter(WorkReadiness.submitted_date >= date_from)
    if date_to:
        query = query.filter(WorkReadiness.submitted_date <= date_to)
    return query.order_by(WorkReadiness.submitted_date.desc(), WorkReadiness.submitted_at.desc())


def mark_reviewed(db: Session, assessment: WorkReadiness, leader: User) -> WorkReadiness:
    """A followed-up assessment stays followed up."""
    if assessment.status == WorkReadinessStatus.SUBMITTED.value:
        assessment.status = WorkReadinessStatus.REVIEWED.value
    assessment.reviewed_by_id = leader.id
    assessment.reviewed_at = utcnow()
    db.commit()
    return get_assessment(db, assessment.id)


def follow_up(
    db: Session,
    leader: User,
    worker: User,
    reason: str | None = None,
    message: str | None = None,
    assessment: WorkReadiness | None = None,
) -> Notification | None:
    """
    Send the worker a reminder, optionally recording it against one of their assessments.

    The notification is the point of the call, so it is not best-effort.
    """
    if assessment is not None:
        assessment.status = WorkReadinessStatus.FOLLOWED_UP.value
        assessment.follow_up_reason = reason
        assessment.follow_up_notes = message
        assessment.reviewed_by_id = leader.id
        assessment.reviewed_at = utcnow()
    notification = notification_service.notify_work_readiness_follow_up(db, worker, leader, reason, message)
    notification_service.commit_and_push(db)
    logger.info(
        "Work readiness follow-up sent",
        extra=build_log_context(user_id=str(leader.id), role=leader.role),
    )
    return notification
