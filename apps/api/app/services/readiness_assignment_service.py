"""
Work readiness assignments - team leaders ask workers to submit on a given day.

An assignment is due at due_time (end of the assigned day in APP_TIMEZONE
unless the leader sets one). Submitting readiness completes the worker's
open assignment for that day; mark_overdue sweeps pending ones past due.
"""

import logging
from datetime import date, datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Query, Session, joinedload

from app.core.structured_logging import build_log_context
from app.db.enums import ACTIVE_ASSIGNMENT_STATUSES, AssignmentStatus, Role
from app.db.models import User, WorkReadinessAssignment
from app.schemas.auth import UserSession
from app.schemas.work_readiness import AssignmentCreate
from app.services import notification_service
from app.utils.dates import app_today, as_utc, day_bounds, utcnow

logger = logging.getLogger(__name__)

_ACTIVE_VALUES = [s.value for s in ACTIVE_ASSIGNMENT_STATUSES]
_OPEN_VALUES = [AssignmentStatus.PENDING.value, AssignmentStatus.OVERDUE.value]
STATS_WINDOW_DAYS = 7


def default_due_time(day: date) -> datetime:
    """End of the assigned day in APP_TIMEZONE, as UTC."""
    return day_bounds(day)[1]


def get_assignment(db: Session, assignment_id: UUID) -> WorkReadinessAssignment | None:
    return db.query(WorkReadinessAssignment).options(
        joinedload(WorkReadinessAssignment.worker)
    ).filter(WorkReadinessAssignment.id == assignment_id).first()


def create_assignments(
    db: Session,
    leader: User,
    data: AssignmentCreate,
) -> tuple[list[WorkReadinessAssignment], list[UUID]]:
    """
    Create one assignment per worker for the assigned date.

    Workers who already hold a pending, completed or overdue assignment for
    that date are skipped and returned separately.

    Raises:
        PermissionError: a worker is not an active member of the leader's team
        ValueError: due_time falls before the assigned date, or the date is past
    """
    worker_ids = list(dict.fromkeys(data.worker_ids))
    query = db.query(User).filter(
        User.id.in_(worker_ids),
        User.role == Role.WORKER.value,
        User.is_active.is_(True),
    )
    if leader.role != Role.ADMIN.value:
        query = query.filter(User.team_leader_id == leader.id)
    workers = {w.id: w for w in query.all()}
    if len(workers) != len(worker_ids):
        raise PermissionError("Some workers do not belong to your team")

    if data.assigned_date < app_today():
        raise ValueError("Cannot assign work readiness for a past date")
    due_time = as_utc(data.due_time) if data.due_time else default_due_time(data.assigned_date)
    if due_time <= day_bounds(data.assigned_date)[0]:
        raise ValueError("due_time must fall on or after the assigned date")

    taken = {
        row.worker_id for row in db.query(WorkReadinessAssignment.worker_id).filter(
            WorkReadinessAssignment.worker_id.in_(worker_ids),
            WorkReadinessAssignment.assigned_date == data.assigned_date,
            WorkReadinessAssignment.status.in_(_ACTIVE_VALUES),
        ).all()
    }

    created = []
    for worker_id in worker_ids:
        if worker_id in taken:
            continue
        assignment = WorkReadinessAssignment(
            team_leader_id=leader.id,
            worker_id=worker_id,
            team=workers[worker_id].team,
            assigned_date=data.assigned_date,
            due_time=due_time,
            notes=data.notes,
        )
        db.add(assignment)
        created.append(assignment)
    db.commit()
    for assignment in created:
        db.refresh(assignment)

    logger.info(
        "Work readiness assigned to %s workers (%s skipped)", len(created), len(taken),
        extra=build_log_context(user_id=str(leader.id), role=leader.role),
    )
    if created:
        with notification_service.best_effort(db, "Assignment notifications failed", user_id=str(leader.id)):
            notification_service.notify_work_readiness_assigned(db, created, leader)
            notification_service.commit_and_push(db)

    skipped = [worker_id for worker_id in worker_ids if worker_id in taken]
    return created, skipped


# =============================================================================
# Listing
# =============================================================================


def list_assignments_query(
    db: Session,
    session: UserSession,
    status: AssignmentStatus | None = None,
    worker_id: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> Query:
    """Assignments the leader created (all of them for admins), newest date first."""
    query = db.query(WorkReadinessAssignment).options(joinedload(WorkReadinessAssignment.worker))
    if session.role != Role.ADMIN:
        query = query.filter(WorkReadinessAssignment.team_leader_id == session.user_id)
    if status:
        query = query.filter(WorkReadinessAssignment.status == status.value)
    if worker_id:
        query = query.filter(WorkReadinessAssignment.worker_id == worker_id)
    if date_from:
        query = query.filter(WorkReadinessAssignment.assigned_date >= date_from)
    if date_to:
        query = query.filter(WorkReadinessAssignment.assigned_date <= date_to)
    return query.order_by(
        WorkReadinessAssignment.assigned_date.desc(),
        WorkReadinessAssignment.created_at.desc(),
    )


def worker_assignments_query(db: Session, worker_id: UUID, status: AssignmentStatus | None = None) -> Query:
    query = db.query(WorkReadinessAssignment).options(
        joinedload(WorkReadinessAssignment.worker)
    ).filter(WorkReadinessAssignment.worker_id == worker_id)
    if status:
        query = query.filter(WorkReadinessAssignment.status == status.value)
    return query.order_by(WorkReadinessAssignment.assigned_date.desc())


def today_assignment(db: Session, worker_id: UUID, today: date | None = None) -> WorkReadinessAssignment | None:
    return db.query(WorkReadinessAssignment).options(
        joinedload(WorkReadinessAssignment.worker)
    ).filter(
        WorkReadinessAssignment.worker_id == worker_id,
        WorkReadinessAssignment.assigned_date == (today or app_today()),
        WorkReadinessAssignment.status != AssignmentStatus.CANCELLED.value,
    ).order_by(WorkReadinessAssignment.created_at.desc()).first()


def open_assignment(db: Session, worker_id: UUID, day: date) -> WorkReadinessAssignment | None:
    """Pending or overdue assignment for the day; overdue ones can still be completed."""
    return db.query(WorkReadinessAssignment).filter(
        WorkReadinessAssignment.worker_id == worker_id,
        WorkReadinessAssignment.assigned_date == day,
        WorkReadinessAssignment.status.in_(_OPEN_VALUES),
    ).order_by(WorkReadinessAssignment.created_at.desc()).first()


# =============================================================================
# Status changes
# =============================================================================


def complete_for_submission(db: Session, worker_id: UUID, day: date, assessment_id: UUID) -> bool:
    """Complete the worker's open assignment for the day. Flushes only."""
    assignment = open_assignment(db, worker_id, day)
    if assignment is None:
        return False
    assignment.status = AssignmentStatus.COMPLETED.value
    assignment.completed_at = utcnow()
    assignment.work_readiness_id = assessment_id
    db.flush()
    return True


def update_status(
    db: Session,
    assignment: WorkReadinessAssignment,
    status: AssignmentStatus,
    session: UserSession,
    notes: str | None = None,
) -> WorkReadinessAssignment:
    """
    Raises:
        PermissionError: caller is neither the leader, the worker nor an admin,
            or a worker tried anything other than completing
        ValueError: the assignment was cancelled
    """
    is_leader = assignment.team_leader_id == session.user_id or session.role == Role.ADMIN
    is_worker = assignment.worker_id == session.user_id
    if not (is_leader or is_worker):
        raise PermissionError("Unauthorized to update this assignment")
    if not is_leader and status != AssignmentStatus.COMPLETED:
        raise PermissionError("Workers can only mark assignments as completed")
    if assignment.status == AssignmentStatus.CANCELLED.value:
        raise ValueError("Assignment is cancelled")

    if status == AssignmentStatus.COMPLETED and assignment.status != AssignmentStatus.COMPLETED.value:
        assignment.completed_at = utcnow()
    elif status != AssignmentStatus.COMPLETED:
        assignment.completed_at = None
    assignment.status = status.value
    if notes is not None:
        assignment.notes = notes
    db.commit()
    return get_assignment(db, assignment.id)


def cancel_assignment(db: Session, assignment: WorkReadinessAssignment, session: UserSession) -> WorkReadinessAssignment:
    """
    Raises:
        PermissionError: caller did not create the assignment and is not an admin
        ValueError: the assignment is already completed
    """
    if assignment.team_leader_id != session.user_id and session.role != Role.ADMIN:
        raise PermissionError("Unauthorized to cancel this assignment")
    if assignment.status == AssignmentStatus.COMPLETED.value:
        raise ValueError("Completed assignments cannot be cancelled")
    assignment.status = AssignmentStatus.CANCELLED.value
    db.commit()
    return get_assignment(db, assignment.id)


def mark_overdue(db: Session, session: UserSession) -> int:
    """Pending assignments past due_time become overdue. Leaders sweep only their own."""
    query = db.query(WorkReadinessAssignment).filter(
        WorkReadinessAssignment.status == AssignmentStatus.PENDING.value,
        WorkReadinessAssignment.due_time < utcnow(),
    )
    if session.role != Role.ADMIN:
        query = query.filter(WorkReadinessAssignment.team_leader_id == session.user_id)
    assignments = query.all()
    for assignment in assignments:
        assignment.status = AssignmentStatus.OVERDUE.value
    db.commit()
    if assignments:
        logger.info(
            "Marked %s assignments overdue", len(assignments),
            extra=build_log_context(user_id=str(session.user_id), role=session.role.value),
        )
    return len(assignments)


def get_stats(
    db: Session,
    session: UserSession,
    start: date | None = None,
    end: date | None = None,
) -> dict:
    """Status counts over assigned dates [start, end]; defaults to the last week."""
    end = end or app_today()
    start = start or end - timedelta(days=STATS_WINDOW_DAYS)
    rows = list_assignments_query(db, session, date_from=start, date_to=end).all()
    counts = {s: 0 for s in AssignmentStatus}
    for row in rows:
        counts[AssignmentStatus(row.status)] += 1
    total = len(rows)
    return {
        "start_date": start,
        "end_date": end,
        "total": total,
        "pending": counts[AssignmentStatus.PENDING],
        "completed": counts[AssignmentStatus.COMPLETED],
        "overdue": counts[AssignmentStatus.OVERDUE],
        "cancelled": counts[AssignmentStatus.CANCELLED],
        "completion_rate": round(counts[AssignmentStatus.COMPLETED] / total * 100) if total else 0,
    }
