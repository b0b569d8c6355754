"""
Notification Service - handles in-app notifications.

Provides CRUD for notifications, trigger functions for incident, case,
appointment and work readiness events, and the unread-count push to open
SSE streams.

Triggers only add rows (flush, no commit). Callers finish with
commit_and_push(), which commits and then publishes the new unread count
to every recipient touched in this session.
"""

import logging
from contextlib import contextmanager
from datetime import timedelta
from typing import Iterable, Iterator
from uuid import UUID

from sqlalchemy import case as sql_case
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.notification_stream import stream_manager
from app.core.structured_logging import build_log_context
from app.db.enums import NotificationPriority, NotificationType, ReadinessLevel, Role
from app.db.models import (
    Appointment, Case, Incident, Notification, User, WorkReadiness, WorkReadinessAssignment,
)
from app.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)

COUNT_UPDATE_EVENT = "notification_count_update"
_PENDING_PUSH_KEY = "notification_push_user_ids"


# =============================================================================
# Notification CRUD
# =============================================================================


def create_notification(
    db: Session,
    recipient_id: UUID,
    type: NotificationType,
    title: str,
    message: str,
    priority: NotificationPriority = NotificationPriority.MEDIUM,
    sender_id: UUID | None = None,
    action_url: str | None = None,
    metadata: dict | None = None,
    dedupe_key: str | None = None,
) -> Notification | None:
    """
    Create a notification.

    Dedupes by dedupe_key + recipient within NOTIFICATION_DEDUPE_MINUTES.
    Returns None when suppressed as a duplicate.
    """
    if dedupe_key:
        window_start = utcnow() - timedelta(minutes=settings.NOTIFICATION_DEDUPE_MINUTES)
        existing = db.query(Notification.id).filter(
            Notification.dedupe_key == dedupe_key,
            Notification.recipient_id == recipient_id,
            Notification.created_at > window_start,
        ).first()
        if existing:
            return None

    notification = Notification(
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=type.value,
        title=title[:200],
        message=message[:1000],
        priority=priority.value,
        action_url=action_url,
        metadata_=metadata,
        dedupe_key=dedupe_key,
    )
    db.add(notification)
    db.flush()
    _queue_push(db, recipient_id)
    return notification


def get_notification(db: Session, notification_id: UUID) -> Notification | None:
    return db.query(Notification).filter(Notification.id == notification_id).first()


def get_notifications(
    db: Session,
    user_id: UUID,
    unread_only: bool = False,
    limit: int = 20,
    skip: int = 0,
) -> tuple[list[Notification], int]:
    """Get notifications for user, newest first. Returns (items, total)."""
    query = db.query(Notification).filter(Notification.recipient_id == user_id)

    if unread_only:
        query = query.filter(Notification.is_read.is_(False))

    total = query.count()
    items = (
        query.order_by(Notification.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return items, total


def get_unread_count(db: Session, user_id: UUID) -> int:
    """Get count of unread notifications."""
    return db.query(Notification).filter(
        Notification.recipient_id == user_id,
        Notification.is_read.is_(False),
    ).count()


def mark_read(db: Session, notification: Notification) -> Notification:
    """Mark a notification as read."""
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        _queue_push(db, notification.recipient_id)
        commit_and_push(db)
        db.refresh(notification)
    return notification


def mark_all_read(db: Session, user_id: UUID) -> int:
    """Mark all notifications as read. Returns count updated."""
    count = db.query(Notification).filter(
        Notification.recipient_id == user_id,
        Notification.is_read.is_(False),
    ).update({"is_read": True, "read_at": utcnow()}, synchronize_session=False)
    _queue_push(db, user_id)
    commit_and_push(db)
    return count


def delete_notification(db: Session, notification: Notification) -> None:
    recipient_id = notification.recipient_id
    db.delete(notification)
    _queue_push(db, recipient_id)
    commit_and_push(db)


def get_stats(db: Session) -> dict:
    """Counts by type (with unread) and the 10 most recent notifications."""
    rows = (
        db.query(
            Notification.type,
            func.count(Notification.id),
            func.sum(sql_case((Notification.is_read.is_(False), 1), else_=0)),
        )
        .group_by(Notification.type)
        .order_by(func.count(Notification.id).desc())
        .all()
    )
    recent = (
        db.query(Notification)
        .order_by(Notification.created_at.desc())
        .limit(10)
        .all()
    )
    return {
        "by_type": [
            {"type": type_, "count": count, "unread": int(unread or 0)}
            for type_, count, unread in rows
        ],
        "recent": recent,
    }


# =============================================================================
# Unread-count push
# =============================================================================


def _queue_push(db: Session, user_id: UUID) -> None:
    db.info.setdefault(_PENDING_PUSH_KEY, set()).add(user_id)


def push_unread_counts(db: Session, user_ids: Iterable[UUID]) -> None:
    """Publish the current unread count to each user's open streams."""
    for user_id in set(user_ids):
        if not stream_manager.get_connected_count(user_id):
            continue
        unread = get_unread_count(db, user_id)
        stream_manager.publish(user_id, {"type": COUNT_UPDATE_EVENT, "unread_count": unread})


def commit_and_push(db: Session) -> None:
    """Commit, then push unread counts for every recipient touched since the last push."""
    db.commit()
    pending = db.info.pop(_PENDING_PUSH_KEY, set())
    if pending:
        push_unread_counts(db, pending)


def discard_pending_pushes(db: Session) -> None:
    db.info.pop(_PENDING_PUSH_KEY, None)


@contextmanager
def best_effort(db: Session, event: str, **log_context) -> Iterator[None]:
    """
    Run side-effect notifications without failing the caller.

    On error the notification work is rolled back and logged; the primary
    change must already be committed.
    """
    try:
        yield
    except Exception:
        db.rollback()
        discard_pending_pushes(db)
        logger.exception(event, extra=build_log_context(**log_context))


# =============================================================================
# Notification Triggers (called from routers/services after the main commit)
# =============================================================================


def _notify_each(
    db: Session,
    recipient_ids: Iterable[UUID | None],
    skip_id: UUID | None = None,
    **kwargs,
) -> list[Notification]:
    created = []
    seen: set[UUID] = set()
    for recipient_id in recipient_ids:
        if recipient_id is None or recipient_id == skip_id or recipient_id in seen:
            continue
        seen.add(recipient_id)
        notification = create_notification(db, recipient_id=recipient_id, **kwargs)
        if notification:
            created.append(notification)
    return created


def notify_incident_reported(db: Session, incident: Incident, actor: User) -> list[Notification]:
    """Tell every active case manager a new incident needs a case."""
    case_manager_ids = [
        row.id for row in db.query(User.id).filter(
            User.role == Role.CASE_MANAGER.value,
            User.is_active.is_(True),
        ).all()
    ]
    severity_priority = {
        "critical": NotificationPriority.URGENT,
        "severe": NotificationPriority.HIGH,
    }
    return _notify_each(
        db,
        case_manager_ids,
        skip_id=actor.id,
        type=NotificationType.INCIDENT_REPORTED,
        title="New Incident Reported",
        message=(
            f"Incident {incident.incident_number} ({incident.severity}) was reported "
            f"by {actor.display_name}."
        ),
        priority=severity_priority.get(incident.severity, NotificationPriority.MEDIUM),
        sender_id=actor.id,
        action_url=f"/incidents/{incident.id}",
        metadata={"incident_number": incident.incident_number},
    )


def notify_case_created(db: Session, case: Case, actor: User) -> list[Notification]:
    """Assignment notice to the clinician, creation notice to the other participants."""
    created = []
    if case.clinician_id:
        created += _notify_each(
            db,
            [case.clinician_id],
            type=NotificationType.CASE_ASSIGNED,
            title="New Case Assignment",
            message=f"You have been assigned to case {case.case_number}.",
            priority=NotificationPriority.HIGH,
            sender_id=actor.id,
            action_url=f"/cases/{case.id}",
            metadata={"case_number": case.case_number},
            dedupe_key=f"case_assigned:{case.id}:{case.clinician_id}",
        )
    created += _notify_each(
        db,
        [case.worker_id, case.employer_id, case.case_manager_id],
        skip_id=actor.id,
        type=NotificationType.CASE_CREATED,
        title="Case Created",
        message=f"Case {case.case_number} has been opened (priority {case.priority}).",
        priority=NotificationPriority.MEDIUM,
        sender_id=actor.id,
        action_url=f"/cases/{case.id}",
        metadata={"case_number": case.case_number, "priority": case.priority},
    )
    return created


def notify_clinician_assigned(db: Session, case: Case, actor: User) -> list[Notification]:
    created = _notify_each(
        db,
        [case.clinician_id],
        type=NotificationType.CASE_ASSIGNED,
        title="New Case Assignment",
        message=f"You have been assigned to case {case.case_number} by {actor.display_name}.",
        priority=NotificationPriority.HIGH,
        sender_id=actor.id,
        action_url=f"/cases/{case.id}",
        metadata={"case_number": case.case_number},
        dedupe_key=f"case_assigned:{case.id}:{case.clinician_id}",
    )
    created += _notify_each(
        db,
        [case.worker_id],
        type=NotificationType.CASE_ASSIGNED,
        title="Clinician Assigned",
        message=f"A clinician has been assigned to your case {case.case_number}.",
        priority=NotificationPriority.MEDIUM,
        sender_id=actor.id,
        action_url=f"/cases/{case.id}",
    )
    return created


def notify_case_status_change(
    db: Session,
    case: Case,
    actor: User,
    old_status: str,
) -> list[Notification]:
    """Tell every participant except the actor about a status change."""
    label = case.status.replace("_", " ")
    return _notify_each(
        db,
        [case.case_manager_id, case.worker_id, case.employer_id, case.clinician_id],
        skip_id=actor.id,
        type=NotificationType.CASE_STATUS_CHANGE,
        title="Case Status Updated",
        message=f"Case {case.case_number} moved from {old_status.replace('_', ' ')} to {label}.",
        priority=NotificationPriority.MEDIUM,
        sender_id=actor.id,
        action_url=f"/cases/{case.id}",
        metadata={"case_number": case.case_number, "old_status": old_status, "new_status": case.status},
    )


def notify_appointment_scheduled(db: Session, appointment: Appointment, actor: User) -> list[Notification]:
    when = as_utc(appointment.scheduled_at)
    return _notify_each(
        db,
        [appointment.worker_id, appointment.clinician_id],
        skip_id=actor.id,
        type=NotificationType.APPOINTMENT_SCHEDULED,
        title="Appointment Scheduled",
        message=(
            f"A {appointment.appointment_type.replace('_', ' ')} appointment is scheduled for "
            f"{when:%Y-%m-%d %H:%M} UTC ({appointment.location})."
        ),
        priority=NotificationPriority.MEDIUM,
        sender_id=actor.id,
        action_url=f"/appointments/{appointment.id}",
        metadata={"appointment_id": str(appointment.id), "scheduled_at": when.isoformat()},
    )


def notify_appointment_cancelled(db: Session, appointment: Appointment, actor: User) -> list[Notification]:
    when = as_utc(appointment.scheduled_at)
    return _notify_each(
        db,
        [appointment.worker_id, appointment.clinician_id],
        skip_id=actor.id,
        type=NotificationType.GENERAL,
        title="Appointment Cancelled",
        message=f"The appointment on {when:%Y-%m-%d %H:%M} UTC was cancelled by {actor.display_name}.",
        priority=NotificationPriority.MEDIUM,
        sender_id=actor.id,
        action_url=f"/appointments/{appointment.id}",
        metadata={"reason": appointment.cancellation_reason},
    )


def notify_account_created(db: Session, user: User, actor: User) -> list[Notification]:
    return _notify_each(
        db,
        [user.id],
        type=NotificationType.ACCOUNT_CREATED,
        title="Account Created",
        message=(
            f"Your account has been created by {actor.display_name}. "
            "Please log in to complete your profile."
        ),
        priority=NotificationPriority.MEDIUM,
        sender_id=actor.id,
    )


def notify_work_readiness_submitted(db: Session, assessment: WorkReadiness, worker: User) -> list[Notification]:
    """Team leader notice; only identifiers and the readiness level go in metadata."""
    return _notify_each(
        db,
        [assessment.team_leader_id],
        type=NotificationType.WORK_READINESS_SUBMITTED,
        title="Work Readiness Assessment Submitted",
        message=f"{worker.display_name} has submitted their work readiness assessment.",
        priority=(
            NotificationPriority.HIGH
            if assessment.readiness_level == ReadinessLevel.NOT_FIT.value
            else NotificationPriority.MEDIUM
        ),
        sender_id=worker.id,
        action_url="/team-leader/work-readiness",
        metadata={
            "worker_id": str(worker.id),
            "assessment_id": str(assessment.id),
            "readiness_level": assessment.readiness_level,
        },
    )


def notify_work_readiness_follow_up(
    db: Session,
    worker: User,
    leader: User,
    reason: str | None,
    message: str | None,
) -> Notification | None:
    return create_notification(
        db,
        recipient_id=worker.id,
        type=NotificationType.WORK_READINESS_FOLLOWUP,
        title="Work Readiness Assessment Reminder",
        message=message or (
            "Please complete your work readiness assessment. "
            f"Reason: {reason or 'Required for team compliance'}"
        ),
        priority=NotificationPriority.HIGH,
        sender_id=leader.id,
        action_url="/worker/work-readiness",
        metadata={"team_leader_id": str(leader.id), "reason": reason},
    )


def notify_work_readiness_assigned(
    db: Session,
    assignments: list[WorkReadinessAssignment],
    leader: User,
) -> list[Notification]:
    created = []
    for assignment in assignments:
        created += _notify_each(
            db,
            [assignment.worker_id],
            type=NotificationType.WORK_READINESS_ASSIGNED,
            title="Work Readiness Assessment Assigned",
            message=(
                f"{leader.display_name} asked you to submit your work readiness assessment "
                f"for {assignment.assigned_date:%Y-%m-%d}."
            ),
            priority=NotificationPriority.MEDIUM,
            sender_id=leader.id,
            action_url="/worker/work-readiness",
            metadata={"assignment_id": str(assignment.id)},
            dedupe_key=f"wr_assigned:{assignment.id}",
        )
    return created
