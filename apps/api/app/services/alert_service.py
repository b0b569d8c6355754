"""
Check-in alerting.

Evaluates a worker's daily check-in and notifies the case clinician and
case manager:

- high_pain: current pain >= 7
- rtw_review: the worker reported not working today
- fatigue_resource: sleep <= 2 today and on each immediately preceding day,
  at least two days in a row

Alerts are deduped per type, case, recipient and day.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.enums import NotificationPriority, NotificationType
from app.db.models import Case, CheckIn
from app.services import notification_service

logger = logging.getLogger(__name__)

HIGH_PAIN_THRESHOLD = 7
POOR_SLEEP_THRESHOLD = 2
FATIGUE_MIN_DAYS = 2
# How far back to look for a poor-sleep run
FATIGUE_LOOKBACK_DAYS = 14


@dataclass
class CheckInSignal:
    """The parts of a check-in the alert rules look at."""
    check_in_date: date
    pain_current: int
    worked_today: bool | None = None
    sleep: int | None = None

    @classmethod
    def from_check_in(cls, check_in: CheckIn) -> "CheckInSignal":
        return cls(
            check_in_date=check_in.check_in_date,
            pain_current=check_in.pain_current,
            worked_today=(check_in.work_status or {}).get("worked_today"),
            sleep=check_in.sleep_quality,
        )


def alert_recipients(case: Case) -> list[UUID]:
    recipients = []
    for user_id in (case.clinician_id, case.case_manager_id):
        if user_id and user_id not in recipients:
            recipients.append(user_id)
    return recipients


def poor_sleep_streak(db: Session, case: Case, signal: CheckInSignal) -> int:
    """
    Consecutive days of sleep <= 2 ending on the signal's day.

    The signal itself counts as that day; earlier days come from stored
    check-ins for the same case and worker.
    """
    if signal.sleep is None or signal.sleep > POOR_SLEEP_THRESHOLD:
        return 0

    history = (
        db.query(CheckIn)
        .filter(
            CheckIn.case_id == case.id,
            CheckIn.worker_id == case.worker_id,
            CheckIn.check_in_date < signal.check_in_date,
            CheckIn.check_in_date >= signal.check_in_date - timedelta(days=FATIGUE_LOOKBACK_DAYS),
        )
        .order_by(CheckIn.check_in_date.desc())
        .all()
    )

    streak = 1
    expected = signal.check_in_date - timedelta(days=1)
    for previous in history:
        if previous.check_in_date != expected:
            break
        sleep = previous.sleep_quality
        if sleep is None or sleep > POOR_SLEEP_THRESHOLD:
            break
        streak += 1
        expected -= timedelta(days=1)
    return streak


def _alert(
    db: Session,
    case: Case,
    recipients: list[UUID],
    type: NotificationType,
    day: date,
    title: str,
    message: str,
    priority: NotificationPriority,
    metadata: dict,
) -> int:
    sent = 0
    for recipient_id in recipients:
        notification = notification_service.create_notification(
            db,
            recipient_id=recipient_id,
            type=type,
            title=title,
            message=message,
            priority=priority,
            sender_id=case.worker_id,
            action_url=f"/cases/{case.id}",
            metadata={"case_number": case.case_number, **metadata},
            dedupe_key=f"{type.value}:{case.id}:{recipient_id}:{day.isoformat()}",
        )
        if notification:
            sent += 1
    return sent


def evaluate_check_in(db: Session, case: Case, signal: CheckInSignal) -> list[str]:
    """
    Create the alert notifications a check-in warrants. Flushes only.

    Returns the alert types that produced at least one new notification.
    """
    recipients = alert_recipients(case)
    if not recipients:
        return []

    worker_name = case.worker.display_name if case.worker else "Worker"
    day = signal.check_in_date
    sent: list[str] = []

    if signal.pain_current >= HIGH_PAIN_THRESHOLD:
        if _alert(
            db, case, recipients, NotificationType.HIGH_PAIN, day,
            title="High Pain Reported",
            message=(
                f"{worker_name} reported pain {signal.pain_current}/10 "
                f"on case {case.case_number}."
            ),
            priority=NotificationPriority.HIGH,
            metadata={"pain_level": signal.pain_current},
        ):
            sent.append(NotificationType.HIGH_PAIN.value)

    if signal.worked_today is False:
        if _alert(
            db, case, recipients, NotificationType.RTW_REVIEW, day,
            title="Return-to-Work Review Needed",
            message=(
                f"{worker_name} could not perform their job today "
                f"(case {case.case_number}). Review restrictions."
            ),
            priority=NotificationPriority.MEDIUM,
            metadata={"worked_today": False},
        ):
            sent.append(NotificationType.RTW_REVIEW.value)

    streak = poor_sleep_streak(db, case, signal)
    if streak >= FATIGUE_MIN_DAYS:
        if _alert(
            db, case, recipients, NotificationType.FATIGUE_RESOURCE, day,
            title="Fatigue Support Suggested",
            message=(
                f"{worker_name} has reported poor sleep for {streak} consecutive days "
                f"(case {case.case_number}). Consider sharing fatigue resources."
            ),
            priority=NotificationPriority.MEDIUM,
            metadata={"consecutive_days": streak},
        ):
            sent.append(NotificationType.FATIGUE_RESOURCE.value)

    if sent:
        logger.info("Check-in alerts created", extra={"case_id": str(case.id), "alerts": sent})
    return sent


def run_check_in_alerts(db: Session, case: Case, signal: CheckInSignal) -> list[str]:
    """Evaluate, commit and push. Failures are logged and never raised."""
    sent: list[str] = []
    with notification_service.best_effort(db, "Check-in alerting failed", case_id=str(case.id)):
        sent = evaluate_check_in(db, case, signal)
        notification_service.commit_and_push(db)
    return sent
