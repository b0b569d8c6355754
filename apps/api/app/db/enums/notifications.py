"""Notification-related enums."""

from enum import Enum


class NotificationType(str, Enum):
    """Types of in-app notifications."""

    # Intake and case lifecycle
    INCIDENT_REPORTED = "incident_reported"
    CASE_CREATED = "case_created"
    CASE_ASSIGNED = "case_assigned"
    CASE_STATUS_CHANGE = "case_status_change"

    # Scheduling and tasks
    APPOINTMENT_SCHEDULED = "appointment_scheduled"
    CHECK_IN_REMINDER = "check_in_reminder"
    TASK_ASSIGNED = "task_assigned"

    # Check-in alerts
    HIGH_PAIN = "high_pain"  # Pain >= 7
    RTW_REVIEW = "rtw_review"  # Could not perform job duties
    FATIGUE_RESOURCE = "fatigue_resource"  # Poor sleep 2+ days running

    # Work readiness
    WORK_READINESS_SUBMITTED = "work_readiness_submitted"
    WORK_READINESS_FOLLOWUP = "work_readiness_followup"
    WORK_READINESS_ASSIGNED = "work_readiness_assigned"

    ACCOUNT_CREATED = "account_created"
    GENERAL = "general"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"
