"""Appointment and scheduling enums."""

from enum import Enum


class AppointmentType(str, Enum):
    """Kind of clinical appointment."""

    ASSESSMENT = "assessment"
    TREATMENT = "treatment"
    FOLLOW_UP = "follow_up"
    CONSULTATION = "consultation"
    TELEHEALTH = "telehealth"


class AppointmentLocation(str, Enum):
    CLINIC = "clinic"
    TELEHEALTH = "telehealth"
    WORKPLACE = "workplace"
    HOME = "home"


class AppointmentStatus(str, Enum):
    """
    Appointment lifecycle status.

    Flow: scheduled → confirmed → in_progress → completed
              ↘ cancelled
              ↘ no_show
    """

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses that hold a clinician's time slot
BLOCKING_APPOINTMENT_STATUSES = frozenset({
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
})

DEFAULT_APPOINTMENT_STATUS = AppointmentStatus.SCHEDULED
DEFAULT_DURATION_MINUTES = 60
MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 480
