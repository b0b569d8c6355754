"""Work readiness assessment and assignment enums."""

from enum import Enum


class ReadinessLevel(str, Enum):
    FIT = "fit"
    MINOR = "minor"  # Minor concerns, fit with care
    NOT_FIT = "not_fit"


class Mood(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    OKAY = "okay"
    POOR = "poor"
    TERRIBLE = "terrible"


class PainArea(str, Enum):
    HEAD = "Head"
    NECK = "Neck"
    SHOULDERS = "Shoulders"
    ARMS = "Arms"
    HANDS = "Hands"
    UPPER_BACK = "Upper Back"
    LOWER_BACK = "Lower Back"
    CHEST = "Chest"
    HIPS = "Hips"
    LEGS = "Legs"
    KNEES = "Knees"
    FEET = "Feet"


class WorkReadinessStatus(str, Enum):
    SUBMITTED = "submitted"
    REVIEWED = "reviewed"
    FOLLOWED_UP = "followed_up"


class AssignmentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


CYCLE_LENGTH_DAYS = 7

# An assignment in one of these statuses blocks a second one on the same date
ACTIVE_ASSIGNMENT_STATUSES = frozenset({
    AssignmentStatus.PENDING,
    AssignmentStatus.COMPLETED,
    AssignmentStatus.OVERDUE,
})
