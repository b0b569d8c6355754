"""Rehabilitation plan and activity enums."""

from enum import Enum


class RehabPlanStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class GoalStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ItemStatus(str, Enum):
    """Status of an exercise or activity in a plan."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class ExerciseDifficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ActivityKind(str, Enum):
    THERAPEUTIC = "therapeutic"
    FUNCTIONAL = "functional"
    WORK_SIMULATION = "work_simulation"
    EDUCATION = "education"


class ProgressType(str, Enum):
    PAIN_LEVEL = "pain_level"
    FUNCTIONAL_IMPROVEMENT = "functional_improvement"
    WORK_READINESS = "work_readiness"


class ActivityLogType(str, Enum):
    """Worker activity entries shown to clinicians."""

    DAILY_CHECK_IN = "daily_check_in"
    REHAB_PROGRESS = "rehab_progress"
    APPOINTMENT_COMPLETED = "appointment_completed"
    WORK_READINESS = "work_readiness"


class ActivityPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# Only one plan per case may be in these statuses
OPEN_PLAN_STATUSES = frozenset({RehabPlanStatus.ACTIVE, RehabPlanStatus.PAUSED})
