"""Enum definitions for application constants."""

from app.db.enums.appointments import (
    AppointmentLocation,
    AppointmentStatus,
    AppointmentType,
    BLOCKING_APPOINTMENT_STATUSES,
    DEFAULT_APPOINTMENT_STATUS,
    DEFAULT_DURATION_MINUTES,
    MAX_DURATION_MINUTES,
    MIN_DURATION_MINUTES,
)
from app.db.enums.auth import AuthAction, Role
from app.db.enums.cases import (
    ACTIVE_CLINICAL_STATUSES,
    OPEN_CASE_STATUSES,
    CasePriority,
    CaseStatus,
    IncidentSeverity,
    IncidentStatus,
    IncidentType,
    InjurySeverity,
    NoteType,
)
from app.db.enums.notifications import NotificationPriority, NotificationType
from app.db.enums.rehab import (
    OPEN_PLAN_STATUSES,
    ActivityKind,
    ActivityPriority,
    ActivityLogType,
    ExerciseDifficulty,
    GoalStatus,
    ItemStatus,
    ProgressType,
    RehabPlanStatus,
)
from app.db.enums.work_readiness import (
    ACTIVE_ASSIGNMENT_STATUSES,
    CYCLE_LENGTH_DAYS,
    AssignmentStatus,
    Mood,
    PainArea,
    ReadinessLevel,
    WorkReadinessStatus,
)


# =============================================================================
# Role groupings (used by require_roles and access checks)
# =============================================================================

ROLES_SEE_ALL_CASES = frozenset({Role.ADMIN, Role.GP_INSURER})
ROLES_CAN_CREATE_CASES = [Role.CASE_MANAGER, Role.ADMIN]
ROLES_CAN_REPORT_INCIDENTS = [
    Role.SITE_SUPERVISOR,
    Role.EMPLOYER,
    Role.TEAM_LEADER,
    Role.CASE_MANAGER,
    Role.ADMIN,
]
ROLES_CAN_LIST_USERS = [Role.ADMIN, Role.CASE_MANAGER, Role.SITE_SUPERVISOR]


__all__ = [
    "ACTIVE_ASSIGNMENT_STATUSES",
    "ACTIVE_CLINICAL_STATUSES",
    "ActivityKind",
    "ActivityLogType",
    "ActivityPriority",
    "AppointmentLocation",
    "AppointmentStatus",
    "AppointmentType",
    "AssignmentStatus",
    "AuthAction",
    "BLOCKING_APPOINTMENT_STATUSES",
    "CYCLE_LENGTH_DAYS",
    "CasePriority",
    "CaseStatus",
    "DEFAULT_APPOINTMENT_STATUS",
    "DEFAULT_DURATION_MINUTES",
    "ExerciseDifficulty",
    "GoalStatus",
    "IncidentSeverity",
    "IncidentStatus",
    "IncidentType",
    "InjurySeverity",
    "ItemStatus",
    "MAX_DURATION_MINUTES",
    "MIN_DURATION_MINUTES",
    "Mood",
    "NoteType",
    "NotificationPriority",
    "NotificationType",
    "OPEN_CASE_STATUSES",
    "OPEN_PLAN_STATUSES",
    "PainArea",
    "ProgressType",
    "ROLES_CAN_CREATE_CASES",
    "ROLES_CAN_LIST_USERS",
    "ROLES_CAN_REPORT_INCIDENTS",
    "ROLES_SEE_ALL_CASES",
    "ReadinessLevel",
    "RehabPlanStatus",
    "Role",
    "WorkReadinessStatus",
]
