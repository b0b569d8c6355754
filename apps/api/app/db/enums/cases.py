"""Case and incident enums."""

from enum import Enum


class CaseStatus(str, Enum):
    """Case pipeline: new -> triaged -> assessed -> in_rehab -> return_to_work -> closed."""

    NEW = "new"
    TRIAGED = "triaged"
    ASSESSED = "assessed"
    IN_REHAB = "in_rehab"
    RETURN_TO_WORK = "return_to_work"
    CLOSED = "closed"


class CasePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class InjurySeverity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"


class NoteType(str, Enum):
    GENERAL = "general"
    MEDICAL = "medical"
    ASSIGNMENT = "assignment"
    STATUS_CHANGE = "status_change"
    RETURN_TO_WORK = "return_to_work"


class IncidentType(str, Enum):
    NEAR_MISS = "near_miss"
    FIRST_AID = "first_aid"
    MEDICAL_TREATMENT = "medical_treatment"
    LOST_TIME = "lost_time"
    FATALITY = "fatality"


class IncidentSeverity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"


class IncidentStatus(str, Enum):
    REPORTED = "reported"
    INVESTIGATING = "investigating"
    CLOSED = "closed"


# Statuses that count toward a clinician's caseload
ACTIVE_CLINICAL_STATUSES = frozenset({
    CaseStatus.TRIAGED,
    CaseStatus.ASSESSED,
    CaseStatus.IN_REHAB,
})

# Statuses that count as an open case on dashboards
OPEN_CASE_STATUSES = frozenset({
    CaseStatus.NEW,
    CaseStatus.TRIAGED,
    CaseStatus.ASSESSED,
    CaseStatus.IN_REHAB,
    CaseStatus.RETURN_TO_WORK,
})
