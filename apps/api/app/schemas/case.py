"""Pydantic schemas for cases."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.db.enums import CasePriority, CaseStatus, InjurySeverity, NoteType
from app.schemas.user import UserSummary


class InjuryDetails(BaseModel):
    body_part: str | None = Field(None, max_length=100)
    injury_type: str | None = Field(None, max_length=100)
    severity: InjurySeverity | None = None
    description: str | None = Field(None, max_length=5000)
    date_of_injury: date | None = None
    mechanism_of_injury: str | None = Field(None, max_length=1000)


class LiftingRestriction(BaseModel):
    max_weight: float | None = Field(None, ge=0)
    frequency: str | None = Field(None, max_length=100)


class StandingRestriction(BaseModel):
    max_duration: int | None = Field(None, ge=0)
    breaks: str | None = Field(None, max_length=100)


class WorkRestrictions(BaseModel):
    lifting: LiftingRestriction | None = None
    standing: StandingRestriction | None = None
    other: list[str] = Field(default_factory=list)


class CaseCreate(BaseModel):
    """Request schema for creating a case."""

    worker_id: UUID
    employer_id: UUID
    incident_id: UUID
    injury_details: InjuryDetails = Field(default_factory=InjuryDetails)
    work_restrictions: WorkRestrictions | None = None
    expected_return_date: date | None = None
    notes: str | None = Field(None, max_length=5000)

    # Explicit overrides for auto-assignment
    clinician_id: UUID | None = None
    priority: CasePriority | None = None


class CaseUpdate(BaseModel):
    """Request schema for updating a case (partial)."""

    priority: CasePriority | None = None
    status: CaseStatus | None = None
    injury_details: InjuryDetails | None = None
    work_restrictions: WorkRestrictions | None = None
    expected_return_date: date | None = None
    clinician_id: UUID | None = None


class CaseNoteCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)
    note_type: NoteType = NoteType.GENERAL


class AssignClinicianRequest(BaseModel):
    clinician_id: UUID


class CaseStatusChange(BaseModel):
    status: CaseStatus
    reason: str | None = Field(None, max_length=2000)


class CaseNoteRead(BaseModel):
    id: UUID
    author: UserSummary | None = None
    content: str
    note_type: NoteType
    created_at: datetime

    model_config = {"from_attributes": True}


class LatestCheckIn(BaseModel):
    check_in_date: date
    pain_level: int


class CaseListItem(BaseModel):
    """Case summary for list views."""

    id: UUID
    case_number: str
    status: CaseStatus
    priority: CasePriority
    worker: UserSummary
    employer: UserSummary
    case_manager: UserSummary
    clinician: UserSummary | None = None
    injury_details: dict
    expected_return_date: date | None = None
    latest_check_in: LatestCheckIn | None = None
    created_at: datetime
    updated_at: datetime


class CaseRead(BaseModel):
    """Full case detail."""

    id: UUID
    case_number: str
    status: CaseStatus
    priority: CasePriority
    worker: UserSummary
    employer: UserSummary
    case_manager: UserSummary
    clinician: UserSummary | None = None
    incident_id: UUID
    incident_number: str | None = None
    injury_details: dict
    work_restrictions: dict | None = None
    expected_return_date: date | None = None
    actual_return_date: date | None = None
    notes: list[CaseNoteRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class AutoAssignments(BaseModel):
    priority: CasePriority
    clinician_assigned: bool


class CaseCreateResponse(CaseRead):
    auto_assignments: AutoAssignments


class CaseStats(BaseModel):
    total: int
    active: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
