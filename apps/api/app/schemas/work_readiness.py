"""Pydantic schemas for work readiness assessments and assignments."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.db.enums import AssignmentStatus, Mood, PainArea, ReadinessLevel
from app.schemas.goal_kpi import CycleKPI
from app.schemas.user import UserSummary


# =============================================================================
# Assessments
# =============================================================================


class WorkReadinessCreate(BaseModel):
    fatigue_level: int = Field(..., ge=1, le=5)
    pain_discomfort: bool
    pain_areas: list[PainArea] = Field(default_factory=list)
    readiness_level: ReadinessLevel
    mood: Mood
    notes: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def pain_areas_need_pain(self):
        if self.pain_areas and not self.pain_discomfort:
            raise ValueError("pain_areas can only be given when pain_discomfort is true")
        return self


class WorkReadinessRead(BaseModel):
    id: UUID
    worker_id: UUID
    team_leader_id: UUID | None = None
    team: str | None = None
    fatigue_level: int
    pain_discomfort: bool
    pain_areas: list[str]
    readiness_level: str
    mood: str
    notes: str | None = None
    status: str
    follow_up_reason: str | None = None
    follow_up_notes: str | None = None
    cycle_start: date
    cycle_day: int
    streak_days: int
    cycle_completed: bool
    submitted_date: date
    submitted_at: datetime

    model_config = {"from_attributes": True}


class WorkReadinessWithWorker(WorkReadinessRead):
    worker: UserSummary


class CycleState(BaseModel):
    cycle_start: date
    cycle_day: int
    streak_days: int
    cycle_completed: bool


class SubmitAssessmentResponse(BaseModel):
    assessment: WorkReadinessRead
    cycle: CycleState
    message: str
    assignment_completed: bool
    kpi: CycleKPI


class TodayStatus(BaseModel):
    already_submitted: bool
    assessment: WorkReadinessRead | None = None


# =============================================================================
# Team views
# =============================================================================


class Compliance(BaseModel):
    total_team_members: int
    submitted_assessments: int
    compliance_rate: int
    non_compliant_count: int


class ReadinessStats(BaseModel):
    fit: int
    minor: int
    not_fit: int


class TeamReadiness(BaseModel):
    start_date: date
    end_date: date
    compliance: Compliance
    assessments: list[WorkReadinessWithWorker]
    non_compliant_workers: list[UserSummary]
    readiness_stats: ReadinessStats
    fatigue_stats: dict[int, int]


class DailyCompliance(BaseModel):
    date: date
    submitted_count: int
    total_team_members: int
    compliance_rate: int


class ReadinessHistory(BaseModel):
    days: int
    daily_compliance: list[DailyCompliance]


class FollowUpRequest(BaseModel):
    worker_id: UUID
    reason: str | None = Field(None, max_length=255)
    message: str | None = Field(None, max_length=1000)
    assessment_id: UUID | None = None


class FollowUpResponse(BaseModel):
    notification_id: UUID | None = None
    message: str


# =============================================================================
# Assignments
# =============================================================================


class AssignmentCreate(BaseModel):
    worker_ids: list[UUID] = Field(..., min_length=1, max_length=200)
    assigned_date: date
    due_time: datetime | None = None
    notes: str | None = Field(None, max_length=1000)


class AssignmentRead(BaseModel):
    id: UUID
    team_leader_id: UUID
    worker_id: UUID
    worker: UserSummary
    team: str | None = None
    assigned_date: date
    due_time: datetime
    status: str
    notes: str | None = None
    completed_at: datetime | None = None
    work_readiness_id: UUID | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AssignmentCreateResult(BaseModel):
    created: list[AssignmentRead]
    skipped_worker_ids: list[UUID]


class AssignmentStatusUpdate(BaseModel):
    status: AssignmentStatus
    notes: str | None = Field(None, max_length=1000)


class CanSubmitResponse(BaseModel):
    can_submit: bool
    assignment: AssignmentRead | None = None
    message: str


class AssignmentStats(BaseModel):
    start_date: date
    end_date: date
    total: int
    pending: int
    completed: int
    overdue: int
    cancelled: int
    completion_rate: int


class OverdueResult(BaseModel):
    marked_overdue: int
