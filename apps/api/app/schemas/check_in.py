"""Pydantic schemas for daily check-ins."""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


class FunctionalStatus(BaseModel):
    """Self-rated 0-10 scores."""

    sleep: int | None = Field(None, ge=0, le=10)
    mood: int | None = Field(None, ge=0, le=10)
    energy: int | None = Field(None, ge=0, le=10)
    mobility: int | None = Field(None, ge=0, le=10)
    daily_activities: int | None = Field(None, ge=0, le=10)


class MedicationCompliance(BaseModel):
    taken: bool | None = None
    side_effects: str | None = Field(None, max_length=1000)
    effectiveness: int | None = Field(None, ge=0, le=10)


class ExerciseCompliance(BaseModel):
    completed: bool | None = None
    exercises: list[str] = Field(default_factory=list)
    barriers: str | None = Field(None, max_length=1000)
    modifications: str | None = Field(None, max_length=1000)


class WorkStatus(BaseModel):
    worked_today: bool | None = None
    hours_worked: float | None = Field(None, ge=0, le=24)
    tasks: list[str] = Field(default_factory=list)
    difficulties: str | None = Field(None, max_length=1000)
    accommodations: str | None = Field(None, max_length=1000)
    pain_at_work: int | None = Field(None, ge=0, le=10)


class Symptoms(BaseModel):
    swelling: bool = False
    stiffness: bool = False
    weakness: bool = False
    numbness: bool = False
    tingling: bool = False
    other: str | None = Field(None, max_length=500)


class CheckInBase(BaseModel):
    pain_worst: int | None = Field(None, ge=0, le=10)
    pain_average: int | None = Field(None, ge=0, le=10)
    functional_status: FunctionalStatus | None = None
    medication_compliance: MedicationCompliance | None = None
    exercise_compliance: ExerciseCompliance | None = None
    work_status: WorkStatus | None = None
    symptoms: Symptoms | None = None
    concerns: str | None = Field(None, max_length=2000)
    questions: str | None = Field(None, max_length=2000)
    goals: str | None = Field(None, max_length=2000)
    notes: str | None = Field(None, max_length=2000)


class CheckInCreate(CheckInBase):
    case_id: UUID
    pain_current: int = Field(..., ge=0, le=10)


class CheckInUpdate(CheckInBase):
    """Workers edit their own self-report; clinicians/case managers set review_notes."""

    pain_current: int | None = Field(None, ge=0, le=10)
    review_notes: str | None = Field(None, max_length=5000)


class CheckInRead(BaseModel):
    id: UUID
    case_id: UUID
    worker_id: UUID
    check_in_date: date
    pain_current: int
    pain_worst: int | None = None
    pain_average: int | None = None
    functional_status: dict | None = None
    medication_compliance: dict | None = None
    exercise_compliance: dict | None = None
    work_status: dict | None = None
    symptoms: dict | None = None
    concerns: str | None = None
    questions: str | None = None
    goals: str | None = None
    notes: str | None = None
    review_notes: str | None = None
    reviewed_by_id: UUID | None = None
    reviewed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CheckInCreateResponse(CheckInRead):
    alerts_sent: list[str] = Field(default_factory=list)


class CheckInStats(BaseModel):
    today_check_in: bool
    last_check_in: CheckInRead | None = None
    avg_pain_level: float | None = None
    exercise_compliance: int
    total_check_ins: int
    streak: int

SLEEP_QUALITY_SCORES = {"good": 8, "ok": 5, "poor": 2}


class AlertTestRequest(BaseModel):
    """Synthetic check-in for exercising the alert rules without storing anything."""

    case_id: UUID
    pain_level: int = Field(..., ge=0, le=10)
    can_do_job: Literal["yes", "modified", "no"] = "yes"
    sleep_quality: Literal["good", "ok", "poor"] = "good"


class AlertTestResponse(BaseModel):
    alerts_sent: list[str]
    recipients: int
