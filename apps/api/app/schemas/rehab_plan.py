"""Pydantic schemas for rehabilitation plans."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.db.enums import (
    ActivityKind, ExerciseDifficulty, GoalStatus, ItemStatus, ProgressType, RehabPlanStatus,
)


class Goal(BaseModel):
    description: str = Field(..., min_length=1, max_length=1000)
    target_date: date | None = None
    status: GoalStatus = GoalStatus.NOT_STARTED
    progress: int = Field(0, ge=0, le=100)


class Exercise(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)
    sets: int | None = Field(None, ge=0, le=100)
    reps: int | None = Field(None, ge=0, le=1000)
    duration: int | None = Field(None, ge=0, description="Minutes")
    frequency: str | None = Field(None, max_length=100)
    difficulty: ExerciseDifficulty = ExerciseDifficulty.BEGINNER
    instructions: str | None = Field(None, max_length=5000)
    status: ItemStatus = ItemStatus.NOT_STARTED


class Activity(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: ActivityKind = ActivityKind.THERAPEUTIC
    description: str | None = Field(None, max_length=2000)
    status: ItemStatus = ItemStatus.NOT_STARTED


class RehabPlanCreate(BaseModel):
    case_id: UUID
    plan_name: str = Field(..., min_length=1, max_length=255)
    start_date: date | None = None
    end_date: date | None = None
    goals: list[Goal] = Field(default_factory=list)
    exercises: list[Exercise] = Field(default_factory=list)
    activities: list[Activity] = Field(default_factory=list)
    notes: str | None = Field(None, max_length=5000)

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class RehabPlanUpdate(BaseModel):
    """Partial update; every change is recorded as a modification."""

    plan_name: str | None = Field(None, min_length=1, max_length=255)
    end_date: date | None = None
    status: RehabPlanStatus | None = None
    goals: list[Goal] | None = None
    exercises: list[Exercise] | None = None
    activities: list[Activity] | None = None
    notes: str | None = Field(None, max_length=5000)
    modification_reason: str | None = Field(None, max_length=1000)


class ProgressEntry(BaseModel):
    """
    Progress entry. Which value is required depends on type:

    - pain_level: level (0-10)
    - functional_improvement: improvement (0-100) and optional area
    - work_readiness: score (0-100)
    """

    type: ProgressType
    level: int | None = Field(None, ge=0, le=10)
    improvement: int | None = Field(None, ge=0, le=100)
    area: str | None = Field(None, max_length=100)
    score: int | None = Field(None, ge=0, le=100)
    notes: str | None = Field(None, max_length=1000)

    @model_validator(mode="after")
    def check_value(self):
        required = {
            ProgressType.PAIN_LEVEL: "level",
            ProgressType.FUNCTIONAL_IMPROVEMENT: "improvement",
            ProgressType.WORK_READINESS: "score",
        }[self.type]
        if getattr(self, required) is None:
            raise ValueError(f"{required} is required for {self.type.value} progress")
        return self


class RehabPlanRead(BaseModel):
    id: UUID
    case_id: UUID
    case_number: str | None = None
    clinician_id: UUID
    plan_name: str
    start_date: date
    end_date: date | None = None
    status: RehabPlanStatus
    goals: list[dict]
    exercises: list[dict]
    activities: list[dict]
    progress_tracking: dict
    modifications: list[dict]
    notes: str | None = None
    created_at: datetime
    updated_at: datetime


class RehabPlanStats(BaseModel):
    active_plans: int
    completed_plans: int
    total_goals: int
    completed_goals: int
    goal_completion_rate: float
    total_exercises: int
    completed_exercises: int
    exercise_completion_rate: float
    active_cases: int
    upcoming_appointments: int
