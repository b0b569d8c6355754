"""Pydantic schemas for the worker activity feed."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.user import UserSummary


class ActivityLogRead(BaseModel):
    id: UUID
    worker_id: UUID
    worker: UserSummary
    case_id: UUID | None = None
    case_number: str | None = None
    clinician_id: UUID | None = None
    rehab_plan_id: UUID | None = None
    activity_type: str
    title: str
    description: str | None = None
    priority: str
    details: dict | None = None
    is_reviewed: bool
    review_notes: str | None = None
    reviewed_by_id: UUID | None = None
    reviewed_at: datetime | None = None
    created_at: datetime


class ActivityReviewRequest(BaseModel):
    notes: str | None = Field(None, max_length=1000)


class TypeCount(BaseModel):
    activity_type: str
    count: int


class PriorityCount(BaseModel):
    priority: str
    count: int


class ActivitySummary(BaseModel):
    total: int
    unreviewed: int
    last_30_days: int
    last_7_days: int
    today: int
    by_type: list[TypeCount]
    by_priority: list[PriorityCount]
