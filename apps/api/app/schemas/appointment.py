"""Pydantic schemas for appointments."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.db.enums import (
    DEFAULT_DURATION_MINUTES, MAX_DURATION_MINUTES, MIN_DURATION_MINUTES,
    AppointmentLocation, AppointmentStatus, AppointmentType,
)
from app.schemas.user import UserSummary


class AppointmentCreate(BaseModel):
    case_id: UUID
    worker_id: UUID
    clinician_id: UUID | None = None
    appointment_type: AppointmentType
    scheduled_at: datetime
    duration_minutes: int = Field(
        DEFAULT_DURATION_MINUTES, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES
    )
    location: AppointmentLocation = AppointmentLocation.CLINIC
    purpose: str | None = Field(None, max_length=2000)
    notes: str | None = Field(None, max_length=5000)


class AppointmentUpdate(BaseModel):
    """Partial update. scheduled_at or duration_minutes re-runs the conflict check."""

    appointment_type: AppointmentType | None = None
    scheduled_at: datetime | None = None
    duration_minutes: int | None = Field(None, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)
    location: AppointmentLocation | None = None
    purpose: str | None = Field(None, max_length=2000)
    notes: str | None = Field(None, max_length=5000)


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus
    reason: str | None = Field(None, max_length=2000)


class AppointmentRead(BaseModel):
    id: UUID
    case_id: UUID
    case_number: str | None = None
    worker: UserSummary
    clinician: UserSummary
    appointment_type: AppointmentType
    scheduled_at: datetime
    duration_minutes: int
    location: AppointmentLocation
    status: AppointmentStatus
    purpose: str | None = None
    notes: str | None = None
    cancelled_by_id: UUID | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class AppointmentStats(BaseModel):
    total: int
    today: int
    upcoming: int
    completed: int
    today_appointments: list[AppointmentRead]
