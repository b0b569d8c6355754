"""Incident-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.db.enums import IncidentSeverity, IncidentStatus, IncidentType
from app.schemas.user import UserSummary


class IncidentCreate(BaseModel):
    """Report a workplace incident."""

    worker_id: UUID
    employer_id: UUID | None = None
    incident_date: datetime
    description: str = Field(..., min_length=1, max_length=5000)
    incident_type: IncidentType
    severity: IncidentSeverity
    location: str | None = Field(None, max_length=255)


class IncidentStatusUpdate(BaseModel):
    status: IncidentStatus


class IncidentRead(BaseModel):
    id: UUID
    incident_number: str
    reported_by: UserSummary
    worker: UserSummary
    employer: UserSummary | None = None
    incident_date: datetime
    description: str
    incident_type: IncidentType
    severity: IncidentSeverity
    location: str | None = None
    status: IncidentStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
