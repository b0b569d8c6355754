"""Pydantic schemas for clinician availability and workload."""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.db.enums import CasePriority, CaseStatus


class ClinicianRead(BaseModel):
    id: UUID
    display_name: str
    email: str
    phone: str | None = None
    specialty: str | None = None
    license_number: str | None = None
    is_available: bool
    availability_reason: str | None = None
    last_availability_update: datetime | None = None

    model_config = {"from_attributes": True}


class Workload(BaseModel):
    active_cases: int
    today_appointments: int
    week_appointments: int
    availability_score: int
    status: Literal["available", "moderate", "busy"]


class AvailableClinician(ClinicianRead):
    workload: Workload


class ActiveCase(BaseModel):
    id: UUID
    case_number: str
    status: CaseStatus
    priority: CasePriority
    expected_return_date: date | None = None

    model_config = {"from_attributes": True}


class ClinicianWorkloadResponse(BaseModel):
    clinician: ClinicianRead
    workload: Workload
    active_cases: list[ActiveCase]


class AvailabilityUpdate(BaseModel):
    is_available: bool
    availability_reason: str | None = Field(None, max_length=255)
