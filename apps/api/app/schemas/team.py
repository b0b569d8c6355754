"""Pydantic schemas for team leader and site supervisor views."""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.core.security import validate_worker_password
from app.schemas.user import UserRead, UserSummary


class TeamWorkerCreate(BaseModel):
    """Worker account created by a team leader."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str
    phone: str | None = Field(None, max_length=30)
    team: str | None = Field(None, max_length=100)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_worker_password(v)


class TeamMemberUpdate(BaseModel):
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=30)
    team: str | None = Field(None, max_length=100)


class TeamName(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class TeamsResponse(BaseModel):
    current_team: str | None = None
    default_team: str | None = None
    managed_teams: list[str]


# =============================================================================
# Dashboard
# =============================================================================


class TeamOverview(BaseModel):
    team_name: str | None = None
    total_members: int
    active_today: int


class SafetyMetrics(BaseModel):
    active_cases: int
    incidents_this_month: int
    incidents_last_month: int
    trend: Literal["up", "down", "stable"]


class ComplianceMetrics(BaseModel):
    today_check_ins: int
    today_completion_rate: float
    weekly_check_ins: int
    weekly_completion_rate: float


class TeamDashboard(BaseModel):
    team_overview: TeamOverview
    safety_metrics: SafetyMetrics
    compliance_metrics: ComplianceMetrics


# =============================================================================
# Login activity & analytics
# =============================================================================


class MemberLoginActivity(BaseModel):
    user_id: UUID
    name: str
    email: str
    team: str | None = None
    is_active: bool
    login_count: int
    last_login_at: datetime | None = None
    recent_logins: list[datetime]


class LoginActivitySummary(BaseModel):
    total_members: int
    members_logged_in: int
    total_logins: int


class LoginActivityResponse(BaseModel):
    days: int
    members: list[MemberLoginActivity]
    summary: LoginActivitySummary


class MemberAnalytics(BaseModel):
    user_id: UUID
    name: str
    team: str | None = None
    check_ins_7d: int
    check_ins_30d: int
    avg_pain_level: float | None = None
    last_check_in: date | None = None


class TeamAnalytics(BaseModel):
    total_members: int
    active_members: int
    check_in_completion_7d: float
    check_in_completion_30d: float
    avg_pain_level: float | None = None
    active_cases: int
    members: list[MemberAnalytics]


# =============================================================================
# Site supervisor
# =============================================================================


class SupervisedTeamLeader(BaseModel):
    team_leader: UserSummary
    teams: list[str]
    default_team: str | None = None
    members: list[UserRead]
    total_members: int
    active_members: int


class SupervisorOverview(BaseModel):
    team_leaders: list[SupervisedTeamLeader]
    total_team_leaders: int
    total_members: int


class TeamListEntry(BaseModel):
    team: str
    member_count: int
    team_leaders: list[str]
