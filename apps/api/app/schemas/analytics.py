"""Pydantic schemas for the admin analytics dashboard."""

from pydantic import BaseModel

from app.schemas.user import UserRead


class Totals(BaseModel):
    users: int
    active_users: int
    cases: int
    appointments: int
    activity_logs: int
    incidents: int
    rehab_plans: int
    notifications: int


class ThisMonth(BaseModel):
    cases: int
    appointments: int
    activity_logs: int
    incidents: int


class MonthOverMonth(BaseModel):
    this_month: int
    last_month: int
    growth: float


class Growth(BaseModel):
    users: MonthOverMonth
    cases: MonthOverMonth
    activity_logs: MonthOverMonth


class RoleShare(BaseModel):
    role: str
    count: int
    percentage: float


class AdminAnalytics(BaseModel):
    totals: Totals
    this_month: ThisMonth
    growth: Growth
    users_by_role: list[RoleShare]
    cases_by_status: dict[str, int]
    recent_registrations: list[UserRead]
    recently_active: list[UserRead]
