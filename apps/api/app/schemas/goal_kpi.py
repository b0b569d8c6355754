"""Pydantic schemas for work readiness goal KPIs."""

from datetime import date

from pydantic import BaseModel

from app.schemas.user import UserSummary


# =============================================================================
# Ratings
# =============================================================================


class KPIRating(BaseModel):
    rating: str
    color: str
    description: str
    score: int


class CycleKPI(KPIRating):
    """Rating by consecutive submission days."""

    consecutive_days: int
    max_days: int


class CompletionKPI(KPIRating):
    completion_rate: float
    max_rate: int


class TeamWeeklyKPI(CompletionKPI):
    weekly_submissions: int
    total_members: int


class AssignmentKPI(KPIRating):
    grade: str
    completion_rate: int
    on_time_rate: int
    quality_score: int
    pending_bonus: int
    overdue_penalty: int
    completed_assignments: int
    pending_assignments: int
    overdue_assignments: int
    total_assignments: int


# =============================================================================
# Worker
# =============================================================================


class Streaks(BaseModel):
    current: int
    longest: int


class CycleSummary(BaseModel):
    cycle_start: date
    cycle_day: int
    streak_days: int
    cycle_completed: bool


class DayProgress(BaseModel):
    date: date
    day_name: str
    completed: bool
    readiness_level: str | None = None
    fatigue_level: int | None = None
    mood: str | None = None


class TrendWeek(BaseModel):
    week_start: date
    week_end: date
    submitted_days: int
    completion_rate: int


class WeeklyProgress(BaseModel):
    has_cycle: bool
    week_label: str
    completed_days: int
    total_days: int
    completion_rate: int
    kpi: CycleKPI
    streaks: Streaks
    top_performing_days: int
    cycle: CycleSummary | None = None
    daily_breakdown: list[DayProgress]
    performance_trend: list[TrendWeek]


class AssignmentCounts(BaseModel):
    total: int
    completed: int
    on_time: int
    late: int
    pending: int
    overdue: int


class WorkerAssignmentKPI(AssignmentCounts):
    worker: UserSummary
    period_start: date
    period_end: date
    kpi: AssignmentKPI


# =============================================================================
# Team leader
# =============================================================================


class MemberWeeklyKPI(BaseModel):
    worker: UserSummary
    submissions_this_week: int
    cycle_day: int | None = None
    streak_days: int
    cycle_days_submitted: int
    cycle_completion_rate: int
    kpi: CompletionKPI


class TeamWeeklyKPIResponse(BaseModel):
    week_start: date
    week_end: date
    total_members: int
    members_submitted: int
    team_kpi: TeamWeeklyKPI
    readiness_breakdown: dict[str, int]
    average_fatigue: float | None = None
    individual_kpis: list[MemberWeeklyKPI]


class MemberAssignmentKPI(AssignmentCounts):
    worker: UserSummary
    kpi: AssignmentKPI


class TeamAssignmentTotals(AssignmentCounts):
    kpi: AssignmentKPI


class TeamAssignmentSummary(BaseModel):
    period_start: date
    period_end: date
    total_members: int
    team: TeamAssignmentTotals
    members: list[MemberAssignmentKPI]


class MemberCycleStatus(BaseModel):
    worker: UserSummary
    status: str
    cycle_start: date | None = None
    cycle_day: int
    streak_days: int
    last_submission: date | None = None
    kpi: CycleKPI


class CompletedCycle(BaseModel):
    worker: UserSummary
    cycle_start: date
    completed_on: date
    kpi: CycleKPI


class MonitoringSummary(BaseModel):
    total_members: int
    active_members: int
    completed_cycles: int
    average_cycles_per_member: float
    team_average_kpi: float


class WeeklyTrend(BaseModel):
    week_start: date
    week_end: date
    submissions: int
    active_workers: int
    completion_rate: int


class MonitoringDashboard(BaseModel):
    time_range: int
    period_start: date
    period_end: date
    current_cycles: list[MemberCycleStatus]
    completed_cycles: list[CompletedCycle]
    team_summary: MonitoringSummary
    weekly_trends: list[WeeklyTrend]


class MemberMonthlyPerformance(BaseModel):
    worker: UserSummary
    submission_days: int
    submission_rate: int
    completed_cycles: int
    readiness_breakdown: dict[str, int]
    kpi: CompletionKPI
    assignment_kpi: AssignmentKPI


class MonthlyTeamSummary(BaseModel):
    total_members: int
    total_submissions: int
    average_submission_rate: float
    completed_cycles: int
    readiness_breakdown: dict[str, int]
    team_kpi: CompletionKPI
    assignment_kpi: AssignmentKPI


class MonthlyPerformance(BaseModel):
    period_start: date
    period_end: date
    days_elapsed: int
    team_summary: MonthlyTeamSummary
    members: list[MemberMonthlyPerformance]
    weekly_trends: list[WeeklyTrend]
    insights: list[str]
