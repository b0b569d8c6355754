"""
Goal KPI router - work readiness goals.

Worker endpoints report on the caller, or on a member of the caller's
team for team leaders, or on any worker for admins.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_db, require_csrf_header, require_roles
from app.db.enums import Role
from app.db.models import User
from app.routers.work_readiness import submit_for_worker
from app.schemas.goal_kpi import (
    MonitoringDashboard,
    MonthlyPerformance,
    TeamAssignmentSummary,
    TeamWeeklyKPIResponse,
    WeeklyProgress,
    WorkerAssignmentKPI,
)
from app.schemas.work_readiness import SubmitAssessmentResponse, WorkReadinessCreate
from app.services import goal_kpi_service, user_service

router = APIRouter()

worker_only = require_roles([Role.WORKER])
team_leader_only = require_roles([Role.TEAM_LEADER])
kpi_viewers = require_roles([Role.WORKER, Role.TEAM_LEADER, Role.ADMIN])


def _target_worker(db: Session, user: User, worker_id: UUID | None) -> User:
    if user.role == Role.WORKER.value:
        if worker_id and worker_id != user.id:
            raise HTTPException(status_code=403, detail="Workers can only view their own KPIs")
        return user
    if worker_id is None:
        raise HTTPException(status_code=400, detail="worker_id is required")
    worker = user_service.get_user_by_id(db, worker_id)
    if not worker or worker.role != Role.WORKER.value:
        raise HTTPException(status_code=404, detail="Worker not found")
    if user.role == Role.TEAM_LEADER.value and worker.team_leader_id != user.id:
        raise HTTPException(status_code=404, detail="Worker not found or not in your team")
    return worker


# =============================================================================
# Worker
# =============================================================================

@router.get("/worker/weekly-progress", response_model=WeeklyProgress, dependencies=[Depends(kpi_viewers)])
def weekly_progress(
    worker_id: UUID | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Day-by-day progress through the current 7-day cycle."""
    worker = _target_worker(db, user, worker_id)
    return WeeklyProgress(**goal_kpi_service.get_weekly_progress(db, worker))


@router.get("/worker/assignment-kpi", response_model=WorkerAssignmentKPI, dependencies=[Depends(kpi_viewers)])
def worker_assignment_kpi(
    worker_id: UUID | None = None,
    year: int | None = Query(None, ge=2000, le=2100),
    month: int | None = Query(None, ge=1, le=12),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    worker = _target_worker(db, user, worker_id)
    return WorkerAssignmentKPI(**goal_kpi_service.get_worker_assignment_kpi(db, worker, year, month))


@router.post(
    "/submit-assessment",
    response_model=SubmitAssessmentResponse,
    status_code=201,
    dependencies=[Depends(require_csrf_header), Depends(worker_only)],
)
def submit_assessment(
    data: WorkReadinessCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return submit_for_worker(db, user, data)


# =============================================================================
# Team leader
# =============================================================================

@router.get(
    "/team-leader/weekly-kpi",
    response_model=TeamWeeklyKPIResponse,
    dependencies=[Depends(team_leader_only)],
)
def team_weekly_kpi(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TeamWeeklyKPIResponse(**goal_kpi_service.get_team_weekly_kpi(db, user))


@router.get(
    "/team-leader/assignment-summary",
    response_model=TeamAssignmentSummary,
    dependencies=[Depends(team_leader_only)],
)
def team_assignment_summary(
    year: int | None = Query(None, ge=2000, le=2100),
    month: int | None = Query(None, ge=1, le=12),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TeamAssignmentSummary(**goal_kpi_service.get_team_assignment_summary(db, user, year, month))


@router.get(
    "/team-leader/monitoring-dashboard",
    response_model=MonitoringDashboard,
    dependencies=[Depends(team_leader_only)],
)
def monitoring_dashboard(
    time_range: int = Query(30, ge=1, le=365),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return MonitoringDashboard(**goal_kpi_service.get_monitoring_dashboard(db, user, time_range=time_range))


@router.get(
    "/team-leader/monthly-performance",
    response_model=MonthlyPerformance,
    dependencies=[Depends(team_leader_only)],
)
def monthly_performance(
    year: int | None = Query(None, ge=2000, le=2100),
    month: int | None = Query(None, ge=1, le=12),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return MonthlyPerformance(**goal_kpi_service.get_monthly_performance(db, user, year, month))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
