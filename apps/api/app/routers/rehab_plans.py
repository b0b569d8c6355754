"""Rehab plans router."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_current_session, get_current_user, get_db, require_csrf_header, require_roles
from app.db.enums import RehabPlanStatus, Role
from app.db.models import RehabPlan, User
from app.schemas.auth import UserSession
from app.schemas.rehab_plan import (
    ProgressEntry,
    RehabPlanCreate,
    RehabPlanRead,
    RehabPlanStats,
    RehabPlanUpdate,
)
from app.services import case_service, rehab_plan_service
from app.utils.pagination import PaginatedResponse, PaginationParams, get_pagination, paginate_query

router = APIRouter()


def _plan_to_read(plan: RehabPlan) -> RehabPlanRead:
    return RehabPlanRead(
        id=plan.id,
        case_id=plan.case_id,
        case_number=plan.case.case_number if plan.case else None,
        clinician_id=plan.clinician_id,
        plan_name=plan.plan_name,
        start_date=plan.start_date,
        end_date=plan.end_date,
        status=plan.status,
        goals=plan.goals or [],
        exercises=plan.exercises or [],
        activities=plan.activities or [],
        progress_tracking=plan.progress_tracking or rehab_plan_service.empty_progress_tracking(),
        modifications=plan.modifications or [],
        notes=plan.notes,
        created_at=plan.created_at,
        updated_at=plan.updated_at,
    )


def _get_visible_plan(db: Session, plan_id: UUID, session: UserSession) -> RehabPlan:
    plan = rehab_plan_service.get_plan(db, plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Rehabilitation plan not found")
    if not rehab_plan_service.can_view_plan(plan, session):
        raise HTTPException(status_code=403, detail="Access denied to this plan")
    return plan


@router.get("", response_model=PaginatedResponse[RehabPlanRead])
def list_plans(
    case_id: UUID | None = None,
    status: RehabPlanStatus | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    query = rehab_plan_service.list_plans_query(db, session, case_id=case_id, status=status)
    items, total = paginate_query(query, pagination)
    return PaginatedResponse.create([_plan_to_read(p) for p in items], total, pagination)


@router.get("/dashboard/stats", response_model=RehabPlanStats)
def plan_stats(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return RehabPlanStats(**rehab_plan_service.get_stats(db, session))


@router.get("/{plan_id}", response_model=RehabPlanRead)
def get_plan(
    plan_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _plan_to_read(_get_visible_plan(db, plan_id, session))


@router.post(
    "",
    response_model=RehabPlanRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header), Depends(require_roles([Role.CLINICIAN, Role.CASE_MANAGER]))],
)
def create_plan(
    data: RehabPlanCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Start a plan. A triaged or assessed case moves to in_rehab."""
    case = case_service.get_case(db, data.case_id)
    if not case:
        raise HTTPException(status_code=404, detail="Case not found")
    try:
        plan = rehab_plan_service.create_plan(db, case, data, actor=user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _plan_to_read(plan)


@router.put("/{plan_id}", response_model=RehabPlanRead, dependencies=[Depends(require_csrf_header)])
def update_plan(
    plan_id: UUID,
    data: RehabPlanUpdate,
    user: User = Depends(get_current_user),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    plan = rehab_plan_service.get_plan(db, plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Rehabilitation plan not found")
    if not rehab_plan_service.can_edit_plan(plan, session):
        raise HTTPException(status_code=403, detail="Not authorized to modify this plan")
    try:
        plan = rehab_plan_service.update_plan(db, plan, data, actor=user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _plan_to_read(plan)


@router.post("/{plan_id}/progress", response_model=RehabPlanRead, dependencies=[Depends(require_csrf_header)])
def record_progress(
    plan_id: UUID,
    entry: ProgressEntry,
    user: User = Depends(get_current_user),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    plan = rehab_plan_service.get_plan(db, plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Rehabilitation plan not found")
    if not rehab_plan_service.can_record_progress(plan, session):
        raise HTTPException(status_code=403, detail="Not authorized to record progress on this plan")
    return _plan_to_read(rehab_plan_service.record_progress(db, plan, entry, actor=user))
