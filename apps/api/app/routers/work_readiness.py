"""
Work readiness router - daily pre-shift self-assessments.

Workers submit and check their own; team leaders see their team's
compliance, history and logs, and follow up with members.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_db, require_csrf_header, require_roles
from app.db.enums import Mood, ReadinessLevel, Role
from app.db.models import User, WorkReadiness
from app.schemas.work_readiness import (
    CycleState,
    FollowUpRequest,
    FollowUpResponse,
    ReadinessHistory,
    SubmitAssessmentResponse,
    TeamReadiness,
    TodayStatus,
    WorkReadinessCreate,
    WorkReadinessRead,
    WorkReadinessWithWorker,
)
from app.services import kpi_service, user_service, work_readiness_service
from app.utils.pagination import PaginatedResponse, PaginationParams, get_pagination, paginate_query

router = APIRouter()

worker_only = require_roles([Role.WORKER])
team_leader_only = require_roles([Role.TEAM_LEADER])


def submit_for_worker(db: Session, worker: User, data: WorkReadinessCreate) -> SubmitAssessmentResponse:
    """Shared by /work-readiness/submit and /goal-kpi/submit-assessment."""
    try:
        assessment, state, completed = work_readiness_service.submit_assessment(db, worker, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return SubmitAssessmentResponse(
        assessment=WorkReadinessRead.model_validate(assessment),
        cycle=CycleState(**vars(state)),
        message=work_readiness_service.cycle_message(state),
        assignment_completed=completed,
        kpi=kpi_service.calculate_kpi(state.streak_days),
    )


def _get_member(db: Session, leader: User, worker_id: UUID) -> User:
    worker = user_service.get_user_by_id(db, worker_id)
    if not worker or worker.team_leader_id != leader.id or worker.role != Role.WORKER.value:
        raise HTTPException(status_code=404, detail="Worker not found or not in your team")
    return worker


def _get_team_assessment(db: Session, leader: User, assessment_id: UUID) -> WorkReadiness:
    assessment = work_readiness_service.get_assessment(db, assessment_id)
    if not assessment:
        raise HTTPException(status_code=404, detail="Assessment not found")
    if assessment.team_leader_id != leader.id:
        raise HTTPException(status_code=403, detail="Assessment was not submitted to you")
    return assessment


# =============================================================================
# Worker
# =============================================================================

@router.post(
    "/submit",
    response_model=SubmitAssessmentResponse,
    status_code=201,
    dependencies=[Depends(require_csrf_header), Depends(worker_only)],
)
def submit_work_readiness(
    data: WorkReadinessCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Submit today's readiness assessment.

    One per day. Completes today's assignment if there is one and notifies
    the team leader.
    """
    return submit_for_worker(db, user, data)


@router.get("/check-today", response_model=TodayStatus, dependencies=[Depends(worker_only)])
def check_today(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    assessment = work_readiness_service.get_today_assessment(db, user.id)
    return TodayStatus(
        already_submitted=assessment is not None,
        assessment=WorkReadinessRead.model_validate(assessment) if assessment else None,
    )


# =============================================================================
# Team leader
# =============================================================================

@router.get("/team", response_model=TeamReadiness, dependencies=[Depends(team_leader_only)])
def team_work_readiness(
    start_date: date | None = None,
    end_date: date | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Compliance for a date range; today when no range is given."""
    try:
        return TeamReadiness(**work_readiness_service.get_team_readiness(db, user, start_date, end_date))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/team/history", response_model=ReadinessHistory, dependencies=[Depends(team_leader_only)])
def team_history(
    days: int = Query(7, ge=1, le=90),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ReadinessHistory(**work_readiness_service.get_history(db, user, days=days))


@router.get(
    "/logs",
    response_model=PaginatedResponse[WorkReadinessWithWorker],
    dependencies=[Depends(team_leader_only)],
)
def assessment_logs(
    worker_id: UUID | None = None,
    readiness_level: ReadinessLevel | None = None,
    fatigue_level: int | None = Query(None, ge=1, le=5),
    mood: Mood | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = work_readiness_service.logs_query(
        db, user,
        worker_id=worker_id,
        readiness_level=readiness_level,
        fatigue_level=fatigue_level,
        mood=mood,
        date_from=date_from,
        date_to=date_to,
    )
    items, total = paginate_query(query, pagination)
    return PaginatedResponse.create([WorkReadinessWithWorker.model_validate(a) for a in items], total, pagination)


@router.post(
    "/followup",
    response_model=FollowUpResponse,
    dependencies=[Depends(require_csrf_header), Depends(team_leader_only)],
)
def follow_up_worker(
    data: FollowUpRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Remind a member to submit, optionally recording it on one of their assessments."""
    worker = _get_member(db, user, data.worker_id)
    assessment = None
    if data.assessment_id:
        assessment = _get_team_assessment(db, user, data.assessment_id)
        if assessment.worker_id != worker.id:
            raise HTTPException(status_code=400, detail="Assessment belongs to another worker")
    notification = work_readiness_service.follow_up(
        db, user, worker, reason=data.reason, message=data.message, assessment=assessment,
    )
    return FollowUpResponse(
        notification_id=notification.id if notification else None,
        message="Follow-up sent successfully",
    )


@router.put(
    "/{assessment_id}/review",
    response_model=WorkReadinessWithWorker,
    dependencies=[Depends(require_csrf_header), Depends(team_leader_only)],
)
def review_assessment(
    assessment_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    assessment = _get_team_assessment(db, user, assessment_id)
    return WorkReadinessWithWorker.model_validate(work_readiness_service.mark_reviewed(db, assessment, user))
