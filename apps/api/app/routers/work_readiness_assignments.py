"""
Work readiness assignments router.

Team leaders (and admins) assign workers a day to submit on; workers see
their own assignments and whether they can submit today.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_db, require_csrf_header, require_roles
from app.db.enums import AssignmentStatus, Role
from app.db.models import User, WorkReadinessAssignment
from app.schemas.auth import UserSession
from app.schemas.work_readiness import (
    AssignmentCreate,
    AssignmentCreateResult,
    AssignmentRead,
    AssignmentStats,
    AssignmentStatusUpdate,
    CanSubmitResponse,
    OverdueResult,
)
from app.services import readiness_assignment_service, work_readiness_service
from app.services.work_readiness_service import DUPLICATE_SUBMISSION
from app.utils.pagination import PaginatedResponse, PaginationParams, get_pagination, paginate_query

router = APIRouter()

leader_or_admin = require_roles([Role.TEAM_LEADER, Role.ADMIN])
worker_only = require_roles([Role.WORKER])
assignment_parties = require_roles([Role.TEAM_LEADER, Role.ADMIN, Role.WORKER])


def _get_assignment(db: Session, assignment_id: UUID) -> WorkReadinessAssignment:
    assignment = readiness_assignment_service.get_assignment(db, assignment_id)
    if not assignment:
        raise HTTPException(status_code=404, detail="Assignment not found")
    return assignment


def _page(query, pagination: PaginationParams) -> PaginatedResponse[AssignmentRead]:
    items, total = paginate_query(query, pagination)
    return PaginatedResponse.create([AssignmentRead.model_validate(a) for a in items], total, pagination)


# =============================================================================
# Team leader
# =============================================================================

@router.post(
    "",
    response_model=AssignmentCreateResult,
    status_code=201,
    dependencies=[Depends(require_csrf_header), Depends(leader_or_admin)],
)
def create_assignments(
    data: AssignmentCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Assign workers to submit readiness on a date.

    Workers that already have an assignment for the date are skipped and
    listed in skipped_worker_ids.
    """
    try:
        created, skipped = readiness_assignment_service.create_assignments(db, user, data)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AssignmentCreateResult(
        created=[AssignmentRead.model_validate(readiness_assignment_service.get_assignment(db, a.id)) for a in created],
        skipped_worker_ids=skipped,
    )


@router.get("", response_model=PaginatedResponse[AssignmentRead])
def list_assignments(
    status: AssignmentStatus | None = None,
    worker_id: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(leader_or_admin),
    db: Session = Depends(get_db),
):
    query = readiness_assignment_service.list_assignments_query(
        db, session, status=status, worker_id=worker_id, date_from=date_from, date_to=date_to,
    )
    return _page(query, pagination)


@router.get("/stats", response_model=AssignmentStats)
def assignment_stats(
    start_date: date | None = None,
    end_date: date | None = None,
    session: UserSession = Depends(leader_or_admin),
    db: Session = Depends(get_db),
):
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")
    return AssignmentStats(**readiness_assignment_service.get_stats(db, session, start_date, end_date))


@router.post(
    "/mark-overdue",
    response_model=OverdueResult,
    dependencies=[Depends(require_csrf_header)],
)
def mark_overdue(
    session: UserSession = Depends(leader_or_admin),
    db: Session = Depends(get_db),
):
    return OverdueResult(marked_overdue=readiness_assignment_service.mark_overdue(db, session))


# =============================================================================
# Worker
# =============================================================================

@router.get(
    "/worker",
    response_model=PaginatedResponse[AssignmentRead],
    dependencies=[Depends(worker_only)],
)
def my_assignments(
    status: AssignmentStatus | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _page(readiness_assignment_service.worker_assignments_query(db, user.id, status), pagination)


@router.get("/today", response_model=AssignmentRead | None, dependencies=[Depends(worker_only)])
def today_assignment(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    assignment = readiness_assignment_service.today_assignment(db, user.id)
    return AssignmentRead.model_validate(assignment) if assignment else None


@router.get("/can-submit", response_model=CanSubmitResponse, dependencies=[Depends(worker_only)])
def can_submit(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Submitting never requires an assignment; this only reports what today looks like."""
    assignment = readiness_assignment_service.today_assignment(db, user.id)
    read = AssignmentRead.model_validate(assignment) if assignment else None
    if work_readiness_service.get_today_assessment(db, user.id):
        return CanSubmitResponse(can_submit=False, assignment=read, message=DUPLICATE_SUBMISSION)
    if assignment is None:
        message = "No assignment for today"
    elif assignment.status == AssignmentStatus.OVERDUE.value:
        message = "Today's assignment is overdue, submit as soon as possible"
    else:
        message = "Assignment pending for today"
    return CanSubmitResponse(can_submit=True, assignment=read, message=message)


# =============================================================================
# Single assignment
# =============================================================================

@router.patch(
    "/{assignment_id}",
    response_model=AssignmentRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_assignment(
    assignment_id: UUID,
    data: AssignmentStatusUpdate,
    session: UserSession = Depends(assignment_parties),
    db: Session = Depends(get_db),
):
    assignment = _get_assignment(db, assignment_id)
    try:
        updated = readiness_assignment_service.update_status(db, assignment, data.status, session, data.notes)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AssignmentRead.model_validate(updated)


@router.delete(
    "/{assignment_id}",
    response_model=AssignmentRead,
    dependencies=[Depends(require_csrf_header)],
)
def cancel_assignment(
    assignment_id: UUID,
    session: UserSession = Depends(leader_or_admin),
    db: Session = Depends(get_db),
):
    """Cancels rather than deletes, so the history stays."""
    assignment = _get_assignment(db, assignment_id)
    try:
        cancelled = readiness_assignment_service.cancel_assignment(db, assignment, session)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AssignmentRead.model_validate(cancelled)
