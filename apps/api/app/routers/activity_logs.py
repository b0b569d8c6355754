"""
Activity logs router - the worker activity feed for the care team.

Clinicians see entries on cases they treat, case managers entries on cases
they manage, admins everything.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_csrf_header, require_roles
from app.db.enums import ActivityLogType, ActivityPriority, Role
from app.db.models import ActivityLog
from app.schemas.activity_log import ActivityLogRead, ActivityReviewRequest, ActivitySummary
from app.schemas.auth import UserSession
from app.schemas.user import UserSummary
from app.services import activity_service, case_service, user_service
from app.utils.pagination import PaginatedResponse, PaginationParams, get_pagination, paginate_query

router = APIRouter()

FEED_ROLES = [Role.CLINICIAN, Role.CASE_MANAGER, Role.ADMIN]


def _activity_to_read(activity: ActivityLog) -> ActivityLogRead:
    return ActivityLogRead(
        id=activity.id,
        worker_id=activity.worker_id,
        worker=UserSummary.model_validate(activity.worker),
        case_id=activity.case_id,
        case_number=activity.case.case_number if activity.case else None,
        clinician_id=activity.clinician_id,
        rehab_plan_id=activity.rehab_plan_id,
        activity_type=activity.activity_type,
        title=activity.title,
        description=activity.description,
        priority=activity.priority,
        details=activity.details,
        is_reviewed=activity.is_reviewed,
        review_notes=activity.review_notes,
        reviewed_by_id=activity.reviewed_by_id,
        reviewed_at=activity.reviewed_at,
        created_at=activity.created_at,
    )


def _get_visible_activity(db: Session, activity_id: UUID, session: UserSession) -> ActivityLog:
    activity = activity_service.get_activity(db, activity_id)
    if not activity:
        raise HTTPException(status_code=404, detail="Activity log not found")
    if not activity_service.can_view_activity(activity, session):
        raise HTTPException(status_code=403, detail="Access denied")
    return activity


def _page(query, pagination: PaginationParams) -> PaginatedResponse[ActivityLogRead]:
    items, total = paginate_query(query, pagination)
    return PaginatedResponse.create([_activity_to_read(a) for a in items], total, pagination)


@router.get("", response_model=PaginatedResponse[ActivityLogRead])
def list_activity_logs(
    case_id: UUID | None = None,
    worker_id: UUID | None = None,
    activity_type: ActivityLogType | None = None,
    is_reviewed: bool | None = None,
    priority: ActivityPriority | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(require_roles(FEED_ROLES)),
    db: Session = Depends(get_db),
):
    query = activity_service.list_activity_query(
        db, session,
        case_id=case_id,
        worker_id=worker_id,
        activity_type=activity_type,
        is_reviewed=is_reviewed,
        priority=priority,
        date_from=date_from,
        date_to=date_to,
    )
    return _page(query, pagination)


@router.get("/stats/summary", response_model=ActivitySummary)
def activity_summary(
    session: UserSession = Depends(require_roles(FEED_ROLES)),
    db: Session = Depends(get_db),
):
    return ActivitySummary(**activity_service.get_summary(db, session))


@router.get("/worker/{worker_id}", response_model=PaginatedResponse[ActivityLogRead])
def worker_activity_logs(
    worker_id: UUID,
    case_id: UUID | None = None,
    activity_type: ActivityLogType | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(require_roles(FEED_ROLES)),
    db: Session = Depends(get_db),
):
    """One worker's feed; needs a case link to the worker unless admin."""
    if not user_service.get_user_by_id(db, worker_id):
        raise HTTPException(status_code=404, detail="Worker not found")
    if not activity_service.has_worker_access(db, worker_id, session):
        raise HTTPException(status_code=403, detail="Access denied to this worker's logs")
    query = activity_service.list_activity_query(
        db, session,
        worker_id=worker_id,
        case_id=case_id,
        activity_type=activity_type,
        date_from=date_from,
        date_to=date_to,
    )
    return _page(query, pagination)


@router.get("/case/{case_id}", response_model=PaginatedResponse[ActivityLogRead])
def case_activity_logs(
    case_id: UUID,
    activity_type: ActivityLogType | None = None,
    is_reviewed: bool | None = None,
    priority: ActivityPriority | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(require_roles(FEED_ROLES)),
    db: Session = Depends(get_db),
):
    case = case_service.get_case(db, case_id)
    if not case:
        raise HTTPException(status_code=404, detail="Case not found")
    if session.role != Role.ADMIN and session.user_id not in (case.clinician_id, case.case_manager_id):
        raise HTTPException(status_code=403, detail="Access denied to this case's logs")
    query = activity_service.list_activity_query(
        db, session,
        case_id=case_id,
        activity_type=activity_type,
        is_reviewed=is_reviewed,
        priority=priority,
        date_from=date_from,
        date_to=date_to,
    )
    return _page(query, pagination)


@router.get("/{activity_id}", response_model=ActivityLogRead)
def get_activity_log(
    activity_id: UUID,
    session: UserSession = Depends(require_roles(FEED_ROLES)),
    db: Session = Depends(get_db),
):
    return _activity_to_read(_get_visible_activity(db, activity_id, session))


@router.put("/{activity_id}/review", response_model=ActivityLogRead, dependencies=[Depends(require_csrf_header)])
def review_activity_log(
    activity_id: UUID,
    data: ActivityReviewRequest,
    session: UserSession = Depends(require_roles(FEED_ROLES)),
    db: Session = Depends(get_db),
):
    activity = _get_visible_activity(db, activity_id, session)
    activity = activity_service.mark_reviewed(db, activity, session.user_id, data.notes)
    return _activity_to_read(activity)
