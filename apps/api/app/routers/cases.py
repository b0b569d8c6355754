"""Cases router - case pipeline, notes and assignment."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.case_access import can_manage_case, check_case_access, is_case_participant
from app.core.deps import get_current_session, get_current_user, get_db, require_csrf_header, require_roles
from app.db.enums import ROLES_CAN_CREATE_CASES, CasePriority, CaseStatus, Role
from app.db.models import Case, CheckIn, User
from app.schemas.auth import UserSession
from app.schemas.case import (
    AssignClinicianRequest,
    AutoAssignments,
    CaseCreate,
    CaseCreateResponse,
    CaseListItem,
    CaseNoteCreate,
    CaseNoteRead,
    CaseRead,
    CaseStats,
    CaseStatusChange,
    CaseUpdate,
    LatestCheckIn,
)
from app.schemas.user import UserSummary
from app.services import case_service
from app.utils.pagination import PaginatedResponse, PaginationParams, pagination_dependency, paginate_query

router = APIRouter()

get_case_pagination = pagination_dependency(10)


def _summary(user: User | None) -> UserSummary | None:
    return UserSummary.model_validate(user) if user else None


def _case_to_read(case: Case) -> CaseRead:
    return CaseRead(
        id=case.id,
        case_number=case.case_number,
        status=case.status,
        priority=case.priority,
        worker=_summary(case.worker),
        employer=_summary(case.employer),
        case_manager=_summary(case.case_manager),
        clinician=_summary(case.clinician),
        incident_id=case.incident_id,
        incident_number=case.incident.incident_number if case.incident else None,
        injury_details=case.injury_details or {},
        work_restrictions=case.work_restrictions,
        expected_return_date=case.expected_return_date,
        actual_return_date=case.actual_return_date,
        notes=[CaseNoteRead.model_validate(n) for n in case.notes],
        created_at=case.created_at,
        updated_at=case.updated_at,
    )


def _case_to_list_item(case: Case, latest: CheckIn | None) -> CaseListItem:
    return CaseListItem(
        id=case.id,
        case_number=case.case_number,
        status=case.status,
        priority=case.priority,
        worker=_summary(case.worker),
        employer=_summary(case.employer),
        case_manager=_summary(case.case_manager),
        clinician=_summary(case.clinician),
        injury_details=case.injury_details or {},
        expected_return_date=case.expected_return_date,
        latest_check_in=(
            LatestCheckIn(check_in_date=latest.check_in_date, pain_level=latest.pain_current)
            if latest else None
        ),
        created_at=case.created_at,
        updated_at=case.updated_at,
    )


def _get_case_or_404(db: Session, case_id: UUID) -> Case:
    case = case_service.get_case(db, case_id)
    if not case:
        raise HTTPException(status_code=404, detail="Case not found")
    return case


def _require_manage(case: Case, session: UserSession) -> None:
    if not can_manage_case(case, session):
        raise HTTPException(status_code=403, detail="Not authorized to modify this case")


# =============================================================================
# Read
# =============================================================================

@router.get("", response_model=PaginatedResponse[CaseListItem])
def list_cases(
    status: CaseStatus | None = None,
    priority: CasePriority | None = None,
    search: str | None = Query(None, max_length=100),
    pagination: PaginationParams = Depends(get_case_pagination),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List cases visible to the current role, newest first, with the latest check-in."""
    query = case_service.list_cases_query(db, session, status=status, priority=priority, search=search)
    cases, total = paginate_query(query, pagination)
    latest = case_service.latest_check_ins(db, [c.id for c in cases])
    items = [_case_to_list_item(c, latest.get(c.id)) for c in cases]
    return PaginatedResponse.create(items, total, pagination)


@router.get("/dashboard/stats", response_model=CaseStats)
def case_stats(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return CaseStats(**case_service.get_stats(db, session))


@router.get("/{case_id}", response_model=CaseRead)
def get_case(
    case_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    case = _get_case_or_404(db, case_id)
    check_case_access(case, session)
    return _case_to_read(case)


# =============================================================================
# Write
# =============================================================================

@router.post(
    "",
    response_model=CaseCreateResponse,
    status_code=201,
    dependencies=[Depends(require_csrf_header), Depends(require_roles(ROLES_CAN_CREATE_CASES))],
)
def create_case(
    data: CaseCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Open a case for an incident.

    Case manager, clinician and priority are assigned automatically when
    not given explicitly.
    """
    try:
        case, priority, clinician_assigned = case_service.create_case(db, data, actor=user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return CaseCreateResponse(
        **_case_to_read(case).model_dump(),
        auto_assignments=AutoAssignments(priority=priority, clinician_assigned=clinician_assigned),
    )


@router.put("/{case_id}", response_model=CaseRead, dependencies=[Depends(require_csrf_header)])
def update_case(
    case_id: UUID,
    data: CaseUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    case = _get_case_or_404(db, case_id)
    _require_manage(case, session)
    try:
        case = case_service.update_case(db, case, data, session)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _case_to_read(case)


@router.post(
    "/{case_id}/notes",
    response_model=CaseNoteRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def add_case_note(
    case_id: UUID,
    data: CaseNoteCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Add a note (case participants and admins)."""
    case = _get_case_or_404(db, case_id)
    if not is_case_participant(case, session):
        raise HTTPException(status_code=403, detail="Only case participants can add notes")
    note = case_service.add_note(db, case, data.content, data.note_type, session.user_id)
    return CaseNoteRead.model_validate(note)


@router.put(
    "/{case_id}/assign-clinician",
    response_model=CaseRead,
    dependencies=[Depends(require_csrf_header), Depends(require_roles([Role.CASE_MANAGER, Role.ADMIN]))],
)
def assign_clinician(
    case_id: UUID,
    data: AssignClinicianRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    case = _get_case_or_404(db, case_id)
    try:
        case = case_service.assign_clinician(db, case, data.clinician_id, actor=user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _case_to_read(case)


@router.put("/{case_id}/status", response_model=CaseRead, dependencies=[Depends(require_csrf_header)])
def change_case_status(
    case_id: UUID,
    data: CaseStatusChange,
    user: User = Depends(get_current_user),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Move a case to any status (case manager, admin or the assigned clinician)."""
    case = _get_case_or_404(db, case_id)
    _require_manage(case, session)
    case = case_service.change_status(db, case, data.status, actor=user, reason=data.reason)
    return _case_to_read(case)
