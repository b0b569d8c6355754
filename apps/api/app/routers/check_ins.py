"""Check-ins router - daily worker self-reports and alert testing."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_current_session, get_current_user, get_db, require_csrf_header, require_roles
from app.db.enums import CaseStatus, Role
from app.db.models import CheckIn, User
from app.schemas.auth import UserSession
from app.schemas.check_in import (
    SLEEP_QUALITY_SCORES,
    AlertTestRequest,
    AlertTestResponse,
    CheckInCreate,
    CheckInCreateResponse,
    CheckInRead,
    CheckInStats,
    CheckInUpdate,
)
from app.services import alert_service, case_service, check_in_service
from app.utils.dates import app_today
from app.utils.pagination import PaginatedResponse, PaginationParams, get_pagination, paginate_query

router = APIRouter()


def _get_visible_check_in(db: Session, check_in_id: UUID, session: UserSession) -> CheckIn:
    check_in = check_in_service.get_check_in(db, check_in_id)
    if not check_in:
        raise HTTPException(status_code=404, detail="Check-in not found")
    if not check_in_service.can_view_check_in(check_in, session):
        raise HTTPException(status_code=403, detail="Access denied to this check-in")
    return check_in


@router.get("", response_model=PaginatedResponse[CheckInRead])
def list_check_ins(
    case_id: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    query = check_in_service.list_check_ins_query(
        db, session, case_id=case_id, date_from=date_from, date_to=date_to
    )
    items, total = paginate_query(query, pagination)
    return PaginatedResponse.create([CheckInRead.model_validate(c) for c in items], total, pagination)


@router.get("/dashboard/stats", response_model=CheckInStats)
def check_in_stats(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    stats = check_in_service.get_stats(db, session)
    if stats["last_check_in"] is not None:
        stats["last_check_in"] = CheckInRead.model_validate(stats["last_check_in"])
    return CheckInStats(**stats)


@router.post(
    "",
    response_model=CheckInCreateResponse,
    status_code=201,
    dependencies=[Depends(require_csrf_header), Depends(require_roles([Role.WORKER]))],
)
def submit_check_in(
    data: CheckInCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Submit today's check-in.

    One check-in per case per day. Alerts to the care team are best-effort
    and reported back in `alerts_sent`.
    """
    case = case_service.get_case(db, data.case_id)
    if not case:
        raise HTTPException(status_code=404, detail="Case not found")
    if case.worker_id != user.id:
        raise HTTPException(status_code=403, detail="You can only check in on your own case")
    if case.status == CaseStatus.CLOSED.value:
        raise HTTPException(status_code=403, detail="Case is closed")

    try:
        check_in, alerts = check_in_service.create_check_in(db, case, data, worker=user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return CheckInCreateResponse(
        **CheckInRead.model_validate(check_in).model_dump(),
        alerts_sent=alerts,
    )


@router.post(
    "/test-alerts",
    response_model=AlertTestResponse,
    dependencies=[Depends(require_csrf_header)],
)
def test_alerts(
    data: AlertTestRequest,
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.CLINICIAN])),
    db: Session = Depends(get_db),
):
    """Run the alert rules against a synthetic check-in. Nothing is stored except the alerts."""
    case = case_service.get_case(db, data.case_id)
    if not case:
        raise HTTPException(status_code=404, detail="Case not found")
    if session.role == Role.CLINICIAN and case.clinician_id != session.user_id:
        raise HTTPException(status_code=403, detail="You can only test alerts on your own cases")

    signal = alert_service.CheckInSignal(
        check_in_date=app_today(),
        pain_current=data.pain_level,
        worked_today=data.can_do_job != "no",
        sleep=SLEEP_QUALITY_SCORES[data.sleep_quality],
    )
    alerts = alert_service.run_check_in_alerts(db, case, signal)
    return AlertTestResponse(alerts_sent=alerts, recipients=len(alert_service.alert_recipients(case)))


@router.get("/{check_in_id}", response_model=CheckInRead)
def get_check_in(
    check_in_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return CheckInRead.model_validate(_get_visible_check_in(db, check_in_id, session))


@router.put("/{check_in_id}", response_model=CheckInRead, dependencies=[Depends(require_csrf_header)])
def update_check_in(
    check_in_id: UUID,
    data: CheckInUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Review notes from the care team, or a same-day correction by the worker."""
    check_in = _get_visible_check_in(db, check_in_id, session)
    try:
        check_in = check_in_service.update_check_in(db, check_in, data, session)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return CheckInRead.model_validate(check_in)
