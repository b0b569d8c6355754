"""Incidents router - workplace incident intake."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.deps import get_current_session, get_current_user, get_db, require_csrf_header, require_roles
from app.db.enums import ROLES_CAN_REPORT_INCIDENTS, IncidentSeverity, IncidentStatus, Role
from app.db.models import User
from app.schemas.auth import UserSession
from app.schemas.incident import IncidentCreate, IncidentRead, IncidentStatusUpdate
from app.services import incident_service, notification_service
from app.utils.pagination import PaginatedResponse, PaginationParams, get_pagination, paginate_query

router = APIRouter()


def _get_visible_incident(db: Session, incident_id: UUID, session: UserSession):
    incident = incident_service.get_incident(db, incident_id)
    if not incident:
        raise HTTPException(status_code=404, detail="Incident not found")
    if not incident_service.can_view_incident(incident, session):
        raise HTTPException(status_code=403, detail="Access denied to this incident")
    return incident


@router.post(
    "",
    response_model=IncidentRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header), Depends(require_roles(ROLES_CAN_REPORT_INCIDENTS))],
)
def report_incident(
    data: IncidentCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Report an incident and alert every active case manager."""
    try:
        incident = incident_service.create_incident(db, data, reporter=user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    with notification_service.best_effort(db, "Incident notifications failed", user_id=str(user.id)):
        notification_service.notify_incident_reported(db, incident, user)
        notification_service.commit_and_push(db)

    return IncidentRead.model_validate(incident_service.get_incident(db, incident.id))


@router.get("", response_model=PaginatedResponse[IncidentRead])
def list_incidents(
    status: IncidentStatus | None = None,
    severity: IncidentSeverity | None = None,
    search: str | None = Query(None, max_length=100),
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    query = incident_service.list_incidents_query(
        db, session,
        status=status,
        severity=severity.value if severity else None,
        search=search,
    )
    items, total = paginate_query(query, pagination)
    return PaginatedResponse.create([IncidentRead.model_validate(i) for i in items], total, pagination)


@router.get("/{incident_id}", response_model=IncidentRead)
def get_incident(
    incident_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return IncidentRead.model_validate(_get_visible_incident(db, incident_id, session))


@router.put("/{incident_id}/status", response_model=IncidentRead, dependencies=[Depends(require_csrf_header)])
def update_incident_status(
    incident_id: UUID,
    data: IncidentStatusUpdate,
    session: UserSession = Depends(require_roles([Role.SITE_SUPERVISOR, Role.CASE_MANAGER, Role.ADMIN])),
    db: Session = Depends(get_db),
):
    incident = _get_visible_incident(db, incident_id, session)
    incident = incident_service.update_status(db, incident, data.status)
    return IncidentRead.model_validate(incident_service.get_incident(db, incident.id))
