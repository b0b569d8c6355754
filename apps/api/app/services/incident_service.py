"""Incident service - intake of workplace incidents."""

import secrets
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session, joinedload

from app.db.enums import IncidentStatus, Role
from app.db.models import Incident, User
from app.schemas.auth import UserSession
from app.schemas.incident import IncidentCreate
from app.services import user_service
from app.utils.dates import utcnow
from app.utils.normalization import like_pattern


def generate_incident_number(db: Session) -> str:
    """INC-{year}-{6 hex}, retried on the (unlikely) collision."""
    year = utcnow().year
    while True:
        candidate = f"INC-{year}-{secrets.token_hex(3).upper()}"
        exists = db.query(Incident.id).filter(Incident.incident_number == candidate).first()
        if not exists:
            return candidate


def get_incident(db: Session, incident_id: UUID) -> Incident | None:
    return db.query(Incident).options(
        joinedload(Incident.reported_by),
        joinedload(Incident.worker),
        joinedload(Incident.employer),
    ).filter(Incident.id == incident_id).first()


def create_incident(db: Session, data: IncidentCreate, reporter: User) -> Incident:
    """
    Record a new incident.

    The employer defaults to the worker's employer, or to the reporter when
    the reporter is an employer.

    Raises:
        ValueError: worker not an active worker, or employer not an active employer
    """
    worker = user_service.get_active_user_with_role(db, data.worker_id, Role.WORKER)
    if not worker:
        raise ValueError("Worker not found or inactive")

    employer_id = data.employer_id or worker.employer_id
    if employer_id is None and reporter.role == Role.EMPLOYER.value:
        employer_id = reporter.id

    if employer_id is not None:
        employer = user_service.get_active_user_with_role(db, employer_id, Role.EMPLOYER)
        if not employer:
            raise ValueError("Employer not found or inactive")

    incident = Incident(
        incident_number=generate_incident_number(db),
        reported_by_id=reporter.id,
        worker_id=worker.id,
        employer_id=employer_id,
        incident_date=data.incident_date,
        description=data.description,
        incident_type=data.incident_type.value,
        severity=data.severity.value,
        location=data.location,
    )
    db.add(incident)
    db.commit()
    db.refresh(incident)
    return incident


def scope_incident_query(query: Query, session: UserSession) -> Query:
    """Workers and employers see their own; site supervisors their employer's and their reports."""
    if session.role == Role.WORKER:
        return query.filter(Incident.worker_id == session.user_id)
    if session.role == Role.EMPLOYER:
        return query.filter(Incident.employer_id == session.user_id)
    if session.role == Role.SITE_SUPERVISOR:
        clauses = [Incident.reported_by_id == session.user_id]
        if session.employer_id:
            clauses.append(Incident.employer_id == session.employer_id)
        return query.filter(or_(*clauses))
    return query


def can_view_incident(incident: Incident, session: UserSession) -> bool:
    if session.role == Role.WORKER:
        return incident.worker_id == session.user_id
    if session.role == Role.EMPLOYER:
        return incident.employer_id == session.user_id
    if session.role == Role.SITE_SUPERVISOR:
        return incident.reported_by_id == session.user_id or (
            session.employer_id is not None and incident.employer_id == session.employer_id
        )
    return True


def list_incidents_query(
    db: Session,
    session: UserSession,
    status: IncidentStatus | None = None,
    severity: str | None = None,
    search: str | None = None,
) -> Query:
    query = db.query(Incident).options(
        joinedload(Incident.reported_by),
        joinedload(Incident.worker),
        joinedload(Incident.employer),
    )
    query = scope_incident_query(query, session)
    if status:
        query = query.filter(Incident.status == status.value)
    if severity:
        query = query.filter(Incident.severity == severity)
    if search and search.strip():
        pattern = like_pattern(search)
        query = query.filter(or_(
            Incident.incident_number.ilike(pattern, escape="\\"),
            Incident.description.ilike(pattern, escape="\\"),
            Incident.location.ilike(pattern, escape="\\"),
        ))
    return query.order_by(Incident.created_at.desc())


def update_status(db: Session, incident: Incident, status: IncidentStatus) -> Incident:
    incident.status = status.value
    db.commit()
    db.refresh(incident)
    return incident
