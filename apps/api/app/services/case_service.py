"""Case service - business logic for case operations."""

import logging
import secrets
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session, joinedload, selectinload

from app.core.case_access import scope_case_query
from app.db.enums import (
    CasePriority, CaseStatus, IncidentStatus, NoteType, Role,
)
from app.db.models import Case, CaseNote, CheckIn, Incident, User
from app.schemas.auth import UserSession
from app.schemas.case import CaseCreate, CaseUpdate
from app.services import assignment_service, notification_service, user_service
from app.utils.dates import app_today, utcnow
from app.utils.normalization import like_pattern

logger = logging.getLogger(__name__)

# Statuses whose transition is announced to every participant
ANNOUNCED_STATUSES = frozenset({CaseStatus.CLOSED, CaseStatus.RETURN_TO_WORK})


def generate_case_number() -> str:
    """CASE-{year}-{epoch millis}-{3 random digits}."""
    now = utcnow()
    millis = int(now.timestamp() * 1000)
    return f"CASE-{now.year}-{millis}-{secrets.randbelow(1000):03d}"


def _with_people(query: Query) -> Query:
    return query.options(
        joinedload(Case.worker),
        joinedload(Case.employer),
        joinedload(Case.case_manager),
        joinedload(Case.clinician),
    )


def get_case(db: Session, case_id: UUID) -> Case | None:
    """Get case by ID with participants, incident and notes loaded."""
    return _with_people(db.query(Case)).options(
        joinedload(Case.incident),
        selectinload(Case.notes).joinedload(CaseNote.author),
    ).filter(Case.id == case_id).first()


def _add_note(
    db: Session,
    case: Case,
    content: str,
    note_type: NoteType,
    author_id: UUID | None,
) -> CaseNote:
    note = CaseNote(
        case_id=case.id,
        author_id=author_id,
        content=content,
        note_type=note_type.value,
    )
    db.add(note)
    return note


# =============================================================================
# Create (with auto-assignment)
# =============================================================================


def _resolve_clinician(db: Session, data: CaseCreate) -> User | None:
    if data.clinician_id:
        clinician = user_service.get_active_user_with_role(db, data.clinician_id, Role.CLINICIAN)
        if not clinician:
            raise ValueError("Clinician not found or inactive")
        return clinician
    injury = data.injury_details.model_dump(mode="json", exclude_none=True)
    return (
        assignment_service.select_clinician(db, injury)
        or assignment_service.first_active_clinician(db)
    )


def create_case(db: Session, data: CaseCreate, actor: User) -> tuple[Case, CasePriority, bool]:
    """
    Create a case, auto-assigning case manager, clinician and priority.

    Returns (case, priority, clinician_assigned).

    Raises:
        ValueError: invalid worker/employer/incident/clinician, duplicate case
            for the incident, or no active case manager
    """
    worker = user_service.get_active_user_with_role(db, data.worker_id, Role.WORKER)
    if not worker:
        raise ValueError("Worker not found or inactive")
    employer = user_service.get_active_user_with_role(db, data.employer_id, Role.EMPLOYER)
    if not employer:
        raise ValueError("Employer not found or inactive")

    incident = db.query(Incident).filter(Incident.id == data.incident_id).first()
    if not incident:
        raise ValueError("Incident not found")
    if incident.employer_id is None:
        raise ValueError("Incident has no employer assigned")
    if db.query(Case.id).filter(Case.incident_id == incident.id).first():
        raise ValueError("A case already exists for this incident")

    if actor.role == Role.CASE_MANAGER.value:
        case_manager = actor
    else:
        case_manager = assignment_service.select_case_manager(db)
    if not case_manager:
        raise ValueError("No active case manager available")

    clinician = _resolve_clinician(db, data)
    injury = data.injury_details.model_dump(mode="json", exclude_none=True)
    priority = data.priority or assignment_service.derive_priority(
        injury.get("severity"), incident.incident_type
    )

    case = Case(
        case_number=generate_case_number(),
        worker_id=worker.id,
        employer_id=employer.id,
        case_manager_id=case_manager.id,
        clinician_id=clinician.id if clinician else None,
        incident_id=incident.id,
        status=(CaseStatus.TRIAGED if clinician else CaseStatus.NEW).value,
        priority=priority.value,
        injury_details=injury,
        work_restrictions=(
            data.work_restrictions.model_dump(mode="json", exclude_none=True)
            if data.work_restrictions else None
        ),
        expected_return_date=data.expected_return_date,
    )
    db.add(case)
    db.flush()

    incident.status = IncidentStatus.CLOSED.value
    if clinician:
        _add_note(
            db, case,
            f"Case auto-assigned to clinician {clinician.display_name}.",
            NoteType.ASSIGNMENT, actor.id,
        )
    if data.notes:
        _add_note(db, case, data.notes, NoteType.GENERAL, actor.id)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError("A case already exists for this incident")

    logger.info(
        "Case created",
        extra={"case_id": str(case.id), "user_id": str(actor.id), "priority": priority.value},
    )

    with notification_service.best_effort(db, "Case creation notifications failed", case_id=str(case.id)):
        notification_service.notify_case_created(db, case, actor)
        notification_service.commit_and_push(db)

    return get_case(db, case.id), priority, clinician is not None


# =============================================================================
# List / stats
# =============================================================================


def list_cases_query(
    db: Session,
    session: UserSession,
    status: CaseStatus | None = None,
    priority: CasePriority | None = None,
    search: str | None = None,
) -> Query:
    query = scope_case_query(_with_people(db.query(Case)), session)
    if status:
        query = query.filter(Case.status == status.value)
    if priority:
        query = query.filter(Case.priority == priority.value)
    if search and search.strip():
        pattern = like_pattern(search)
        query = query.filter(or_(
            Case.case_number.ilike(pattern, escape="\\"),
            Case.injury_details["description"].as_string().ilike(pattern, escape="\\"),
        ))
    return query.order_by(Case.created_at.desc())


def latest_check_ins(db: Session, case_ids: list[UUID]) -> dict[UUID, CheckIn]:
    """Most recent check-in per case."""
    if not case_ids:
        return {}
    rows = (
        db.query(CheckIn)
        .filter(CheckIn.case_id.in_(case_ids))
        .order_by(CheckIn.check_in_date.desc(), CheckIn.created_at.desc())
        .all()
    )
    latest: dict[UUID, CheckIn] = {}
    for row in rows:
        latest.setdefault(row.case_id, row)
    return latest


def get_stats(db: Session, session: UserSession) -> dict:
    """Role-scoped counts by status and priority."""
    base = scope_case_query(db.query(Case), session)
    by_status = dict(
        base.with_entities(Case.status, func.count(Case.id)).group_by(Case.status).all()
    )
    by_priority = dict(
        base.with_entities(Case.priority, func.count(Case.id)).group_by(Case.priority).all()
    )
    total = sum(by_status.values())
    return {
        "total": total,
        "active": total - by_status.get(CaseStatus.CLOSED.value, 0),
        "by_status": {s.value: by_status.get(s.value, 0) for s in CaseStatus},
        "by_priority": {p.value: by_priority.get(p.value, 0) for p in CasePriority},
    }


# =============================================================================
# Updates
# =============================================================================


def update_case(db: Session, case: Case, data: CaseUpdate, session: UserSession) -> Case:
    """
    Partial update of a case.

    Raises:
        PermissionError: clinician change by someone other than a case manager/admin
        ValueError: clinician not an active clinician
    """
    changes = data.model_dump(exclude_unset=True)

    if "clinician_id" in changes:
        if session.role not in (Role.CASE_MANAGER, Role.ADMIN):
            raise PermissionError("Only case managers and admins can change the clinician")
        clinician_id = changes.pop("clinician_id")
        if clinician_id is not None:
            clinician = user_service.get_active_user_with_role(db, clinician_id, Role.CLINICIAN)
            if not clinician:
                raise ValueError("Clinician not found or inactive")
        case.clinician_id = clinician_id

    for field in ("injury_details", "work_restrictions"):
        if field in changes and changes[field] is not None:
            model = getattr(data, field)
            changes[field] = model.model_dump(mode="json", exclude_none=True)
    if "injury_details" in changes and changes["injury_details"] is None:
        changes.pop("injury_details")

    for field in ("status", "priority"):
        if changes.get(field) is not None:
            changes[field] = changes[field].value
        elif field in changes:
            changes.pop(field)

    for field, value in changes.items():
        setattr(case, field, value)

    db.commit()
    return get_case(db, case.id)


def add_note(db: Session, case: Case, content: str, note_type: NoteType, author_id: UUID) -> CaseNote:
    note = _add_note(db, case, content, note_type, author_id)
    db.commit()
    db.refresh(note)
    return note


def assign_clinician(db: Session, case: Case, clinician_id: UUID, actor: User) -> Case:
    """
    Assign a clinician and move the case to triaged.

    Raises:
        ValueError: clinician not an active clinician
    """
    clinician = user_service.get_active_user_with_role(db, clinician_id, Role.CLINICIAN)
    if not clinician:
        raise ValueError("Clinician not found or inactive")

    case.clinician_id = clinician.id
    case.status = CaseStatus.TRIAGED.value
    _add_note(
        db, case,
        f"Clinician {clinician.display_name} assigned by {actor.display_name}.",
        NoteType.ASSIGNMENT, actor.id,
    )
    db.commit()

    with notification_service.best_effort(db, "Clinician assignment notifications failed", case_id=str(case.id)):
        notification_service.notify_clinician_assigned(db, case, actor)
        notification_service.commit_and_push(db)

    return get_case(db, case.id)


def change_status(
    db: Session,
    case: Case,
    new_status: CaseStatus,
    actor: User,
    reason: str | None = None,
) -> Case:
    """Move a case to any status, leaving a status_change note."""
    old_status = case.status
    case.status = new_status.value
    if new_status == CaseStatus.RETURN_TO_WORK:
        case.actual_return_date = app_today()

    content = f"Status changed from {old_status} to {new_status.value}."
    if reason:
        content = f"{content} Reason: {reason}"
    _add_note(db, case, content, NoteType.STATUS_CHANGE, actor.id)
    db.commit()

    if new_status in ANNOUNCED_STATUSES:
        with notification_service.best_effort(db, "Case status notifications failed", case_id=str(case.id)):
            notification_service.notify_case_status_change(db, case, actor, old_status)
            notification_service.commit_and_push(db)

    return get_case(db, case.id)
