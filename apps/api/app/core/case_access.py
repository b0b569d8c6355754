"""Case access control - centralized permission checks for case operations.

Access is participant-based:
- admin and gp_insurer: every case
- worker, employer, case_manager, clinician: cases where they hold that seat
- site_supervisor: cases of their own employer
- team_leader: cases of workers on their team
"""

from fastapi import HTTPException, status
from sqlalchemy import false, select
from sqlalchemy.orm import Query

from app.db.enums import ROLES_SEE_ALL_CASES, Role
from app.db.models import Case, User
from app.schemas.auth import UserSession


def can_access_case(case: Case, session: UserSession) -> bool:
    """True if the session user may read this case."""
    role = session.role
    if role in ROLES_SEE_ALL_CASES:
        return True

    user_id = session.user_id
    if user_id in (case.worker_id, case.employer_id, case.case_manager_id, case.clinician_id):
        return True

    if role == Role.SITE_SUPERVISOR:
        return session.employer_id is not None and case.employer_id == session.employer_id

    if role == Role.TEAM_LEADER:
        return case.worker is not None and case.worker.team_leader_id == user_id

    return False


def check_case_access(case: Case, session: UserSession) -> None:
    """
    Check if user can access this case.

    Raises:
        HTTPException: 403 if access denied
    """
    if not can_access_case(case, session):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied to this case",
        )


def is_case_participant(case: Case, session: UserSession) -> bool:
    """Worker, employer, case manager, clinician on the case, or admin (may add notes)."""
    if session.role == Role.ADMIN:
        return True
    return session.user_id in (
        case.worker_id, case.employer_id, case.case_manager_id, case.clinician_id
    )


def can_manage_case(case: Case, session: UserSession) -> bool:
    """Admin, any case manager, or the clinician assigned to this case."""
    if session.role in (Role.ADMIN, Role.CASE_MANAGER):
        return True
    return session.role == Role.CLINICIAN and case.clinician_id == session.user_id


def scope_case_query(query: Query, session: UserSession) -> Query:
    """Restrict a Case query to what the session may list."""
    role = session.role
    if role in ROLES_SEE_ALL_CASES:
        return query

    user_id = session.user_id
    if role == Role.WORKER:
        return query.filter(Case.worker_id == user_id)
    if role == Role.EMPLOYER:
        return query.filter(Case.employer_id == user_id)
    if role == Role.CLINICIAN:
        return query.filter(Case.clinician_id == user_id)
    if role == Role.CASE_MANAGER:
        return query.filter(Case.case_manager_id == user_id)
    if role == Role.SITE_SUPERVISOR:
        if session.employer_id is None:
            return query.filter(false())
        return query.filter(Case.employer_id == session.employer_id)
    if role == Role.TEAM_LEADER:
        team_worker_ids = select(User.id).where(User.team_leader_id == user_id)
        return query.filter(Case.worker_id.in_(team_worker_ids))
    return query.filter(false())

