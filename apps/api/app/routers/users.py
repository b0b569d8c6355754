"""Users router - account administration and role lookups."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.deps import (
    get_current_session,
    get_db,
    require_csrf_header,
    require_roles,
)
from app.db.enums import ROLES_CAN_LIST_USERS, Role
from app.schemas.auth import UserSession
from app.schemas.user import (
    ADMIN_ONLY_USER_FIELDS,
    AdminUserUpdate,
    AssignEmployerRequest,
    UserCreate,
    UserRead,
    UserUpdate,
)
from app.services import user_service
from app.utils.pagination import PaginatedResponse, PaginationParams, get_pagination, paginate_query

router = APIRouter()


def _get_user_or_404(db: Session, user_id: UUID):
    user = user_service.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _require_self_or_admin(session: UserSession, user_id: UUID) -> None:
    if session.role != Role.ADMIN and session.user_id != user_id:
        raise HTTPException(status_code=403, detail="Access denied")


@router.post(
    "",
    response_model=UserRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_user(
    data: UserCreate,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """Create an account of any role (admin only)."""
    try:
        user = user_service.create_user(db, **data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    db.refresh(user)
    return UserRead.model_validate(user)


@router.get("", response_model=PaginatedResponse[UserRead])
def list_users(
    role: Role | None = None,
    search: str | None = Query(None, max_length=100),
    is_active: bool | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(require_roles(ROLES_CAN_LIST_USERS)),
    db: Session = Depends(get_db),
):
    """
    List users with filters.

    Site supervisors only see people of their own employer.
    """
    query = user_service.list_users_query(db, role=role, search=search, is_active=is_active)
    if session.role == Role.SITE_SUPERVISOR:
        query = user_service.scope_to_employer(query, session.employer_id, session.user_id)
    items, total = paginate_query(query, pagination)
    return PaginatedResponse.create([UserRead.model_validate(u) for u in items], total, pagination)


@router.get("/clinicians/available", response_model=list[UserRead])
def available_clinicians(
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.CASE_MANAGER])),
    db: Session = Depends(get_db),
):
    return [UserRead.model_validate(u) for u in user_service.get_available_clinicians(db)]


@router.get("/role/{role}", response_model=list[UserRead])
def users_by_role(
    role: str,
    session: UserSession = Depends(require_roles([
        Role.ADMIN, Role.CASE_MANAGER, Role.SITE_SUPERVISOR, Role.TEAM_LEADER,
    ])),
    db: Session = Depends(get_db),
):
    """Active users with the given role."""
    if not Role.has_value(role):
        raise HTTPException(status_code=400, detail=f"Invalid role '{role}'")
    return [UserRead.model_validate(u) for u in user_service.get_active_users_by_role(db, Role(role))]


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Get a user (self or admin)."""
    _require_self_or_admin(session, user_id)
    return UserRead.model_validate(_get_user_or_404(db, user_id))


@router.put("/{user_id}", response_model=UserRead, dependencies=[Depends(require_csrf_header)])
def update_user(
    user_id: UUID,
    data: UserUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """
    Update a profile (self or admin).

    role, is_active and employer_id may only be changed by an admin.
    """
    _require_self_or_admin(session, user_id)
    changes = data.model_dump(mode="json", exclude_unset=True)
    if session.role != Role.ADMIN and ADMIN_ONLY_USER_FIELDS & changes.keys():
        raise HTTPException(status_code=403, detail="Only administrators can change role, status or employer")
    if "employer_id" in changes:
        changes["employer_id"] = data.employer_id

    user = _get_user_or_404(db, user_id)
    if changes.get("is_active") is False and user.id == session.user_id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    try:
        user = user_service.update_user(db, user, changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return UserRead.model_validate(user)


@router.delete("/{user_id}", response_model=UserRead, dependencies=[Depends(require_csrf_header)])
def deactivate_user(
    user_id: UUID,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """Soft-delete: deactivate and revoke sessions."""
    if user_id == session.user_id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    user = _get_user_or_404(db, user_id)
    return UserRead.model_validate(user_service.disable_user(db, user))


@router.post(
    "/{user_id}/assign-employer",
    response_model=UserRead,
    dependencies=[Depends(require_csrf_header)],
)
def assign_employer(
    user_id: UUID,
    data: AssignEmployerRequest,
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.CASE_MANAGER])),
    db: Session = Depends(get_db),
):
    user = _get_user_or_404(db, user_id)
    try:
        user = user_service.assign_employer(db, user, data.employer_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return UserRead.model_validate(user)


@router.put("/{user_id}/admin", response_model=UserRead, dependencies=[Depends(require_csrf_header)])
def admin_update_user(
    user_id: UUID,
    data: AdminUserUpdate,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """Admin override: role, activation, password reset."""
    user = _get_user_or_404(db, user_id)
    try:
        user = user_service.admin_update_user(
            db,
            user,
            actor_id=session.user_id,
            role=data.role,
            is_active=data.is_active,
            password=data.password,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return UserRead.model_validate(user)
