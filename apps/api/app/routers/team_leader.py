"""
Team leader router - team dashboards, membership and supervisor views.

Every route needs the team_leader role except the two supervisor views,
which need site_supervisor.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_db, require_csrf_header, require_roles
from app.core.rate_limit import TEAM_LIST_LIMIT, limiter
from app.db.enums import Role
from app.db.models import User
from app.schemas.team import (
    LoginActivityResponse,
    SupervisedTeamLeader,
    SupervisorOverview,
    TeamAnalytics,
    TeamDashboard,
    TeamListEntry,
    TeamMemberUpdate,
    TeamName,
    TeamsResponse,
    TeamWorkerCreate,
)
from app.schemas.user import UserRead, UserSummary
from app.services import team_service, user_service
from app.utils.pagination import PaginatedResponse, PaginationParams, get_pagination, paginate_query

router = APIRouter()

team_leader_only = require_roles([Role.TEAM_LEADER])
supervisor_only = require_roles([Role.SITE_SUPERVISOR])


def _get_own_member(db: Session, leader: User, member_id: UUID) -> User:
    member = user_service.get_user_by_id(db, member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Team member not found")
    if member.team_leader_id != leader.id:
        raise HTTPException(status_code=403, detail="Not a member of your team")
    return member


# =============================================================================
# Dashboard
# =============================================================================

@router.get("/dashboard", response_model=TeamDashboard, dependencies=[Depends(team_leader_only)])
def dashboard(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TeamDashboard(**team_service.get_dashboard(db, user))


@router.get(
    "/team-login-activity",
    response_model=LoginActivityResponse,
    dependencies=[Depends(team_leader_only)],
)
def team_login_activity(
    days: int = Query(7, ge=1, le=90),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return LoginActivityResponse(**team_service.get_login_activity(db, user, days=days))


@router.get("/analytics", response_model=TeamAnalytics, dependencies=[Depends(team_leader_only)])
def team_analytics(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TeamAnalytics(**team_service.get_analytics(db, user))


# =============================================================================
# Members
# =============================================================================

@router.get(
    "/team-members",
    response_model=PaginatedResponse[UserRead],
    dependencies=[Depends(team_leader_only)],
)
def list_team_members(
    search: str | None = Query(None, max_length=100),
    pagination: PaginationParams = Depends(get_pagination),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Active and inactive members, active first."""
    items, total = paginate_query(team_service.team_members_query(db, user, search=search), pagination)
    return PaginatedResponse.create([UserRead.model_validate(m) for m in items], total, pagination)


@router.post(
    "/create-user",
    response_model=UserRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header), Depends(team_leader_only)],
)
def create_team_member(
    data: TeamWorkerCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Create a worker on one of the leader's teams.

    The team falls back to the default team, then the first managed team,
    then "Default Team".
    """
    try:
        worker = team_service.create_worker(
            db,
            user,
            email=data.email,
            password=data.password,
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            team=data.team,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return UserRead.model_validate(worker)


@router.put(
    "/team-members/{member_id}",
    response_model=UserRead,
    dependencies=[Depends(require_csrf_header), Depends(team_leader_only)],
)
def update_team_member(
    member_id: UUID,
    data: TeamMemberUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    member = _get_own_member(db, user, member_id)
    try:
        member = team_service.update_member(db, member, data.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return UserRead.model_validate(member)


@router.delete(
    "/team-members/{member_id}",
    response_model=UserRead,
    dependencies=[Depends(require_csrf_header), Depends(team_leader_only)],
)
def deactivate_team_member(
    member_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    member = _get_own_member(db, user, member_id)
    return UserRead.model_validate(team_service.set_member_active(db, member, False))


@router.post(
    "/send-invite/{member_id}",
    response_model=UserRead,
    dependencies=[Depends(require_csrf_header), Depends(team_leader_only)],
)
def reactivate_team_member(
    member_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Reactivate a member so they can sign in again."""
    member = _get_own_member(db, user, member_id)
    return UserRead.model_validate(team_service.set_member_active(db, member, True))


# =============================================================================
# Teams
# =============================================================================

@router.get("/teams", response_model=TeamsResponse, dependencies=[Depends(team_leader_only)])
def get_teams(user: User = Depends(get_current_user)):
    return TeamsResponse(**team_service.get_teams(user))


@router.post(
    "/teams",
    response_model=TeamsResponse,
    status_code=201,
    dependencies=[Depends(require_csrf_header), Depends(team_leader_only)],
)
def add_team(
    data: TeamName,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return TeamsResponse(**team_service.add_team(db, user, data.name))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put(
    "/teams/default",
    response_model=TeamsResponse,
    dependencies=[Depends(require_csrf_header), Depends(team_leader_only)],
)
def set_default_team(
    data: TeamName,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return TeamsResponse(**team_service.set_default_team(db, user, data.name))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# =============================================================================
# Site supervisor
# =============================================================================

@router.get("/supervisor-overview", response_model=SupervisorOverview, dependencies=[Depends(supervisor_only)])
def supervisor_overview(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Team leaders of the supervisor's employer with their members."""
    overview = team_service.get_supervisor_overview(db, user)
    return SupervisorOverview(
        team_leaders=[
            SupervisedTeamLeader(
                team_leader=UserSummary.model_validate(row["team_leader"]),
                teams=row["teams"],
                default_team=row["default_team"],
                members=[UserRead.model_validate(m) for m in row["members"]],
                total_members=row["total_members"],
                active_members=row["active_members"],
            )
            for row in overview["team_leaders"]
        ],
        total_team_leaders=overview["total_team_leaders"],
        total_members=overview["total_members"],
    )


@router.get("/teams-list", response_model=list[TeamListEntry], dependencies=[Depends(supervisor_only)])
@limiter.limit(TEAM_LIST_LIMIT)
def teams_list(
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [TeamListEntry(**entry) for entry in team_service.get_teams_list(db, user)]
