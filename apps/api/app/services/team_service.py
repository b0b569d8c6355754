"""
Team service - team leader dashboards, team membership and supervisor views.

A worker belongs to a team leader through users.team_leader_id; the team
name is a free-text label on the worker. Team leaders keep the list of
team names they manage in managed_teams.
"""

import logging
from collections import defaultdict
from datetime import timedelta
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from app.db.enums import AuthAction, CaseStatus, Role
from app.db.models import AuthLog, Case, CheckIn, Incident, User
from app.services import notification_service, user_service
from app.utils.dates import app_today, as_utc, day_bounds, month_start, previous_month_start
from app.utils.normalization import like_pattern, normalize_team_name

logger = logging.getLogger(__name__)

FALLBACK_TEAM = "Default Team"


def _pct(part: int, whole: int) -> float:
    """Percentage rounded to one decimal, capped at 100."""
    if whole <= 0:
        return 0.0
    return min(100.0, round(part / whole * 100, 1))


# =============================================================================
# Members
# =============================================================================


def team_members_query(db: Session, leader: User, search: str | None = None) -> Query:
    query = db.query(User).filter(User.team_leader_id == leader.id)
    if search and search.strip():
        pattern = like_pattern(search)
        query = query.filter(or_(
            User.first_name.ilike(pattern, escape="\\"),
            User.last_name.ilike(pattern, escape="\\"),
            User.email.ilike(pattern, escape="\\"),
            User.team.ilike(pattern, escape="\\"),
        ))
    return query.order_by(User.is_active.desc(), User.created_at.desc())


def active_member_ids(db: Session, leader_id: UUID) -> list[UUID]:
    return [
        row.id for row in db.query(User.id).filter(
            User.team_leader_id == leader_id,
            User.is_active.is_(True),
        ).all()
    ]


def resolve_team(leader: User, requested: str | None) -> str:
    """Requested team, else the leader's default, else the first managed team, else the fallback."""
    team = normalize_team_name(requested)
    if team:
        return team
    if leader.default_team:
        return leader.default_team
    if leader.managed_teams:
        return leader.managed_teams[0]
    return FALLBACK_TEAM


def create_worker(
    db: Session,
    leader: User,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    phone: str | None = None,
    team: str | None = None,
) -> User:
    """
    Create a worker on the leader's team.

    Raises:
        ValueError: duplicate email
    """
    team_name = resolve_team(leader, team)
    if team_name not in (leader.managed_teams or []):
        leader.managed_teams = [*(leader.managed_teams or []), team_name]
        if not leader.default_team:
            leader.default_team = team_name

    worker = user_service.create_user(
        db,
        email=email,
        password=password,
        first_name=first_name,
        last_name=last_name,
        role=Role.WORKER,
        phone=phone,
        employer_id=leader.employer_id,
        team=team_name,
        team_leader_id=leader.id,
    )
    db.commit()
    db.refresh(worker)
    logger.info("Team member created", extra={"user_id": str(leader.id)})

    with notification_service.best_effort(db, "Account notification failed", user_id=str(leader.id)):
        notification_service.notify_account_created(db, worker, leader)
        notification_service.commit_and_push(db)

    return worker


def update_member(db: Session, member: User, data: dict) -> User:
    """
    Raises:
        ValueError: duplicate email
    """
    if "team" in data:
        data["team"] = normalize_team_name(data["team"])
    return user_service.update_user(db, member, data)


def set_member_active(db: Session, member: User, active: bool) -> User:
    if active:
        return user_service.enable_user(db, member)
    return user_service.disable_user(db, member)


# =============================================================================
# Teams
# =============================================================================


def get_teams(leader: User) -> dict:
    return {
        "current_team": leader.team,
        "default_team": leader.default_team,
        "managed_teams": list(leader.managed_teams or []),
    }


def add_team(db: Session, leader: User, name: str) -> dict:
    """
    Raises:
        ValueError: empty or duplicate team name
    """
    team = normalize_team_name(name)
    if not team:
        raise ValueError("Team name is required")
    managed = list(leader.managed_teams or [])
    if team in managed:
        raise ValueError("Team already exists")
    leader.managed_teams = [*managed, team]
    if not leader.default_team:
        leader.default_team = team
    db.commit()
    db.refresh(leader)
    return get_teams(leader)


def set_default_team(db: Session, leader: User, name: str) -> dict:
    """
    Raises:
        ValueError: team is not one the leader manages
    """
    team = normalize_team_name(name)
    if not team or team not in (leader.managed_teams or []):
        raise ValueError("Team not found in managed teams")
    leader.default_team = team
    db.commit()
    db.refresh(leader)
    return get_teams(leader)


# =============================================================================
# Dashboard & analytics
# =============================================================================


def _logged_in_since(db: Session, user_ids: list[UUID], since) -> set[UUID]:
    if not user_ids:
        return set()
    rows = db.query(AuthLog.user_id).filter(
        AuthLog.user_id.in_(user_ids),
        AuthLog.action == AuthAction.LOGIN.value,
        AuthLog.success.is_(True),
        AuthLog.created_at >= since,
    ).distinct().all()
    return {row.user_id for row in rows}


def _open_cases_count(db: Session, worker_ids: list[UUID]) -> int:
    if not worker_ids:
        return 0
    return db.query(Case).filter(
        Case.worker_id.in_(worker_ids),
        Case.status != CaseStatus.CLOSED.value,
    ).count()


def _check_in_workers(db: Session, worker_ids: list[UUID], start_day, end_day) -> list[tuple[UUID, object]]:
    if not worker_ids:
        return []
    return db.query(CheckIn.worker_id, CheckIn.check_in_date).filter(
        CheckIn.worker_id.in_(worker_ids),
        CheckIn.check_in_date >= start_day,
        CheckIn.check_in_date <= end_day,
    ).all()


def get_dashboard(db: Session, leader: User) -> dict:
    """Team overview, safety and check-in compliance for the leader's active members."""
    member_ids = active_member_ids(db, leader.id)
    total = len(member_ids)
    today = app_today()
    today_start, _ = day_bounds(today)

    this_month = month_start()
    last_month = previous_month_start()
    incidents_this_month = incidents_last_month = 0
    if member_ids:
        incidents = db.query(Incident.created_at).filter(
            Incident.worker_id.in_(member_ids),
            Incident.created_at >= last_month,
        ).all()
        for (created_at,) in incidents:
            if as_utc(created_at) >= this_month:
                incidents_this_month += 1
            else:
                incidents_last_month += 1

    if incidents_this_month > incidents_last_month:
        trend = "up"
    elif incidents_this_month < incidents_last_month:
        trend = "down"
    else:
        trend = "stable"

    week_start = today - timedelta(days=6)
    check_ins = _check_in_workers(db, member_ids, week_start, today)
    today_workers = {worker_id for worker_id, day in check_ins if day == today}
    weekly_pairs = {(worker_id, day) for worker_id, day in check_ins}

    return {
        "team_overview": {
            "team_name": leader.default_team or leader.team,
            "total_members": total,
            "active_today": len(_logged_in_since(db, member_ids, today_start)),
        },
        "safety_metrics": {
            "active_cases": _open_cases_count(db, member_ids),
            "incidents_this_month": incidents_this_month,
            "incidents_last_month": incidents_last_month,
            "trend": trend,
        },
        "compliance_metrics": {
            "today_check_ins": len(today_workers),
            "today_completion_rate": _pct(len(today_workers), total),
            "weekly_check_ins": len(weekly_pairs),
            "weekly_completion_rate": _pct(len(weekly_pairs), total * 7),
        },
    }


def get_login_activity(db: Session, leader: User, days: int = 7) -> dict:
    """Per-member login counts over the window, newest logins first."""
    members = db.query(User).filter(User.team_leader_id == leader.id).all()
    since = day_bounds(app_today() - timedelta(days=days - 1))[0]
    logs = []
    if members:
        logs = db.query(AuthLog).filter(
            AuthLog.user_id.in_([m.id for m in members]),
            AuthLog.action == AuthAction.LOGIN.value,
            AuthLog.success.is_(True),
            AuthLog.created_at >= since,
        ).order_by(AuthLog.created_at.desc()).all()

    by_member: dict[UUID, list[AuthLog]] = defaultdict(list)
    for log in logs:
        by_member[log.user_id].append(log)

    member_rows = []
    for member in members:
        member_logs = by_member.get(member.id, [])
        member_rows.append({
            "user_id": member.id,
            "name": member.display_name,
            "email": member.email,
            "team": member.team,
            "is_active": member.is_active,
            "login_count": len(member_logs),
            "last_login_at": as_utc(member.last_login_at),
            "recent_logins": [as_utc(log.created_at) for log in member_logs[:5]],
        })
    member_rows.sort(key=lambda row: row["login_count"], reverse=True)

    return {
        "days": days,
        "members": member_rows,
        "summary": {
            "total_members": len(members),
            "members_logged_in": sum(1 for row in member_rows if row["login_count"]),
            "total_logins": len(logs),
        },
    }


def get_analytics(db: Session, leader: User) -> dict:
    members = db.query(User).filter(User.team_leader_id == leader.id).all()
    active = [m for m in members if m.is_active]
    active_ids = [m.id for m in active]
    today = app_today()

    month_check_ins = []
    if active_ids:
        month_check_ins = db.query(CheckIn).filter(
            CheckIn.worker_id.in_(active_ids),
            CheckIn.check_in_date >= today - timedelta(days=29),
            CheckIn.check_in_date <= today,
        ).all()
    week_start = today - timedelta(days=6)
    week_check_ins = [c for c in month_check_ins if c.check_in_date >= week_start]

    per_member = []
    for member in active:
        own = [c for c in month_check_ins if c.worker_id == member.id]
        per_member.append({
            "user_id": member.id,
            "name": member.display_name,
            "team": member.team,
            "check_ins_7d": sum(1 for c in own if c.check_in_date >= week_start),
            "check_ins_30d": len(own),
            "avg_pain_level": round(sum(c.pain_current for c in own) / len(own), 1) if own else None,
            "last_check_in": max((c.check_in_date for c in own), default=None),
        })

    return {
        "total_members": len(members),
        "active_members": len(active),
        "check_in_completion_7d": _pct(len({(c.worker_id, c.check_in_date) for c in week_check_ins}), len(active) * 7),
        "check_in_completion_30d": _pct(len({(c.worker_id, c.check_in_date) for c in month_check_ins}), len(active) * 30),
        "avg_pain_level": (
            round(sum(c.pain_current for c in month_check_ins) / len(month_check_ins), 1)
            if month_check_ins else None
        ),
        "active_cases": _open_cases_count(db, active_ids),
        "members": per_member,
    }


# =============================================================================
# Site supervisor views
# =============================================================================


def _supervised_leaders(db: Session, supervisor: User) -> list[User]:
    query = db.query(User).filter(User.role == Role.TEAM_LEADER.value)
    if supervisor.employer_id:
        query = query.filter(User.employer_id == supervisor.employer_id)
    return query.order_by(User.first_name, User.last_name).all()


def get_supervisor_overview(db: Session, supervisor: User) -> dict:
    """Every team leader under the supervisor's employer, with their members."""
    leaders = _supervised_leaders(db, supervisor)
    members_by_leader: dict[UUID, list[User]] = defaultdict(list)
    if leaders:
        for member in db.query(User).filter(
            User.team_leader_id.in_([leader.id for leader in leaders])
        ).order_by(User.first_name).all():
            members_by_leader[member.team_leader_id].append(member)

    rows = []
    for leader in leaders:
        members = members_by_leader.get(leader.id, [])
        rows.append({
            "team_leader": leader,
            "teams": list(leader.managed_teams or []),
            "default_team": leader.default_team,
            "members": members,
            "total_members": len(members),
            "active_members": sum(1 for m in members if m.is_active),
        })

    return {
        "team_leaders": rows,
        "total_team_leaders": len(rows),
        "total_members": sum(row["total_members"] for row in rows),
    }


def get_teams_list(db: Session, supervisor: User) -> list[dict]:
    """Distinct team names with active member counts and leader names."""
    query = (
        db.query(User.team, User.team_leader_id, func.count(User.id))
        .filter(
            User.role == Role.WORKER.value,
            User.is_active.is_(True),
            User.team.isnot(None),
        )
    )
    if supervisor.employer_id:
        query = query.filter(User.employer_id == supervisor.employer_id)
    rows = query.group_by(User.team, User.team_leader_id).all()

    leader_ids = {leader_id for _, leader_id, _ in rows if leader_id}
    leader_names = {}
    if leader_ids:
        leader_names = {
            u.id: u.display_name
            for u in db.query(User).filter(User.id.in_(leader_ids)).all()
        }

    teams: dict[str, dict] = {}
    for team, leader_id, count in rows:
        entry = teams.setdefault(team, {"team": team, "member_count": 0, "team_leaders": []})
        entry["member_count"] += count
        name = leader_names.get(leader_id)
        if name and name not in entry["team_leaders"]:
            entry["team_leaders"].append(name)

    return sorted(teams.values(), key=lambda entry: entry["team"])
