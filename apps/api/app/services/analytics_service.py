"""Analytics service for the admin dashboard.

System-wide totals, month-over-month growth and role distribution.
Month boundaries follow APP_TIMEZONE.
"""
from datetime import timedelta
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db.enums import CaseStatus, Role
from app.db.models import (
    ActivityLog, Appointment, Case, Incident, Notification, RehabPlan, User,
)
from app.utils.dates import month_start, previous_month_start, utcnow


ACTIVE_USER_WINDOW_DAYS = 7
RECENT_LIMIT = 5


def _count(db: Session, model, since=None, until=None) -> int:
    query = db.query(func.count(model.id))
    if since is not None:
        query = query.filter(model.created_at >= since)
    if until is not None:
        query = query.filter(model.created_at < until)
    return query.scalar() or 0


def growth_rate(current: int, previous: int) -> float:
    """Percent change from previous to current; 100 when starting from zero."""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 1)


def _month_over_month(db: Session, model, this_month, last_month) -> dict[str, Any]:
    current = _count(db, model, since=this_month)
    previous = _count(db, model, since=last_month, until=this_month)
    return {"this_month": current, "last_month": previous, "growth": growth_rate(current, previous)}


def get_admin_analytics(db: Session) -> dict[str, Any]:
    now = utcnow()
    this_month = month_start(now)
    last_month = previous_month_start(now)

    total_users = _count(db, User)
    active_users = db.query(func.count(User.id)).filter(
        User.last_login_at >= now - timedelta(days=ACTIVE_USER_WINDOW_DAYS)
    ).scalar() or 0

    role_counts = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
    users_by_role = [
        {
            "role": role.value,
            "count": role_counts.get(role.value, 0),
            "percentage": round(role_counts.get(role.value, 0) / total_users * 100, 1) if total_users else 0.0,
        }
        for role in Role
    ]

    status_counts = dict(db.query(Case.status, func.count(Case.id)).group_by(Case.status).all())

    recent_registrations = (
        db.query(User).order_by(User.created_at.desc()).limit(RECENT_LIMIT).all()
    )
    recently_active = (
        db.query(User)
        .filter(User.last_login_at.isnot(None))
        .order_by(User.last_login_at.desc())
        .limit(RECENT_LIMIT)
        .all()
    )

    return {
        "totals": {
            "users": total_users,
            "active_users": active_users,
            "cases": _count(db, Case),
            "appointments": _count(db, Appointment),
            "activity_logs": _count(db, ActivityLog),
            "incidents": _count(db, Incident),
            "rehab_plans": _count(db, RehabPlan),
            "notifications": _count(db, Notification),
        },
        "this_month": {
            "cases": _count(db, Case, since=this_month),
            "appointments": _count(db, Appointment, since=this_month),
            "activity_logs": _count(db, ActivityLog, since=this_month),
            "incidents": _count(db, Incident, since=this_month),
        },
        "growth": {
            "users": _month_over_month(db, User, this_month, last_month),
            "cases": _month_over_month(db, Case, this_month, last_month),
            "activity_logs": _month_over_month(db, ActivityLog, this_month, last_month),
        },
        "users_by_role": users_by_role,
        "cases_by_status": {s.value: status_counts.get(s.value, 0) for s in CaseStatus},
        "recent_registrations": recent_registrations,
        "recently_active": recently_active,
    }
