"""Admin router - system analytics."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_roles
from app.core.rate_limit import ADMIN_LIMIT, limiter
from app.db.enums import Role
from app.schemas.analytics import AdminAnalytics
from app.schemas.auth import UserSession
from app.schemas.user import UserRead
from app.services import analytics_service

router = APIRouter()


@router.get("/analytics", response_model=AdminAnalytics)
@limiter.limit(ADMIN_LIMIT)
def admin_analytics(
    request: Request,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """System totals, this month's activity and month-over-month growth."""
    data = analytics_service.get_admin_analytics(db)
    data["recent_registrations"] = [UserRead.model_validate(u) for u in data["recent_registrations"]]
    data["recently_active"] = [UserRead.model_validate(u) for u in data["recently_active"]]
    return AdminAnalytics(**data)
