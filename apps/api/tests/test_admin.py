"""Tests for admin analytics."""
import pytest

from app.db.enums import Role
from app.services.analytics_service import growth_rate
from app.utils.dates import previous_month_start, utcnow


@pytest.mark.parametrize("current,previous,expected", [
    (0, 0, 0.0),
    (4, 0, 100.0),
    (6, 4, 50.0),
    (1, 3, -66.7),
])
def test_growth_rate(current, previous, expected):
    assert growth_rate(current, previous) == expected


@pytest.mark.asyncio
async def test_admin_analytics(client_for, care_team, make_user):
    admin = make_user(Role.ADMIN, last_login_at=utcnow())
    make_user(Role.GP_INSURER, created_at=previous_month_start())

    response = await client_for(admin).get("/api/admin/analytics")
    assert response.status_code == 200
    data = response.json()

    assert data["totals"]["users"] == 6
    assert data["totals"]["active_users"] == 1
    assert data["totals"]["cases"] == 1
    assert data["totals"]["incidents"] == 1
    assert data["this_month"]["cases"] == 1
    assert data["growth"]["users"] == {"this_month": 5, "last_month": 1, "growth": 400.0}
    assert data["cases_by_status"]["triaged"] == 1
    assert data["cases_by_status"]["closed"] == 0

    by_role = {row["role"]: row for row in data["users_by_role"]}
    assert by_role["worker"]["count"] == 1
    assert by_role["worker"]["percentage"] == 16.7
    assert by_role["team_leader"]["count"] == 0

    assert [u["id"] for u in data["recently_active"]] == [str(admin.id)]
    assert len(data["recent_registrations"]) == 5


@pytest.mark.asyncio
async def test_admin_analytics_requires_admin(client_for, care_team):
    response = await client_for(care_team.case_manager).get("/api/admin/analytics")
    assert response.status_code == 403
    assert response.json()["detail"] == "Role 'case_manager' not authorized for this action"
