"""Tests for the work readiness goal KPI endpoints."""
from datetime import timedelta

import pytest

from app.db.enums import Role
from app.db.models import WorkReadiness, WorkReadinessAssignment
from app.services.readiness_assignment_service import default_due_time
from app.utils.dates import app_today, utcnow


@pytest.fixture
def team(make_user):
    leader = make_user(Role.TEAM_LEADER, team="Alpha")
    ada = make_user(Role.WORKER, team_leader_id=leader.id, team="Alpha", first_name="Ada", last_name="Able")
    ben = make_user(Role.WORKER, team_leader_id=leader.id, team="Alpha", first_name="Ben", last_name="Baker")
    return leader, ada, ben


@pytest.fixture
def submit_streak(db):
    """Consecutive daily assessments ending `ends_days_ago` days back, one cycle."""
    def _make(worker, days: int, ends_days_ago: int = 0):
        last = app_today() - timedelta(days=ends_days_ago)
        start = last - timedelta(days=days - 1)
        for streak in range(1, days + 1):
            db.add(WorkReadiness(
                worker_id=worker.id,
                team_leader_id=worker.team_leader_id,
                team=worker.team,
                fatigue_level=2,
                pain_discomfort=False,
                pain_areas=[],
                readiness_level="fit",
                mood="good",
                cycle_start=start,
                cycle_day=streak,
                streak_days=streak,
                cycle_completed=streak >= 7,
                submitted_date=start + timedelta(days=streak - 1),
            ))
        db.commit()
    return _make


# =============================================================================
# Worker goals
# =============================================================================

@pytest.mark.asyncio
async def test_weekly_progress_without_cycle(client_for, team):
    _, ada, _ = team
    data = (await client_for(ada).get("/api/goal-kpi/worker/weekly-progress")).json()
    assert data["has_cycle"] is False
    assert data["week_label"] == "No Active Cycle"
    assert data["kpi"]["score"] == 0
    assert len(data["performance_trend"]) == 4


@pytest.mark.asyncio
async def test_weekly_progress_mid_cycle(client_for, team, submit_streak):
    _, ada, _ = team
    submit_streak(ada, days=3)

    data = (await client_for(ada).get("/api/goal-kpi/worker/weekly-progress")).json()
    assert data["has_cycle"] is True
    assert data["week_label"] == "Cycle Day 3 of 7"
    assert data["completed_days"] == 3
    assert data["completion_rate"] == 43
    assert data["kpi"]["rating"] == "Average"
    assert data["streaks"] == {"current": 3, "longest": 3}
    assert data["top_performing_days"] == 3
    assert [day["completed"] for day in data["daily_breakdown"]] == [True] * 3 + [False] * 4
    assert data["performance_trend"][-1]["submitted_days"] == 3


@pytest.mark.asyncio
async def test_worker_kpi_visibility(client_for, team, make_user):
    leader, ada, ben = team
    path = "/api/goal-kpi/worker/weekly-progress"

    assert (await client_for(ada).get(path, params={"worker_id": str(ben.id)})).status_code == 403
    assert (await client_for(leader).get(path)).status_code == 400
    assert (await client_for(leader).get(path, params={"worker_id": str(ben.id)})).status_code == 200

    outsider = make_user(Role.WORKER)
    assert (await client_for(leader).get(path, params={"worker_id": str(outsider.id)})).status_code == 404
    assert (await client_for(make_user(Role.ADMIN)).get(path, params={"worker_id": str(outsider.id)})).status_code == 200
    assert (await client_for(make_user(Role.CLINICIAN)).get(path)).status_code == 403


@pytest.mark.asyncio
async def test_worker_assignment_kpi(client_for, db, team):
    leader, ada, _ = team
    today = app_today()
    db.add_all([
        WorkReadinessAssignment(
            team_leader_id=leader.id, worker_id=ada.id, assigned_date=today,
            due_time=default_due_time(today), status="completed", completed_at=utcnow(),
        ),
        WorkReadinessAssignment(
            team_leader_id=leader.id, worker_id=ada.id, assigned_date=today,
            due_time=default_due_time(today), status="overdue",
        ),
        WorkReadinessAssignment(
            team_leader_id=leader.id, worker_id=ada.id, assigned_date=today,
            due_time=default_due_time(today), status="cancelled",
        ),
    ])
    db.commit()

    data = (await client_for(ada).get("/api/goal-kpi/worker/assignment-kpi")).json()
    assert (data["total"], data["completed"], data["on_time"], data["overdue"]) == (2, 1, 1, 1)
    assert data["period_start"] == today.replace(day=1).isoformat()
    # 35 completion + 10 on time - 5 overdue
    assert data["kpi"]["score"] == 40
    assert data["kpi"]["rating"] == "Below Average"
    assert data["kpi"]["grade"] == "F"


@pytest.mark.asyncio
async def test_submit_assessment_alias(client_for, team):
    _, ada, _ = team
    payload = {"fatigue_level": 3, "pain_discomfort": False, "readiness_level": "fit", "mood": "okay"}
    response = await client_for(ada).post("/api/goal-kpi/submit-assessment", json=payload)
    assert response.status_code == 201
    assert response.json()["cycle"]["cycle_day"] == 1

    again = await client_for(ada).post("/api/goal-kpi/submit-assessment", json=payload)
    assert again.status_code == 400


# =============================================================================
# Team leader goals
# =============================================================================

@pytest.mark.asyncio
async def test_team_weekly_kpi(client_for, team, submit_streak):
    leader, ada, ben = team
    submit_streak(ada, days=3)

    data = (await client_for(leader).get("/api/goal-kpi/team-leader/weekly-kpi")).json()
    assert data["total_members"] == 2
    assert data["members_submitted"] == 1
    assert data["team_kpi"]["rating"] == "Needs Improvement"
    assert data["readiness_breakdown"]["fit"] == 3
    assert data["average_fatigue"] == 2.0

    first, second = data["individual_kpis"]
    assert first["worker"]["id"] == str(ada.id)
    assert first["submissions_this_week"] == 3
    assert first["cycle_completion_rate"] == 43
    assert second["worker"]["id"] == str(ben.id)
    assert second["kpi"]["rating"] == "Not Started"


@pytest.mark.asyncio
async def test_team_assignment_summary(client_for, db, team):
    leader, ada, ben = team
    today = app_today()
    db.add(WorkReadinessAssignment(
        team_leader_id=leader.id, worker_id=ada.id, assigned_date=today,
        due_time=default_due_time(today), status="completed", completed_at=utcnow(),
    ))
    db.commit()

    data = (await client_for(leader).get("/api/goal-kpi/team-leader/assignment-summary")).json()
    assert data["total_members"] == 2
    assert data["team"]["total"] == 1
    assert data["members"][0]["worker"]["id"] == str(ada.id)
    assert data["members"][1]["kpi"]["rating"] == "No Assignments"


@pytest.mark.asyncio
async def test_monitoring_dashboard(client_for, team, submit_streak):
    leader, ada, ben = team
    submit_streak(ada, days=7, ends_days_ago=1)

    c = client_for(leader)
    data = (await c.get("/api/goal-kpi/team-leader/monitoring-dashboard", params={"time_range": 14})).json()
    statuses = {row["worker"]["id"]: row["status"] for row in data["current_cycles"]}
    assert statuses == {str(ada.id): "Cycle Completed", str(ben.id): "No Cycle Started"}
    assert len(data["completed_cycles"]) == 1
    assert data["team_summary"] == {
        "total_members": 2,
        "active_members": 1,
        "completed_cycles": 1,
        "average_cycles_per_member": 0.5,
        "team_average_kpi": 100.0,
    }
    assert sum(week["submissions"] for week in data["weekly_trends"]) == 7

    assert (await c.get("/api/goal-kpi/team-leader/monitoring-dashboard", params={"time_range": 0})).status_code == 422


@pytest.mark.asyncio
async def test_monthly_performance(client_for, team, submit_streak):
    leader, ada, _ = team
    submit_streak(ada, days=1)

    data = (await client_for(leader).get("/api/goal-kpi/team-leader/monthly-performance")).json()
    today = app_today()
    assert data["period_start"] == today.replace(day=1).isoformat()
    assert data["period_end"] == today.isoformat()
    assert data["days_elapsed"] == today.day
    assert data["team_summary"]["total_submissions"] == 1
    assert data["members"][0]["worker"]["id"] == str(ada.id)
    assert data["members"][0]["submission_days"] == 1
    assert any(line.startswith("Top performer") for line in data["insights"])


@pytest.mark.asyncio
async def test_monthly_performance_rejects_future_month(client_for, team):
    leader, _, _ = team
    next_year = app_today().year + 1
    response = await client_for(leader).get(
        "/api/goal-kpi/team-leader/monthly-performance", params={"year": next_year, "month": 1},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_team_goals_need_team_leader(client_for, team):
    _, ada, _ = team
    c = client_for(ada)
    for path in ("weekly-kpi", "assignment-summary", "monitoring-dashboard", "monthly-performance"):
        assert (await c.get(f"/api/goal-kpi/team-leader/{path}")).status_code == 403
