"""Tests for rehabilitation plans and progress tracking."""
import pytest

from app.db.enums import ActivityLogType, CaseStatus, Role
from app.db.models import ActivityLog, Case


def _plan_payload(team, **overrides) -> dict:
    payload = {
        "case_id": str(team.case.id),
        "plan_name": "Lumbar strengthening",
        "goals": [
            {"description": "Lift 10kg without pain", "status": "completed", "progress": 100},
            {"description": "Full shift on modified duties"},
        ],
        "exercises": [
            {"name": "Bird dog", "sets": 3, "reps": 10, "status": "completed"},
            {"name": "Bridges", "sets": 3, "reps": 12},
            {"name": "Dead bug", "sets": 2, "reps": 10},
        ],
        "activities": [{"name": "Back care education", "type": "education"}],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_plan(client_for, care_team):
    async def _create(**overrides):
        response = await client_for(care_team.clinician).post("/api/rehab-plans", json=_plan_payload(care_team, **overrides))
        assert response.status_code == 201, response.text
        return response.json()
    return _create


# =============================================================================
# Creation
# =============================================================================

@pytest.mark.asyncio
async def test_create_plan_moves_case_into_rehab(client_for, care_team, db):
    response = await client_for(care_team.clinician).post("/api/rehab-plans", json=_plan_payload(care_team))
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "active"
    assert data["clinician_id"] == str(care_team.clinician.id)
    assert data["progress_tracking"] == {"pain_level": [], "functional_improvement": [], "work_readiness": []}
    assert data["modifications"] == []
    assert data["goals"][1]["status"] == "not_started"
    assert data["exercises"][0]["difficulty"] == "beginner"

    db.expire_all()
    assert db.get(Case, care_team.case.id).status == CaseStatus.IN_REHAB.value


@pytest.mark.asyncio
async def test_case_manager_creates_plan_for_case_clinician(client_for, care_team):
    response = await client_for(care_team.case_manager).post("/api/rehab-plans", json=_plan_payload(care_team))
    assert response.status_code == 201
    assert response.json()["clinician_id"] == str(care_team.clinician.id)


@pytest.mark.asyncio
async def test_only_one_open_plan_per_case(client_for, care_team, create_plan):
    await create_plan()
    response = await client_for(care_team.clinician).post("/api/rehab-plans", json=_plan_payload(care_team))
    assert response.status_code == 400
    assert response.json()["detail"] == "Case already has an active rehabilitation plan"


@pytest.mark.asyncio
async def test_case_manager_needs_case_clinician(client_for, make_user, make_case):
    employer = make_user(Role.EMPLOYER)
    worker = make_user(Role.WORKER, employer_id=employer.id)
    case_manager = make_user(Role.CASE_MANAGER)
    case = make_case(worker, employer, case_manager, status=CaseStatus.NEW)

    response = await client_for(case_manager).post(
        "/api/rehab-plans", json={"case_id": str(case.id), "plan_name": "Early mobility"}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Case has no clinician assigned"


@pytest.mark.asyncio
async def test_plan_dates_validated(client_for, care_team):
    response = await client_for(care_team.clinician).post("/api/rehab-plans", json=_plan_payload(
        care_team, start_date="2026-06-10", end_date="2026-06-01",
    ))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_worker_cannot_create_plan(client_for, care_team):
    response = await client_for(care_team.worker).post("/api/rehab-plans", json=_plan_payload(care_team))
    assert response.status_code == 403


# =============================================================================
# Updates
# =============================================================================

@pytest.mark.asyncio
async def test_status_only_update_is_status_change(client_for, care_team, create_plan):
    plan = await create_plan()
    response = await client_for(care_team.clinician).put(
        f"/api/rehab-plans/{plan['id']}",
        json={"status": "paused", "modification_reason": "Worker on leave"},
    )
    assert response.status_code == 200
    modification = response.json()["modifications"][-1]
    assert modification["type"] == "status_change"
    assert modification["reason"] == "Worker on leave"
    assert modification["modified_by"] == str(care_team.clinician.id)


@pytest.mark.asyncio
async def test_content_update_is_recorded(client_for, care_team, create_plan):
    plan = await create_plan()
    response = await client_for(care_team.case_manager).put(
        f"/api/rehab-plans/{plan['id']}",
        json={"exercises": [{"name": "Walking", "duration": 20}], "notes": "Progressing well"},
    )
    assert response.status_code == 200
    data = response.json()
    assert [e["name"] for e in data["exercises"]] == ["Walking"]
    assert data["modifications"][-1]["type"] == "update"
    assert "exercises" in data["modifications"][-1]["description"]


@pytest.mark.asyncio
async def test_reopen_blocked_while_another_plan_open(client_for, care_team, create_plan):
    c = client_for(care_team.clinician)
    first = await create_plan()
    assert (await c.put(f"/api/rehab-plans/{first['id']}", json={"status": "completed"})).status_code == 200
    await create_plan(plan_name="Phase two")

    reopen = await c.put(f"/api/rehab-plans/{first['id']}", json={"status": "active"})
    assert reopen.status_code == 400


@pytest.mark.asyncio
async def test_other_clinician_cannot_edit(client_for, care_team, create_plan, make_user):
    plan = await create_plan()
    outsider = client_for(make_user(Role.CLINICIAN))
    assert (await outsider.put(f"/api/rehab-plans/{plan['id']}", json={"notes": "x"})).status_code == 403
    assert (await outsider.get(f"/api/rehab-plans/{plan['id']}")).status_code == 403


# =============================================================================
# Progress
# =============================================================================

@pytest.mark.asyncio
async def test_worker_records_progress(client_for, care_team, create_plan, db):
    plan = await create_plan()
    c = client_for(care_team.worker)

    pain = await c.post(f"/api/rehab-plans/{plan['id']}/progress", json={"type": "pain_level", "level": 4})
    assert pain.status_code == 200
    function = await c.post(f"/api/rehab-plans/{plan['id']}/progress", json={
        "type": "functional_improvement", "improvement": 35, "area": "lifting",
    })
    assert function.status_code == 200

    tracking = function.json()["progress_tracking"]
    assert tracking["pain_level"][0]["level"] == 4
    assert tracking["functional_improvement"][0]["improvement"] == 35
    assert tracking["functional_improvement"][0]["area"] == "lifting"
    assert tracking["work_readiness"] == []

    logged = db.query(ActivityLog).filter(
        ActivityLog.rehab_plan_id.isnot(None),
        ActivityLog.activity_type == ActivityLogType.REHAB_PROGRESS.value,
    ).count()
    assert logged == 2


@pytest.mark.asyncio
async def test_progress_requires_type_value(client_for, care_team, create_plan):
    plan = await create_plan()
    response = await client_for(care_team.clinician).post(
        f"/api/rehab-plans/{plan['id']}/progress", json={"type": "work_readiness", "level": 3}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_case_manager_cannot_record_progress(client_for, care_team, create_plan):
    plan = await create_plan()
    response = await client_for(care_team.case_manager).post(
        f"/api/rehab-plans/{plan['id']}/progress", json={"type": "work_readiness", "score": 60}
    )
    assert response.status_code == 403


# =============================================================================
# Listing and stats
# =============================================================================

@pytest.mark.asyncio
async def test_list_plans_scoped(client_for, care_team, create_plan, make_user):
    await create_plan()
    assert (await client_for(care_team.worker).get("/api/rehab-plans")).json()["total"] == 1
    assert (await client_for(care_team.case_manager).get("/api/rehab-plans")).json()["total"] == 1
    assert (await client_for(make_user(Role.CLINICIAN)).get("/api/rehab-plans")).json()["total"] == 0
    assert (await client_for(care_team.employer).get("/api/rehab-plans")).json()["total"] == 0


@pytest.mark.asyncio
async def test_plan_stats(client_for, care_team, create_plan):
    await create_plan()
    response = await client_for(care_team.clinician).get("/api/rehab-plans/dashboard/stats")
    assert response.status_code == 200
    data = response.json()
    assert data["active_plans"] == 1
    assert data["completed_plans"] == 0
    assert data["total_goals"] == 2
    assert data["completed_goals"] == 1
    assert data["goal_completion_rate"] == 50.0
    assert data["total_exercises"] == 3
    assert data["completed_exercises"] == 1
    assert data["exercise_completion_rate"] == 33.3
    assert data["active_cases"] == 1
    assert data["upcoming_appointments"] == 0
