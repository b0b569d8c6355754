"""Tests for case creation, auto-assignment and the case pipeline."""
import uuid

import pytest

from app.db.enums import CasePriority, CaseStatus, IncidentStatus, NotificationType, Role
from app.db.models import Incident, Notification
from app.services.assignment_service import derive_priority, specialty_for_body_part
from app.utils.dates import app_today


def _case_payload(worker, employer, incident, **overrides) -> dict:
    payload = {
        "worker_id": str(worker.id),
        "employer_id": str(employer.id),
        "incident_id": str(incident.id),
        "injury_details": {"body_part": "Lower back", "severity": "severe", "injury_type": "strain"},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def intake(make_user, make_incident):
    """An employer, a worker and an open incident waiting for a case."""
    employer = make_user(Role.EMPLOYER)
    worker = make_user(Role.WORKER, employer_id=employer.id)
    reporter = make_user(Role.SITE_SUPERVISOR, employer_id=employer.id)
    incident = make_incident(worker, reporter)
    return employer, worker, incident


# =============================================================================
# Creation and auto-assignment
# =============================================================================

@pytest.mark.asyncio
async def test_create_case_auto_assigns_specialist(client_for, make_user, intake, db):
    employer, worker, incident = intake
    case_manager = make_user(Role.CASE_MANAGER)
    make_user(Role.CLINICIAN, specialty="Hand therapy")
    ortho = make_user(Role.CLINICIAN, specialty="Orthopedic surgery")

    response = await client_for(case_manager).post(
        "/api/cases", json=_case_payload(worker, employer, incident, notes="Referred by site first aider")
    )
    assert response.status_code == 201
    data = response.json()
    assert data["case_number"].startswith("CASE-")
    assert data["status"] == "triaged"
    assert data["priority"] == "urgent"
    assert data["clinician"]["id"] == str(ortho.id)
    assert data["case_manager"]["id"] == str(case_manager.id)
    assert data["auto_assignments"] == {"priority": "urgent", "clinician_assigned": True}
    assert {n["note_type"] for n in data["notes"]} == {"assignment", "general"}

    db.expire_all()
    assert db.get(Incident, incident.id).status == IncidentStatus.CLOSED.value

    assigned = db.query(Notification).filter(
        Notification.recipient_id == ortho.id,
        Notification.type == NotificationType.CASE_ASSIGNED.value,
    ).count()
    assert assigned == 1
    created_for = {
        n.recipient_id for n in db.query(Notification).filter(
            Notification.type == NotificationType.CASE_CREATED.value
        )
    }
    assert created_for == {worker.id, employer.id}


@pytest.mark.asyncio
async def test_create_case_prefers_least_loaded_clinician(client_for, make_user, make_case, intake):
    employer, worker, incident = intake
    case_manager = make_user(Role.CASE_MANAGER)
    busy = make_user(Role.CLINICIAN, specialty="Orthopedics")
    free = make_user(Role.CLINICIAN, specialty="Orthopedics")
    other_worker = make_user(Role.WORKER, employer_id=employer.id)
    make_case(other_worker, employer, case_manager, busy, status=CaseStatus.IN_REHAB)

    response = await client_for(case_manager).post("/api/cases", json=_case_payload(worker, employer, incident))
    assert response.status_code == 201
    assert response.json()["clinician"]["id"] == str(free.id)


@pytest.mark.asyncio
async def test_create_case_without_clinicians_stays_new(client_for, make_user, intake):
    employer, worker, incident = intake
    case_manager = make_user(Role.CASE_MANAGER)

    response = await client_for(case_manager).post(
        "/api/cases", json=_case_payload(worker, employer, incident, injury_details={"body_part": "knee"})
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "new"
    assert data["clinician"] is None
    # incident is medical_treatment
    assert data["auto_assignments"] == {"priority": "high", "clinician_assigned": False}


@pytest.mark.asyncio
async def test_create_case_explicit_priority_and_clinician(client_for, make_user, intake):
    employer, worker, incident = intake
    case_manager = make_user(Role.CASE_MANAGER)
    make_user(Role.CLINICIAN, specialty="Orthopedics")
    chosen = make_user(Role.CLINICIAN, specialty="General practice")

    response = await client_for(case_manager).post("/api/cases", json=_case_payload(
        worker, employer, incident, clinician_id=str(chosen.id), priority="low",
    ))
    assert response.status_code == 201
    assert response.json()["clinician"]["id"] == str(chosen.id)
    assert response.json()["priority"] == "low"


@pytest.mark.asyncio
async def test_admin_created_case_goes_to_least_loaded_manager(client_for, make_user, make_case, intake):
    employer, worker, incident = intake
    admin = make_user(Role.ADMIN)
    busy_manager = make_user(Role.CASE_MANAGER)
    free_manager = make_user(Role.CASE_MANAGER)
    other_worker = make_user(Role.WORKER, employer_id=employer.id)
    make_case(other_worker, employer, busy_manager)

    response = await client_for(admin).post("/api/cases", json=_case_payload(worker, employer, incident))
    assert response.status_code == 201
    assert response.json()["case_manager"]["id"] == str(free_manager.id)


@pytest.mark.asyncio
async def test_admin_create_without_case_managers(client_for, make_user, intake):
    employer, worker, incident = intake
    admin = make_user(Role.ADMIN)
    response = await client_for(admin).post("/api/cases", json=_case_payload(worker, employer, incident))
    assert response.status_code == 400
    assert response.json()["detail"] == "No active case manager available"


@pytest.mark.asyncio
async def test_second_case_for_incident_rejected(client_for, make_user, intake):
    employer, worker, incident = intake
    c = client_for(make_user(Role.CASE_MANAGER))

    assert (await c.post("/api/cases", json=_case_payload(worker, employer, incident))).status_code == 201
    duplicate = await c.post("/api/cases", json=_case_payload(worker, employer, incident))
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "A case already exists for this incident"


@pytest.mark.asyncio
async def test_create_case_validates_people(client_for, make_user, intake):
    employer, worker, incident = intake
    c = client_for(make_user(Role.CASE_MANAGER))

    bad_worker = await c.post("/api/cases", json=_case_payload(employer, employer, incident))
    assert bad_worker.status_code == 400
    bad_incident = await c.post("/api/cases", json=_case_payload(
        worker, employer, incident, incident_id=str(uuid.uuid4())
    ))
    assert bad_incident.status_code == 400


@pytest.mark.asyncio
async def test_clinician_cannot_create_case(client_for, make_user, intake):
    employer, worker, incident = intake
    response = await client_for(make_user(Role.CLINICIAN)).post(
        "/api/cases", json=_case_payload(worker, employer, incident)
    )
    assert response.status_code == 403


# =============================================================================
# Reading
# =============================================================================

@pytest.mark.asyncio
async def test_worker_lists_own_cases_with_latest_check_in(
    client_for, care_team, make_user, make_case, make_check_in
):
    make_check_in(care_team.case, days_ago=1, pain=6)
    make_check_in(care_team.case, days_ago=0, pain=4)
    stranger = make_user(Role.WORKER, employer_id=care_team.employer.id)
    make_case(stranger, care_team.employer, care_team.case_manager)

    response = await client_for(care_team.worker).get("/api/cases")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["per_page"] == 10
    item = data["items"][0]
    assert item["id"] == str(care_team.case.id)
    assert item["latest_check_in"] == {"check_in_date": app_today().isoformat(), "pain_level": 4}


@pytest.mark.asyncio
async def test_list_scoping_by_role(client_for, care_team, make_user, make_case):
    other_employer = make_user(Role.EMPLOYER)
    other_worker = make_user(Role.WORKER, employer_id=other_employer.id)
    other_manager = make_user(Role.CASE_MANAGER)
    make_case(other_worker, other_employer, other_manager)

    assert (await client_for(care_team.employer).get("/api/cases")).json()["total"] == 1
    assert (await client_for(care_team.clinician).get("/api/cases")).json()["total"] == 1
    assert (await client_for(other_manager).get("/api/cases")).json()["total"] == 1
    assert (await client_for(make_user(Role.GP_INSURER)).get("/api/cases")).json()["total"] == 2

    supervisor = make_user(Role.SITE_SUPERVISOR, employer_id=other_employer.id)
    assert (await client_for(supervisor).get("/api/cases")).json()["total"] == 1


@pytest.mark.asyncio
async def test_team_leader_sees_team_cases(client_for, care_team, db, make_user):
    leader = make_user(Role.TEAM_LEADER)
    care_team.worker.team_leader_id = leader.id
    db.commit()

    c = client_for(leader)
    assert (await c.get("/api/cases")).json()["total"] == 1
    assert (await c.get(f"/api/cases/{care_team.case.id}")).status_code == 200


@pytest.mark.asyncio
async def test_get_case_detail_and_access(client_for, care_team, make_user):
    response = await client_for(care_team.worker).get(f"/api/cases/{care_team.case.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["worker"]["id"] == str(care_team.worker.id)
    assert data["incident_number"].startswith("INC-")

    outsider = make_user(Role.WORKER)
    denied = await client_for(outsider).get(f"/api/cases/{care_team.case.id}")
    assert denied.status_code == 403

    missing = await client_for(care_team.worker).get(f"/api/cases/{uuid.uuid4()}")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_case_stats(client_for, care_team, make_user, make_case):
    other_worker = make_user(Role.WORKER, employer_id=care_team.employer.id)
    make_case(other_worker, care_team.employer, care_team.case_manager, status=CaseStatus.CLOSED)

    response = await client_for(care_team.case_manager).get("/api/cases/dashboard/stats")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["active"] == 1
    assert data["by_status"]["closed"] == 1
    assert data["by_status"]["triaged"] == 1
    assert data["by_priority"]["medium"] == 2


# =============================================================================
# Updates
# =============================================================================

@pytest.mark.asyncio
async def test_return_to_work_sets_date_and_notifies(client_for, care_team, db):
    response = await client_for(care_team.case_manager).put(
        f"/api/cases/{care_team.case.id}/status",
        json={"status": "return_to_work", "reason": "Cleared for modified duties"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "return_to_work"
    assert data["actual_return_date"] == app_today().isoformat()
    assert any(
        n["note_type"] == "status_change" and "Cleared for modified duties" in n["content"]
        for n in data["notes"]
    )

    recipients = {
        n.recipient_id for n in db.query(Notification).filter(
            Notification.type == NotificationType.CASE_STATUS_CHANGE.value
        )
    }
    assert recipients == {care_team.worker.id, care_team.employer.id, care_team.clinician.id}


@pytest.mark.asyncio
async def test_intermediate_status_change_is_not_announced(client_for, care_team, db):
    response = await client_for(care_team.clinician).put(
        f"/api/cases/{care_team.case.id}/status", json={"status": "assessed"}
    )
    assert response.status_code == 200
    assert response.json()["actual_return_date"] is None
    assert db.query(Notification).filter(
        Notification.type == NotificationType.CASE_STATUS_CHANGE.value
    ).count() == 0


@pytest.mark.asyncio
async def test_unassigned_clinician_cannot_change_status(client_for, care_team, make_user):
    other_clinician = make_user(Role.CLINICIAN)
    response = await client_for(other_clinician).put(
        f"/api/cases/{care_team.case.id}/status", json={"status": "closed"}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_case_fields(client_for, care_team):
    response = await client_for(care_team.clinician).put(f"/api/cases/{care_team.case.id}", json={
        "priority": "high",
        "work_restrictions": {"lifting": {"max_weight": 5, "frequency": "occasional"}, "other": ["No ladders"]},
        "expected_return_date": "2026-12-01",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["priority"] == "high"
    assert data["work_restrictions"]["lifting"]["max_weight"] == 5
    assert data["expected_return_date"] == "2026-12-01"


@pytest.mark.asyncio
async def test_null_injury_details_keeps_existing(client_for, care_team):
    response = await client_for(care_team.clinician).put(f"/api/cases/{care_team.case.id}", json={
        "injury_details": None,
        "work_restrictions": None,
        "status": None,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["injury_details"]["body_part"] == "lower back"
    assert data["work_restrictions"] is None
    assert data["status"] == "triaged"


@pytest.mark.asyncio
async def test_clinician_cannot_reassign_clinician(client_for, care_team, make_user):
    other_clinician = make_user(Role.CLINICIAN)
    response = await client_for(care_team.clinician).put(
        f"/api/cases/{care_team.case.id}", json={"clinician_id": str(other_clinician.id)}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_worker_cannot_update_case(client_for, care_team):
    response = await client_for(care_team.worker).put(f"/api/cases/{care_team.case.id}", json={"priority": "low"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_assign_clinician(client_for, make_user, make_case, db):
    employer = make_user(Role.EMPLOYER)
    worker = make_user(Role.WORKER, employer_id=employer.id)
    case_manager = make_user(Role.CASE_MANAGER)
    clinician = make_user(Role.CLINICIAN)
    case = make_case(worker, employer, case_manager, status=CaseStatus.NEW)
    c = client_for(case_manager)

    response = await c.put(f"/api/cases/{case.id}/assign-clinician", json={"clinician_id": str(clinician.id)})
    assert response.status_code == 200
    assert response.json()["status"] == "triaged"
    assert response.json()["clinician"]["id"] == str(clinician.id)
    assert db.query(Notification).filter(Notification.recipient_id == clinician.id).count() == 1

    not_clinician = await c.put(f"/api/cases/{case.id}/assign-clinician", json={"clinician_id": str(worker.id)})
    assert not_clinician.status_code == 400


@pytest.mark.asyncio
async def test_case_notes(client_for, care_team, make_user):
    response = await client_for(care_team.worker).post(
        f"/api/cases/{care_team.case.id}/notes",
        json={"content": "Pain is worse after night shifts"},
    )
    assert response.status_code == 201
    assert response.json()["note_type"] == "general"
    assert response.json()["author"]["id"] == str(care_team.worker.id)

    outsider = make_user(Role.GP_INSURER)
    denied = await client_for(outsider).post(
        f"/api/cases/{care_team.case.id}/notes", json={"content": "Hello"}
    )
    assert denied.status_code == 403


# =============================================================================
# Assignment rules
# =============================================================================

@pytest.mark.parametrize("severity, incident_type, expected", [
    ("severe", "near_miss", CasePriority.URGENT),
    (None, "fatality", CasePriority.URGENT),
    (None, "lost_time", CasePriority.URGENT),
    ("moderate", "first_aid", CasePriority.HIGH),
    (None, "medical_treatment", CasePriority.HIGH),
    ("minor", None, CasePriority.LOW),
    (None, "near_miss", CasePriority.LOW),
    (None, None, CasePriority.MEDIUM),
])
def test_derive_priority(severity, incident_type, expected):
    assert derive_priority(severity, incident_type) == expected


@pytest.mark.parametrize("body_part, expected", [
    ("Lower back", "orthopedic"),
    ("cervical spine", "orthopedic"),
    ("Right wrist", "hand"),
    ("left knee", "sports"),
    ("shoulder", None),
    (None, None),
])
def test_specialty_for_body_part(body_part, expected):
    assert specialty_for_body_part(body_part) == expected
