"""Tests for incident intake and visibility."""
import pytest

from app.db.enums import NotificationType, Role
from app.db.models import Notification


def _incident_payload(worker, **overrides) -> dict:
    payload = {
        "worker_id": str(worker.id),
        "incident_date": "2026-03-02T09:30:00Z",
        "description": "Strained back lifting a pallet",
        "incident_type": "lost_time",
        "severity": "severe",
        "location": "Loading dock 3",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_supervisor_reports_incident(client_for, make_user, db):
    employer = make_user(Role.EMPLOYER)
    supervisor = make_user(Role.SITE_SUPERVISOR, employer_id=employer.id)
    worker = make_user(Role.WORKER, employer_id=employer.id)
    case_manager = make_user(Role.CASE_MANAGER)
    make_user(Role.CASE_MANAGER, is_active=False)

    response = await client_for(supervisor).post("/api/incidents", json=_incident_payload(worker))
    assert response.status_code == 201
    data = response.json()
    assert data["incident_number"].startswith("INC-")
    assert len(data["incident_number"].split("-")[-1]) == 6
    assert data["status"] == "reported"
    assert data["employer"]["id"] == str(employer.id)
    assert data["reported_by"]["id"] == str(supervisor.id)

    notifications = db.query(Notification).filter(
        Notification.type == NotificationType.INCIDENT_REPORTED.value
    ).all()
    assert [n.recipient_id for n in notifications] == [case_manager.id]
    assert notifications[0].priority == "high"


@pytest.mark.asyncio
async def test_case_manager_reporter_is_not_notified(client_for, make_user, db):
    employer = make_user(Role.EMPLOYER)
    worker = make_user(Role.WORKER, employer_id=employer.id)
    reporter = make_user(Role.CASE_MANAGER)

    response = await client_for(reporter).post("/api/incidents", json=_incident_payload(worker))
    assert response.status_code == 201
    assert db.query(Notification).filter(Notification.recipient_id == reporter.id).count() == 0


@pytest.mark.asyncio
async def test_employer_reporter_becomes_incident_employer(client_for, make_user):
    employer = make_user(Role.EMPLOYER)
    worker = make_user(Role.WORKER)

    response = await client_for(employer).post("/api/incidents", json=_incident_payload(worker))
    assert response.status_code == 201
    assert response.json()["employer"]["id"] == str(employer.id)


@pytest.mark.asyncio
async def test_worker_cannot_report(client_for, make_user):
    worker = make_user(Role.WORKER)
    response = await client_for(worker).post("/api/incidents", json=_incident_payload(worker))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_report_for_non_worker_rejected(client_for, make_user):
    supervisor = make_user(Role.SITE_SUPERVISOR)
    clinician = make_user(Role.CLINICIAN)
    response = await client_for(supervisor).post("/api/incidents", json=_incident_payload(clinician))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_report_with_invalid_employer_rejected(client_for, make_user):
    supervisor = make_user(Role.SITE_SUPERVISOR)
    worker = make_user(Role.WORKER)
    response = await client_for(supervisor).post(
        "/api/incidents", json=_incident_payload(worker, employer_id=str(supervisor.id))
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_report_rejects_unknown_severity(client_for, make_user):
    supervisor = make_user(Role.SITE_SUPERVISOR)
    worker = make_user(Role.WORKER)
    response = await client_for(supervisor).post(
        "/api/incidents", json=_incident_payload(worker, severity="catastrophic")
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_incident_visibility_is_scoped(client_for, make_user, make_incident):
    employer = make_user(Role.EMPLOYER)
    other_employer = make_user(Role.EMPLOYER)
    supervisor = make_user(Role.SITE_SUPERVISOR, employer_id=employer.id)
    worker = make_user(Role.WORKER, employer_id=employer.id)
    other_worker = make_user(Role.WORKER, employer_id=other_employer.id)
    case_manager = make_user(Role.CASE_MANAGER)

    own = make_incident(worker, supervisor)
    foreign = make_incident(other_worker, case_manager)

    worker_list = (await client_for(worker).get("/api/incidents")).json()
    assert [i["id"] for i in worker_list["items"]] == [str(own.id)]

    employer_list = (await client_for(other_employer).get("/api/incidents")).json()
    assert [i["id"] for i in employer_list["items"]] == [str(foreign.id)]

    supervisor_client = client_for(supervisor)
    supervisor_list = (await supervisor_client.get("/api/incidents")).json()
    assert [i["id"] for i in supervisor_list["items"]] == [str(own.id)]
    assert (await supervisor_client.get(f"/api/incidents/{foreign.id}")).status_code == 403

    cm_list = (await client_for(case_manager).get("/api/incidents")).json()
    assert cm_list["total"] == 2


@pytest.mark.asyncio
async def test_incident_filters(client_for, make_user, make_incident):
    case_manager = make_user(Role.CASE_MANAGER)
    worker = make_user(Role.WORKER)
    make_incident(worker, case_manager, severity="minor", location="Cafeteria")
    make_incident(worker, case_manager, severity="severe", location="Warehouse")
    c = client_for(case_manager)

    by_severity = (await c.get("/api/incidents", params={"severity": "severe"})).json()
    assert by_severity["total"] == 1
    assert by_severity["items"][0]["location"] == "Warehouse"

    by_search = (await c.get("/api/incidents", params={"search": "cafe"})).json()
    assert by_search["total"] == 1


@pytest.mark.asyncio
async def test_update_incident_status(client_for, make_user, make_incident):
    supervisor = make_user(Role.SITE_SUPERVISOR)
    worker = make_user(Role.WORKER)
    incident = make_incident(worker, supervisor)

    response = await client_for(supervisor).put(
        f"/api/incidents/{incident.id}/status", json={"status": "investigating"}
    )
    assert response.status_code == 200
    assert response.json()["status"] == "investigating"

    denied = await client_for(worker).put(f"/api/incidents/{incident.id}/status", json={"status": "closed"})
    assert denied.status_code == 403
