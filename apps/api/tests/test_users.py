"""Tests for account administration and user lookups."""
import uuid

import pytest

from app.db.enums import Role

@pytest.mark.asyncio
async def test_admin_creates_clinician(client_for, make_user, password):
    admin = make_user(Role.ADMIN)
    response = await client_for(admin).post("/api/users", json={
        "first_name": "nina",
        "last_name": "physio",
        "email": "Nina.Physio@RehabTest.com",
        "password": password,
        "role": "clinician",
        "specialty": "Sports medicine",
    })
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "nina.physio@rehabtest.com"
    assert data["role"] == "clinician"
    assert data["specialty"] == "Sports medicine"
    assert data["is_active"] is True

@pytest.mark.asyncio
async def test_create_user_duplicate_email(client_for, make_user, password):
    admin = make_user(Role.ADMIN)
    existing = make_user(Role.WORKER)
    response = await client_for(admin).post("/api/users", json={
        "first_name": "Dup",
        "last_name": "Licate",
        "email": existing.email,
        "password": password,
        "role": "worker",
    })
    assert response.status_code == 400

@pytest.mark.asyncio
async def test_non_admin_cannot_create_user(client_for, make_user, password):
    case_manager = make_user(Role.CASE_MANAGER)
    response = await client_for(case_manager).post("/api/users", json={
        "first_name": "Sneaky",
        "last_name": "Account",
        "email": "sneaky@rehabtest.com",
        "password": password,
        "role": "worker",
    })
    assert response.status_code == 403
    assert "not authorized" in response.json()["detail"]

@pytest.mark.asyncio
async def test_list_users_filters_by_role(client_for, make_user):
    admin = make_user(Role.ADMIN)
    make_user(Role.CLINICIAN)
    make_user(Role.CLINICIAN)
    make_user(Role.WORKER)

    response = await client_for(admin).get("/api/users", params={"role": "clinician"})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert {u["role"] for u in data["items"]} == {"clinician"}

@pytest.mark.asyncio
async def test_list_users_search(client_for, make_user):
    admin = make_user(Role.ADMIN)
    make_user(Role.WORKER, first_name="Zanzibar")
    make_user(Role.WORKER, first_name="Other")

    response = await client_for(admin).get("/api/users", params={"search": "zanz"})
    assert response.json()["total"] == 1
    assert response.json()["items"][0]["first_name"] == "Zanzibar"

@pytest.mark.asyncio
async def test_site_supervisor_sees_only_own_employer(client_for, make_user):
    employer = make_user(Role.EMPLOYER)
    other_employer = make_user(Role.EMPLOYER)
    supervisor = make_user(Role.SITE_SUPERVISOR, employer_id=employer.id)
    own_worker = make_user(Role.WORKER, employer_id=employer.id)
    make_user(Role.WORKER, employer_id=other_employer.id)

    response = await client_for(supervisor).get("/api/users")
    assert response.status_code == 200
    ids = {u["id"] for u in response.json()["items"]}
    assert ids == {str(own_worker.id), str(supervisor.id)}

@pytest.mark.asyncio
async def test_worker_cannot_list_users(client_for, make_user):
    worker = make_user(Role.WORKER)
    response = await client_for(worker).get("/api/users")
    assert response.status_code == 403

@pytest.mark.asyncio
async def test_get_other_user_forbidden(client_for, make_user):
    worker = make_user(Role.WORKER)
    other = make_user(Role.WORKER)
    c = client_for(worker)

    assert (await c.get(f"/api/users/{worker.id}")).status_code == 200
    assert (await c.get(f"/api/users/{other.id}")).status_code == 403

@pytest.mark.asyncio
async def test_admin_get_missing_user(client_for, make_user):
    admin = make_user(Role.ADMIN)
    response = await client_for(admin).get(f"/api/users/{uuid.uuid4()}")
    assert response.status_code == 404

@pytest.mark.asyncio
async def test_self_update_profile(client_for, make_user):
    worker = make_user(Role.WORKER)
    response = await client_for(worker).put(f"/api/users/{worker.id}", json={
        "phone": "+61 400 000 000",
        "emergency_contact": {"name": "Sam", "relationship": "partner", "phone": "0400 111 222"},
    })
    assert response.status_code == 200
    data = response.json()
    assert data["phone"] == "+61 400 000 000"
    assert data["emergency_contact"]["name"] == "Sam"

@pytest.mark.asyncio
async def test_self_cannot_change_role(client_for, make_user):
    worker = make_user(Role.WORKER)
    response = await client_for(worker).put(f"/api/users/{worker.id}", json={"role": "admin"})
    assert response.status_code == 403

@pytest.mark.asyncio
async def test_admin_cannot_deactivate_self(client_for, make_user):
    admin = make_user(Role.ADMIN)
    c = client_for(admin)
    assert (await c.put(f"/api/users/{admin.id}", json={"is_active": False})).status_code == 400
    assert (await c.delete(f"/api/users/{admin.id}")).status_code == 400

@pytest.mark.asyncio
async def test_admin_deactivation_revokes_sessions(client_for, make_user):
    admin = make_user(Role.ADMIN)
    worker = make_user(Role.WORKER)
    worker_client = client_for(worker)

    response = await client_for(admin).delete(f"/api/users/{worker.id}")
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    assert (await worker_client.get("/api/auth/me")).status_code == 401

@pytest.mark.asyncio
async def test_explicit_nulls_leave_required_fields(client_for, make_user):
    worker = make_user(Role.WORKER, first_name="Wanda", last_name="Worker")
    response = await client_for(worker).put(f"/api/users/{worker.id}", json={
        "first_name": None,
        "last_name": None,
        "email": None,
        "phone": "0400 222 333",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["first_name"] == "Wanda"
    assert data["last_name"] == "Worker"
    assert data["email"] == worker.email
    assert data["phone"] == "0400 222 333"

    admin = make_user(Role.ADMIN)
    cleared = await client_for(admin).put(f"/api/users/{worker.id}", json={"is_active": None, "role": None})
    assert cleared.status_code == 200
    assert cleared.json()["is_active"] is True
    assert cleared.json()["role"] == "worker"

@pytest.mark.asyncio
async def test_blank_name_rejected(client_for, make_user):
    worker = make_user(Role.WORKER)
    response = await client_for(worker).put(f"/api/users/{worker.id}", json={"first_name": "   "})
    assert response.status_code == 400

@pytest.mark.asyncio
async def test_admin_update_validates_employer(client_for, make_user):
    admin = make_user(Role.ADMIN)
    employer = make_user(Role.EMPLOYER)
    worker = make_user(Role.WORKER)
    other_worker = make_user(Role.WORKER)
    c = client_for(admin)

    not_employer = await c.put(f"/api/users/{worker.id}", json={"employer_id": str(other_worker.id)})
    assert not_employer.status_code == 400
    assert not_employer.json()["detail"] == "Employer not found or inactive"

    missing = await c.put(f"/api/users/{worker.id}", json={"employer_id": str(uuid.uuid4())})
    assert missing.status_code == 400

    linked = await c.put(f"/api/users/{worker.id}", json={"employer_id": str(employer.id)})
    assert linked.status_code == 200
    assert linked.json()["employer_id"] == str(employer.id)

    unlinked = await c.put(f"/api/users/{worker.id}", json={"employer_id": None})
    assert unlinked.status_code == 200
    assert unlinked.json()["employer_id"] is None

@pytest.mark.asyncio
async def test_users_by_role(client_for, make_user):
    case_manager = make_user(Role.CASE_MANAGER)
    make_user(Role.EMPLOYER)
    make_user(Role.EMPLOYER, is_active=False)
    c = client_for(case_manager)

    response = await c.get("/api/users/role/employer")
    assert response.status_code == 200
    assert len(response.json()) == 1

    assert (await c.get("/api/users/role/wizard")).status_code == 400

@pytest.mark.asyncio
async def test_available_clinicians(client_for, make_user):
    admin = make_user(Role.ADMIN)
    available = make_user(Role.CLINICIAN)
    make_user(Role.CLINICIAN, is_available=False)

    response = await client_for(admin).get("/api/users/clinicians/available")
    assert [u["id"] for u in response.json()] == [str(available.id)]

@pytest.mark.asyncio
async def test_assign_employer(client_for, make_user):
    case_manager = make_user(Role.CASE_MANAGER)
    employer = make_user(Role.EMPLOYER)
    worker = make_user(Role.WORKER)
    clinician = make_user(Role.CLINICIAN)
    c = client_for(case_manager)

    response = await c.post(f"/api/users/{worker.id}/assign-employer", json={"employer_id": str(employer.id)})
    assert response.status_code == 200
    assert response.json()["employer_id"] == str(employer.id)

    not_worker = await c.post(
        f"/api/users/{clinician.id}/assign-employer", json={"employer_id": str(employer.id)}
    )
    assert not_worker.status_code == 400

    bad_employer = await c.post(
        f"/api/users/{worker.id}/assign-employer", json={"employer_id": str(clinician.id)}
    )
    assert bad_employer.status_code == 400

@pytest.mark.asyncio
async def test_admin_override_resets_password(client_for, make_user, db):
    admin = make_user(Role.ADMIN)
    worker = make_user(Role.WORKER)
    version = worker.token_version

    response = await client_for(admin).put(f"/api/users/{worker.id}/admin", json={
        "role": "team_leader",
        "password": "Reset!Passw0rd99",
    })
    assert response.status_code == 200
    assert response.json()["role"] == "team_leader"

    db.refresh(worker)
    assert worker.token_version == version + 1
