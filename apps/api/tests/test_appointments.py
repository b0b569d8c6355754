"""Tests for appointment booking, conflicts and lifecycle."""
import uuid
from datetime import timedelta

import pytest

from app.db.enums import ActivityLogType, AppointmentStatus, NotificationType, Role
from app.db.models import ActivityLog, Appointment, Notification
from app.utils.dates import utcnow

SLOT = "2030-06-03T10:00:00Z"


def _booking(team, scheduled_at: str = SLOT, **overrides) -> dict:
    payload = {
        "case_id": str(team.case.id),
        "worker_id": str(team.worker.id),
        "appointment_type": "assessment",
        "scheduled_at": scheduled_at,
        "duration_minutes": 60,
        "location": "clinic",
        "purpose": "Initial assessment",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def booked(client_for, care_team):
    """Books the 10:00-11:00 slot as the case's clinician and returns its JSON."""
    async def _book(**overrides):
        response = await client_for(care_team.clinician).post("/api/appointments", json=_booking(care_team, **overrides))
        assert response.status_code == 201, response.text
        return response.json()
    return _book


# =============================================================================
# Booking
# =============================================================================

@pytest.mark.asyncio
async def test_clinician_books_appointment(client_for, care_team, db):
    response = await client_for(care_team.clinician).post("/api/appointments", json=_booking(care_team))
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "scheduled"
    assert data["duration_minutes"] == 60
    assert data["clinician"]["id"] == str(care_team.clinician.id)
    assert data["case_number"] == care_team.case.case_number

    notified = {
        n.recipient_id for n in db.query(Notification).filter(
            Notification.type == NotificationType.APPOINTMENT_SCHEDULED.value
        )
    }
    assert notified == {care_team.worker.id}


@pytest.mark.asyncio
async def test_case_manager_books_for_case_clinician(client_for, care_team, db):
    response = await client_for(care_team.case_manager).post("/api/appointments", json=_booking(care_team))
    assert response.status_code == 201
    assert response.json()["clinician"]["id"] == str(care_team.clinician.id)

    notified = {
        n.recipient_id for n in db.query(Notification).filter(
            Notification.type == NotificationType.APPOINTMENT_SCHEDULED.value
        )
    }
    assert notified == {care_team.worker.id, care_team.clinician.id}


@pytest.mark.asyncio
async def test_overlapping_booking_conflicts(client_for, care_team, booked):
    await booked()
    c = client_for(care_team.clinician)

    inside = await c.post("/api/appointments", json=_booking(care_team, "2030-06-03T10:30:00Z", duration_minutes=15))
    assert inside.status_code == 409

    straddling = await c.post("/api/appointments", json=_booking(care_team, "2030-06-03T09:30:00Z"))
    assert straddling.status_code == 409


@pytest.mark.asyncio
async def test_back_to_back_booking_allowed(client_for, care_team, booked):
    await booked()
    c = client_for(care_team.clinician)

    after = await c.post("/api/appointments", json=_booking(care_team, "2030-06-03T11:00:00Z"))
    assert after.status_code == 201
    before = await c.post("/api/appointments", json=_booking(care_team, "2030-06-03T09:00:00Z"))
    assert before.status_code == 201


@pytest.mark.asyncio
async def test_other_clinician_not_blocked(client_for, care_team, booked, make_user):
    await booked()
    other = make_user(Role.CLINICIAN)
    response = await client_for(other).post("/api/appointments", json=_booking(care_team))
    assert response.status_code == 201
    assert response.json()["clinician"]["id"] == str(other.id)


@pytest.mark.asyncio
async def test_cancelled_slot_is_free_again(client_for, care_team, booked):
    first = await booked()
    c = client_for(care_team.clinician)

    cancelled = await c.delete(f"/api/appointments/{first['id']}")
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"
    assert cancelled.json()["cancelled_by_id"] == str(care_team.clinician.id)

    again = await c.post("/api/appointments", json=_booking(care_team))
    assert again.status_code == 201


@pytest.mark.asyncio
async def test_reactivating_into_taken_slot_conflicts(client_for, care_team, booked, db):
    first = await booked()
    c = client_for(care_team.clinician)
    await c.delete(f"/api/appointments/{first['id']}")
    await booked()

    reactivated = await c.put(f"/api/appointments/{first['id']}/status", json={"status": "scheduled"})
    assert reactivated.status_code == 409
    assert db.get(Appointment, uuid.UUID(first["id"])).status == AppointmentStatus.CANCELLED.value

    # a free slot can be reactivated
    moved = await booked(scheduled_at="2030-06-03T15:00:00Z")
    await c.delete(f"/api/appointments/{moved['id']}")
    confirmed = await c.put(f"/api/appointments/{moved['id']}/status", json={"status": "confirmed"})
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"


@pytest.mark.asyncio
async def test_booking_validation(client_for, care_team):
    c = client_for(care_team.clinician)

    too_short = await c.post("/api/appointments", json=_booking(care_team, duration_minutes=10))
    assert too_short.status_code == 422

    not_a_worker = await c.post("/api/appointments", json=_booking(care_team, worker_id=str(care_team.employer.id)))
    assert not_a_worker.status_code == 400


@pytest.mark.asyncio
async def test_booking_missing_case(client_for, care_team, make_user):
    response = await client_for(care_team.clinician).post(
        "/api/appointments", json=_booking(care_team, case_id=str(care_team.worker.id))
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_worker_cannot_book(client_for, care_team):
    response = await client_for(care_team.worker).post("/api/appointments", json=_booking(care_team))
    assert response.status_code == 403


# =============================================================================
# Lifecycle
# =============================================================================

@pytest.mark.asyncio
async def test_reschedule_conflict(client_for, care_team, booked):
    await booked()
    second = await booked(scheduled_at="2030-06-03T14:00:00Z")
    c = client_for(care_team.clinician)

    clash = await c.put(f"/api/appointments/{second['id']}", json={"scheduled_at": "2030-06-03T10:15:00Z"})
    assert clash.status_code == 409

    # moving within its own slot does not conflict with itself
    nudge = await c.put(f"/api/appointments/{second['id']}", json={"scheduled_at": "2030-06-03T14:30:00Z"})
    assert nudge.status_code == 200

    longer = await c.put(f"/api/appointments/{second['id']}", json={"duration_minutes": 90, "notes": "Bring scans"})
    assert longer.status_code == 200
    assert longer.json()["duration_minutes"] == 90
    assert longer.json()["notes"] == "Bring scans"


@pytest.mark.asyncio
async def test_worker_cannot_reschedule(client_for, care_team, booked):
    appointment = await booked()
    response = await client_for(care_team.worker).put(
        f"/api/appointments/{appointment['id']}", json={"scheduled_at": "2030-06-04T10:00:00Z"}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_worker_cancels_own_appointment(client_for, care_team, booked, db):
    appointment = await booked()
    response = await client_for(care_team.worker).put(
        f"/api/appointments/{appointment['id']}/status",
        json={"status": "cancelled", "reason": "Feeling unwell"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "cancelled"
    assert data["cancellation_reason"] == "Feeling unwell"
    assert data["cancelled_by_id"] == str(care_team.worker.id)

    cancel_notices = db.query(Notification).filter(
        Notification.recipient_id == care_team.clinician.id,
        Notification.title == "Appointment Cancelled",
    ).count()
    assert cancel_notices == 1


@pytest.mark.asyncio
async def test_worker_cannot_complete(client_for, care_team, booked):
    appointment = await booked()
    response = await client_for(care_team.worker).put(
        f"/api/appointments/{appointment['id']}/status", json={"status": "completed"}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_complete_logs_activity(client_for, care_team, booked, db):
    appointment = await booked()
    response = await client_for(care_team.clinician).put(
        f"/api/appointments/{appointment['id']}/status", json={"status": "completed"}
    )
    assert response.status_code == 200
    assert response.json()["completed_at"] is not None

    activity = db.query(ActivityLog).filter(
        ActivityLog.activity_type == ActivityLogType.APPOINTMENT_COMPLETED.value
    ).one()
    assert activity.details == {"appointment_id": appointment["id"]}


@pytest.mark.asyncio
async def test_other_clinician_cannot_manage(client_for, care_team, booked, make_user):
    appointment = await booked()
    other = make_user(Role.CLINICIAN)
    c = client_for(other)
    assert (await c.get(f"/api/appointments/{appointment['id']}")).status_code == 403
    assert (await c.delete(f"/api/appointments/{appointment['id']}")).status_code == 403


# =============================================================================
# Listing and stats
# =============================================================================

@pytest.mark.asyncio
async def test_list_scoping(client_for, care_team, booked, make_user):
    await booked()
    await booked(scheduled_at="2030-06-04T10:00:00Z")

    worker_list = (await client_for(care_team.worker).get("/api/appointments")).json()
    assert worker_list["total"] == 2
    assert worker_list["items"][0]["scheduled_at"] < worker_list["items"][1]["scheduled_at"]

    assert (await client_for(care_team.case_manager).get("/api/appointments")).json()["total"] == 2
    assert (await client_for(make_user(Role.CLINICIAN)).get("/api/appointments")).json()["total"] == 0
    assert (await client_for(make_user(Role.CASE_MANAGER)).get("/api/appointments")).json()["total"] == 0

    by_day = (await client_for(care_team.worker).get("/api/appointments", params={"day": "2030-06-04"})).json()
    assert by_day["total"] == 1


@pytest.mark.asyncio
async def test_employer_cannot_list(client_for, care_team):
    response = await client_for(care_team.employer).get("/api/appointments")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_appointment_stats(client_for, care_team, db):
    now = utcnow()
    for offset, status in (
        (timedelta(minutes=5), AppointmentStatus.SCHEDULED),
        (timedelta(days=3), AppointmentStatus.CONFIRMED),
        (timedelta(days=-3), AppointmentStatus.COMPLETED),
        (timedelta(days=4), AppointmentStatus.CANCELLED),
    ):
        db.add(Appointment(
            case_id=care_team.case.id,
            worker_id=care_team.worker.id,
            clinician_id=care_team.clinician.id,
            appointment_type="treatment",
            scheduled_at=now + offset,
            status=status.value,
        ))
    db.commit()

    data = (await client_for(care_team.clinician).get("/api/appointments/dashboard/stats")).json()
    assert data["total"] == 4
    assert data["upcoming"] == 2
    assert data["completed"] == 1
    assert data["today"] == len(data["today_appointments"])

    assert (await client_for(care_team.employer).get("/api/appointments/dashboard/stats")).json()["total"] == 0
