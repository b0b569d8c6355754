"""Tests for daily check-ins, alerting and check-in review."""
from datetime import date, timedelta

import pytest

from app.db.enums import ActivityLogType, CaseStatus, NotificationType, Role
from app.db.models import ActivityLog, Notification
from app.services.check_in_service import calculate_streak
from app.utils.dates import app_today


def _alerts_for(db, recipient_id, type_: NotificationType) -> int:
    return db.query(Notification).filter(
        Notification.recipient_id == recipient_id,
        Notification.type == type_.value,
    ).count()


# =============================================================================
# Submission
# =============================================================================

@pytest.mark.asyncio
async def test_submit_check_in_without_alerts(client_for, care_team, db):
    response = await client_for(care_team.worker).post("/api/check-ins", json={
        "case_id": str(care_team.case.id),
        "pain_current": 3,
        "functional_status": {"sleep": 7, "mood": 6},
        "exercise_compliance": {"completed": True, "exercises": ["bridges"]},
    })
    assert response.status_code == 201
    data = response.json()
    assert data["check_in_date"] == app_today().isoformat()
    assert data["alerts_sent"] == []
    assert data["functional_status"]["sleep"] == 7

    activity = db.query(ActivityLog).filter(ActivityLog.case_id == care_team.case.id).one()
    assert activity.activity_type == ActivityLogType.DAILY_CHECK_IN.value
    assert activity.clinician_id == care_team.clinician.id
    assert activity.priority == "low"
    assert db.query(Notification).count() == 0


@pytest.mark.asyncio
async def test_high_pain_and_rtw_alerts(client_for, care_team, db):
    response = await client_for(care_team.worker).post("/api/check-ins", json={
        "case_id": str(care_team.case.id),
        "pain_current": 8,
        "work_status": {"worked_today": False},
    })
    assert response.status_code == 201
    assert response.json()["alerts_sent"] == ["high_pain", "rtw_review"]

    for recipient in (care_team.clinician, care_team.case_manager):
        assert _alerts_for(db, recipient.id, NotificationType.HIGH_PAIN) == 1
        assert _alerts_for(db, recipient.id, NotificationType.RTW_REVIEW) == 1
    assert db.query(Notification).filter(Notification.recipient_id == care_team.worker.id).count() == 0

    activity = db.query(ActivityLog).filter(ActivityLog.case_id == care_team.case.id).one()
    assert activity.priority == "high"


@pytest.mark.asyncio
async def test_fatigue_alert_after_two_poor_nights(client_for, care_team, make_check_in, db):
    make_check_in(care_team.case, days_ago=1, sleep=1)

    response = await client_for(care_team.worker).post("/api/check-ins", json={
        "case_id": str(care_team.case.id),
        "pain_current": 2,
        "functional_status": {"sleep": 2},
    })
    assert response.status_code == 201
    assert response.json()["alerts_sent"] == ["fatigue_resource"]
    notification = db.query(Notification).filter(
        Notification.recipient_id == care_team.clinician.id
    ).one()
    assert notification.metadata_["consecutive_days"] == 2


@pytest.mark.asyncio
async def test_single_poor_night_is_not_fatigue(client_for, care_team, make_check_in):
    make_check_in(care_team.case, days_ago=2, sleep=1)
    make_check_in(care_team.case, days_ago=1, sleep=6)

    response = await client_for(care_team.worker).post("/api/check-ins", json={
        "case_id": str(care_team.case.id),
        "pain_current": 2,
        "functional_status": {"sleep": 1},
    })
    assert response.json()["alerts_sent"] == []


@pytest.mark.asyncio
async def test_second_check_in_same_day_rejected(client_for, care_team):
    c = client_for(care_team.worker)
    payload = {"case_id": str(care_team.case.id), "pain_current": 4}
    assert (await c.post("/api/check-ins", json=payload)).status_code == 201

    duplicate = await c.post("/api/check-ins", json=payload)
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "Check-in already exists for today"


@pytest.mark.asyncio
async def test_check_in_on_closed_case_rejected(client_for, care_team, db):
    care_team.case.status = CaseStatus.CLOSED.value
    db.commit()

    response = await client_for(care_team.worker).post(
        "/api/check-ins", json={"case_id": str(care_team.case.id), "pain_current": 4}
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Case is closed"


@pytest.mark.asyncio
async def test_check_in_on_someone_elses_case(client_for, care_team, make_user):
    other_worker = make_user(Role.WORKER)
    response = await client_for(other_worker).post(
        "/api/check-ins", json={"case_id": str(care_team.case.id), "pain_current": 4}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_only_workers_submit(client_for, care_team):
    response = await client_for(care_team.clinician).post(
        "/api/check-ins", json={"case_id": str(care_team.case.id), "pain_current": 4}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_pain_out_of_range(client_for, care_team):
    response = await client_for(care_team.worker).post(
        "/api/check-ins", json={"case_id": str(care_team.case.id), "pain_current": 11}
    )
    assert response.status_code == 422


# =============================================================================
# Alert testing
# =============================================================================

@pytest.mark.asyncio
async def test_alert_test_endpoint_dedupes_per_day(client_for, care_team, db):
    c = client_for(care_team.clinician)
    payload = {"case_id": str(care_team.case.id), "pain_level": 9, "can_do_job": "no", "sleep_quality": "good"}

    first = await c.post("/api/check-ins/test-alerts", json=payload)
    assert first.status_code == 200
    assert first.json() == {"alerts_sent": ["high_pain", "rtw_review"], "recipients": 2}

    second = await c.post("/api/check-ins/test-alerts", json=payload)
    assert second.json() == {"alerts_sent": [], "recipients": 2}

    assert _alerts_for(db, care_team.case_manager.id, NotificationType.HIGH_PAIN) == 1
    # nothing is stored as a check-in
    assert (await client_for(care_team.worker).get("/api/check-ins")).json()["total"] == 0


@pytest.mark.asyncio
async def test_alert_test_poor_sleep_alone_needs_history(client_for, care_team, make_check_in):
    c = client_for(care_team.clinician)
    payload = {"case_id": str(care_team.case.id), "pain_level": 1, "sleep_quality": "poor"}
    assert (await c.post("/api/check-ins/test-alerts", json=payload)).json()["alerts_sent"] == []

    make_check_in(care_team.case, days_ago=1, sleep=2)
    assert (await c.post("/api/check-ins/test-alerts", json=payload)).json()["alerts_sent"] == ["fatigue_resource"]


@pytest.mark.asyncio
async def test_alert_test_other_clinician_forbidden(client_for, care_team, make_user):
    outsider = make_user(Role.CLINICIAN)
    response = await client_for(outsider).post(
        "/api/check-ins/test-alerts", json={"case_id": str(care_team.case.id), "pain_level": 9}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_alert_test_requires_role(client_for, care_team):
    response = await client_for(care_team.case_manager).post(
        "/api/check-ins/test-alerts", json={"case_id": str(care_team.case.id), "pain_level": 9}
    )
    assert response.status_code == 403


# =============================================================================
# Listing, stats and review
# =============================================================================

@pytest.mark.asyncio
async def test_list_check_ins_scoped(client_for, care_team, make_user, make_case, make_check_in):
    make_check_in(care_team.case, days_ago=0)
    make_check_in(care_team.case, days_ago=1)
    other_worker = make_user(Role.WORKER, employer_id=care_team.employer.id)
    other_case = make_case(other_worker, care_team.employer, make_user(Role.CASE_MANAGER))
    make_check_in(other_case)

    worker_items = (await client_for(care_team.worker).get("/api/check-ins")).json()
    assert worker_items["total"] == 2
    assert worker_items["items"][0]["check_in_date"] == app_today().isoformat()

    assert (await client_for(care_team.clinician).get("/api/check-ins")).json()["total"] == 2
    assert (await client_for(care_team.case_manager).get("/api/check-ins")).json()["total"] == 2
    assert (await client_for(care_team.employer).get("/api/check-ins")).json()["total"] == 0

    since_today = (await client_for(care_team.worker).get(
        "/api/check-ins", params={"date_from": app_today().isoformat()}
    )).json()
    assert since_today["total"] == 1


@pytest.mark.asyncio
async def test_get_check_in_access(client_for, care_team, make_user, make_check_in):
    check_in = make_check_in(care_team.case)
    assert (await client_for(care_team.clinician).get(f"/api/check-ins/{check_in.id}")).status_code == 200
    assert (await client_for(make_user(Role.CLINICIAN)).get(f"/api/check-ins/{check_in.id}")).status_code == 403


@pytest.mark.asyncio
async def test_worker_stats(client_for, care_team, make_check_in):
    make_check_in(care_team.case, days_ago=0, pain=2, exercise_compliance={"completed": True})
    make_check_in(care_team.case, days_ago=1, pain=4, exercise_compliance={"completed": False})
    make_check_in(care_team.case, days_ago=3, pain=6)
    # outside the 7-day window
    make_check_in(care_team.case, days_ago=10, pain=9)

    response = await client_for(care_team.worker).get("/api/check-ins/dashboard/stats")
    assert response.status_code == 200
    data = response.json()
    assert data["today_check_in"] is True
    assert data["total_check_ins"] == 3
    assert data["avg_pain_level"] == 4.0
    assert data["exercise_compliance"] == 33
    assert data["streak"] == 2
    assert data["last_check_in"]["pain_current"] == 2


@pytest.mark.asyncio
async def test_stats_without_check_ins(client_for, care_team):
    data = (await client_for(care_team.worker).get("/api/check-ins/dashboard/stats")).json()
    assert data == {
        "today_check_in": False,
        "last_check_in": None,
        "avg_pain_level": None,
        "exercise_compliance": 0,
        "total_check_ins": 0,
        "streak": 0,
    }


def test_calculate_streak():
    today = date(2026, 5, 10)
    days = [today, today - timedelta(days=1), today - timedelta(days=2), today - timedelta(days=4)]
    assert calculate_streak(days, today) == 3
    assert calculate_streak([today - timedelta(days=1)], today) == 0
    assert calculate_streak([], today) == 0


@pytest.mark.asyncio
async def test_clinician_adds_review_notes(client_for, care_team, make_check_in):
    check_in = make_check_in(care_team.case, days_ago=2)
    response = await client_for(care_team.clinician).put(
        f"/api/check-ins/{check_in.id}", json={"review_notes": "Reviewed, continue plan"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["review_notes"] == "Reviewed, continue plan"
    assert data["reviewed_by_id"] == str(care_team.clinician.id)
    assert data["reviewed_at"] is not None


@pytest.mark.asyncio
async def test_reviewer_cannot_edit_self_report(client_for, care_team, make_check_in):
    check_in = make_check_in(care_team.case)
    response = await client_for(care_team.case_manager).put(
        f"/api/check-ins/{check_in.id}", json={"pain_current": 1}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_worker_edits_only_same_day(client_for, care_team, make_check_in):
    today_entry = make_check_in(care_team.case, days_ago=0, pain=5)
    old_entry = make_check_in(care_team.case, days_ago=1, pain=5)
    c = client_for(care_team.worker)

    response = await c.put(f"/api/check-ins/{today_entry.id}", json={
        "pain_current": 3,
        "notes": "Felt better after lunch",
    })
    assert response.status_code == 200
    assert response.json()["pain_current"] == 3
    assert response.json()["notes"] == "Felt better after lunch"

    assert (await c.put(f"/api/check-ins/{old_entry.id}", json={"pain_current": 3})).status_code == 403
    assert (await c.put(f"/api/check-ins/{today_entry.id}", json={"review_notes": "self review"})).status_code == 403
