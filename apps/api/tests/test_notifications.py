"""Tests for in-app notifications and the unread-count stream."""
import asyncio
import json
import threading
import uuid

import pytest
from starlette.requests import Request

from app.core.notification_stream import NotificationStreamManager, _offer, stream_manager
from app.db.enums import NotificationType, Role
from app.db.models import Notification
from app.routers import notifications
from app.services import notification_service
from app.utils.sse import format_sse, format_sse_comment


@pytest.fixture
def notify(db):
    def _notify(recipient, title="Heads up", **fields) -> Notification:
        notification = notification_service.create_notification(
            db,
            recipient_id=recipient.id,
            type=fields.pop("type", NotificationType.GENERAL),
            title=title,
            message=fields.pop("message", "Something happened"),
            **fields,
        )
        db.commit()
        return notification
    return _notify


# =============================================================================
# Reading
# =============================================================================

@pytest.mark.asyncio
async def test_list_own_notifications(client_for, make_user, notify):
    worker = make_user(Role.WORKER)
    other = make_user(Role.WORKER)
    notify(worker, "First")
    notify(worker, "Second")
    notify(other, "Not yours")

    data = (await client_for(worker).get("/api/notifications")).json()
    assert data["total"] == 2
    assert data["unread_count"] == 2
    assert data["has_more"] is False
    assert {n["title"] for n in data["items"]} == {"First", "Second"}

    page = (await client_for(worker).get("/api/notifications", params={"limit": 1})).json()
    assert len(page["items"]) == 1
    assert page["has_more"] is True


@pytest.mark.asyncio
async def test_mark_read_and_unread_filter(client_for, make_user, notify):
    worker = make_user(Role.WORKER)
    first = notify(worker, "First")
    notify(worker, "Second")
    c = client_for(worker)

    response = await c.put(f"/api/notifications/{first.id}/read")
    assert response.status_code == 200
    assert response.json()["is_read"] is True
    assert response.json()["read_at"] is not None

    assert (await c.get("/api/notifications/unread-count")).json() == {"unread_count": 1}
    unread = (await c.get("/api/notifications", params={"unread_only": True})).json()
    assert [n["title"] for n in unread["items"]] == ["Second"]


@pytest.mark.asyncio
async def test_mark_all_read(client_for, make_user, notify):
    worker = make_user(Role.WORKER)
    notify(worker, "First")
    notify(worker, "Second")
    c = client_for(worker)

    assert (await c.put("/api/notifications/read-all")).json() == {"updated": 2}
    assert (await c.get("/api/notifications/unread-count")).json() == {"unread_count": 0}


@pytest.mark.asyncio
async def test_delete_notification(client_for, make_user, notify, db):
    worker = make_user(Role.WORKER)
    notification = notify(worker)
    notification_id = notification.id

    response = await client_for(worker).delete(f"/api/notifications/{notification_id}")
    assert response.status_code == 200
    assert response.json() == {"deleted": True}
    db.expire_all()
    assert db.get(Notification, notification_id) is None


@pytest.mark.asyncio
async def test_cannot_touch_someone_elses_notification(client_for, make_user, notify):
    owner = make_user(Role.WORKER)
    notification = notify(owner)
    c = client_for(make_user(Role.WORKER))

    assert (await c.put(f"/api/notifications/{notification.id}/read")).status_code == 403
    assert (await c.delete(f"/api/notifications/{notification.id}")).status_code == 403
    assert (await c.put(f"/api/notifications/{uuid.uuid4()}/read")).status_code == 404


@pytest.mark.asyncio
async def test_mutations_require_csrf(client_for, make_user, notify):
    worker = make_user(Role.WORKER)
    notification = notify(worker)
    response = await client_for(worker, csrf=False).put(f"/api/notifications/{notification.id}/read")
    assert response.status_code == 403


# =============================================================================
# Sending
# =============================================================================

@pytest.mark.asyncio
async def test_case_manager_sends_notification(client_for, make_user, db):
    case_manager = make_user(Role.CASE_MANAGER)
    worker = make_user(Role.WORKER)
    payload = {
        "recipient_id": str(worker.id),
        "title": "Paperwork",
        "message": "Please sign the return-to-work form.",
        "priority": "high",
        "dedupe_key": "rtw-form",
    }
    c = client_for(case_manager)

    response = await c.post("/api/notifications", json=payload)
    assert response.status_code == 201
    data = response.json()
    assert data["sender_id"] == str(case_manager.id)
    assert data["type"] == "general"
    assert data["priority"] == "high"

    duplicate = await c.post("/api/notifications", json=payload)
    assert duplicate.status_code == 409
    assert db.query(Notification).filter(Notification.recipient_id == worker.id).count() == 1


@pytest.mark.asyncio
async def test_send_to_missing_recipient(client_for, make_user):
    response = await client_for(make_user(Role.ADMIN)).post("/api/notifications", json={
        "recipient_id": str(uuid.uuid4()), "title": "Hi", "message": "Hello",
    })
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_worker_cannot_send(client_for, make_user):
    worker = make_user(Role.WORKER)
    response = await client_for(worker).post("/api/notifications", json={
        "recipient_id": str(worker.id), "title": "Hi", "message": "Hello",
    })
    assert response.status_code == 403


def test_dedupe_is_per_recipient(db, make_user):
    first, second = make_user(Role.WORKER), make_user(Role.WORKER)
    kwargs = {"type": NotificationType.GENERAL, "title": "t", "message": "m", "dedupe_key": "same"}

    assert notification_service.create_notification(db, recipient_id=first.id, **kwargs) is not None
    assert notification_service.create_notification(db, recipient_id=first.id, **kwargs) is None
    assert notification_service.create_notification(db, recipient_id=second.id, **kwargs) is not None


@pytest.mark.asyncio
async def test_notification_stats(client_for, make_user, notify):
    admin = make_user(Role.ADMIN)
    worker = make_user(Role.WORKER)
    notify(worker, type=NotificationType.HIGH_PAIN)
    notify(worker, type=NotificationType.HIGH_PAIN)
    notify(worker, type=NotificationType.GENERAL)

    data = (await client_for(admin).get("/api/notifications/stats")).json()
    assert data["by_type"][0] == {"type": "high_pain", "count": 2, "unread": 2}
    assert len(data["recent"]) == 3

    assert (await client_for(worker).get("/api/notifications/stats")).status_code == 403


# =============================================================================
# Stream
# =============================================================================

@pytest.mark.asyncio
async def test_stream_requires_auth(client):
    response = await client.get("/api/notifications/stream")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_stream_sends_initial_count_off_the_event_loop(db, make_user, notify, monkeypatch):
    worker = make_user(Role.WORKER)
    notify(worker)
    notify(worker)

    loop_thread = threading.get_ident()
    query_threads = []
    real_count = notification_service.get_unread_count

    def tracking_count(session, user_id):
        query_threads.append(threading.get_ident())
        return real_count(session, user_id)

    monkeypatch.setattr(notification_service, "get_unread_count", tracking_count)

    async def receive():
        return {"type": "http.disconnect"}

    request = Request({"type": "http", "method": "GET", "path": "/api/notifications/stream", "headers": []}, receive)
    response = await notifications.notification_stream(request, user=worker, db=db)
    chunks = [chunk async for chunk in response.body_iterator]

    assert query_threads and query_threads[0] != loop_thread
    body = "".join(chunks)
    assert "event: connected" in body
    assert '"unread_count": 2' in body
    assert stream_manager.get_connected_count(worker.id) == 0


@pytest.mark.asyncio
async def test_commit_and_push_publishes_unread_count(db, make_user):
    worker = make_user(Role.WORKER)
    connection = stream_manager.connect(worker.id)
    try:
        notification_service.create_notification(
            db, recipient_id=worker.id, type=NotificationType.GENERAL, title="t", message="m",
        )
        notification_service.commit_and_push(db)

        message = await asyncio.wait_for(connection.queue.get(), timeout=1)
        assert message == {"type": "notification_count_update", "unread_count": 1}
    finally:
        stream_manager.disconnect(connection)
    assert stream_manager.get_connected_count(worker.id) == 0


@pytest.mark.asyncio
async def test_stream_manager_publish_from_worker_thread():
    manager = NotificationStreamManager()
    user_id = uuid.uuid4()
    first = manager.connect(user_id)
    second = manager.connect(user_id)
    assert manager.get_connected_count(user_id) == 2
    assert manager.get_total_connections() == 2

    delivered = await asyncio.to_thread(manager.publish, user_id, {"type": "ping"})
    assert delivered == 2
    assert await asyncio.wait_for(first.queue.get(), timeout=1) == {"type": "ping"}
    assert await asyncio.wait_for(second.queue.get(), timeout=1) == {"type": "ping"}

    manager.disconnect(first)
    manager.disconnect(second)
    assert manager.get_total_connections() == 0
    assert manager.publish(user_id, {"type": "ping"}) == 0


@pytest.mark.asyncio
async def test_full_queue_drops_oldest():
    queue = asyncio.Queue(maxsize=2)
    for n in range(3):
        _offer(queue, {"n": n})
    assert [queue.get_nowait()["n"], queue.get_nowait()["n"]] == [1, 2]


def test_format_sse():
    event = format_sse("notification_count_update", {"unread_count": 3})
    header, data, *_ = event.split("\n")
    assert header == "event: notification_count_update"
    assert json.loads(data.removeprefix("data: ")) == {"type": "notification_count_update", "unread_count": 3}
    assert event.endswith("\n\n")
    assert format_sse_comment("keepalive") == ": keepalive\n\n"
