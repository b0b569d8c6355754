"""
Notifications Router - in-app notifications and the unread-count stream.

GET /stream is a server-sent events endpoint. It sends `connected`, then the
current `notification_count_update`, then every later count update for the
user, with a keep-alive comment when idle.
"""

import asyncio
import logging
from typing import AsyncIterator
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.deps import get_current_session, get_db, get_stream_user, require_csrf_header, require_roles
from app.core.notification_stream import stream_manager
from app.db.enums import Role
from app.db.models import Notification, User
from app.schemas.auth import UserSession
from app.schemas.notification import (
    MarkAllReadResponse,
    NotificationCreate,
    NotificationListResponse,
    NotificationRead,
    NotificationStats,
    UnreadCountResponse,
)
from app.services import notification_service, user_service
from app.utils.sse import STREAM_HEADERS, format_sse, format_sse_comment, sse_preamble

logger = logging.getLogger(__name__)

router = APIRouter()


def _notification_to_read(notification: Notification) -> NotificationRead:
    return NotificationRead(
        id=notification.id,
        recipient_id=notification.recipient_id,
        sender_id=notification.sender_id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        priority=notification.priority,
        action_url=notification.action_url,
        metadata=notification.metadata_,
        is_read=notification.is_read,
        read_at=notification.read_at,
        created_at=notification.created_at,
    )


def _get_own_notification(db: Session, notification_id: UUID, session: UserSession) -> Notification:
    notification = notification_service.get_notification(db, notification_id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    if notification.recipient_id != session.user_id:
        raise HTTPException(status_code=403, detail="Access denied")
    return notification


# =============================================================================
# Stream
# =============================================================================

@router.get("/stream")
async def notification_stream(
    request: Request,
    user: User = Depends(get_stream_user),
    db: Session = Depends(get_db),
) -> StreamingResponse:
    """Push unread-count updates over SSE. Accepts cookie, bearer or ?token= auth."""
    user_id = user.id
    connection = stream_manager.connect(user_id)
    unread = await run_in_threadpool(notification_service.get_unread_count, db, user_id)

    async def event_generator() -> AsyncIterator[str]:
        try:
            yield sse_preamble()
            yield format_sse("connected", {"user_id": str(user_id)})
            yield format_sse(notification_service.COUNT_UPDATE_EVENT, {"unread_count": unread})
            while True:
                if await request.is_disconnected():
                    break
                try:
                    message = await asyncio.wait_for(
                        connection.queue.get(), timeout=settings.SSE_KEEPALIVE_SECONDS
                    )
                except asyncio.TimeoutError:
                    yield format_sse_comment("keepalive")
                    continue
                event_type = message.get("type", "message")
                yield format_sse(event_type, {k: v for k, v in message.items() if k != "type"})
        except asyncio.CancelledError:
            return
        finally:
            stream_manager.disconnect(connection)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=NotificationListResponse)
def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(20, ge=1, le=100),
    skip: int = Query(0, ge=0),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List the current user's notifications, newest first."""
    items, total = notification_service.get_notifications(
        db, session.user_id, unread_only=unread_only, limit=limit, skip=skip
    )
    return NotificationListResponse(
        items=[_notification_to_read(n) for n in items],
        unread_count=notification_service.get_unread_count(db, session.user_id),
        total=total,
        has_more=skip + len(items) < total,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
def get_unread_count(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return UnreadCountResponse(unread_count=notification_service.get_unread_count(db, session.user_id))


@router.get("/stats", response_model=NotificationStats)
def notification_stats(
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    stats = notification_service.get_stats(db)
    return NotificationStats(
        by_type=stats["by_type"],
        recent=[_notification_to_read(n) for n in stats["recent"]],
    )


@router.post(
    "",
    response_model=NotificationRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_notification(
    data: NotificationCreate,
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.CASE_MANAGER])),
    db: Session = Depends(get_db),
):
    """Send a notification to one user. A repeated dedupe_key inside the window returns 409."""
    if not user_service.get_user_by_id(db, data.recipient_id):
        raise HTTPException(status_code=404, detail="Recipient not found")

    notification = notification_service.create_notification(
        db,
        recipient_id=data.recipient_id,
        type=data.type,
        title=data.title,
        message=data.message,
        priority=data.priority,
        sender_id=session.user_id,
        action_url=data.action_url,
        metadata=data.metadata,
        dedupe_key=data.dedupe_key,
    )
    if notification is None:
        raise HTTPException(status_code=409, detail="Duplicate notification suppressed")

    notification_service.commit_and_push(db)
    db.refresh(notification)
    return _notification_to_read(notification)


@router.put("/read-all", response_model=MarkAllReadResponse, dependencies=[Depends(require_csrf_header)])
def mark_all_read(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return MarkAllReadResponse(updated=notification_service.mark_all_read(db, session.user_id))


@router.put("/{notification_id}/read", response_model=NotificationRead, dependencies=[Depends(require_csrf_header)])
def mark_read(
    notification_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    notification = _get_own_notification(db, notification_id, session)
    return _notification_to_read(notification_service.mark_read(db, notification))


@router.delete("/{notification_id}", dependencies=[Depends(require_csrf_header)])
def delete_notification(
    notification_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    notification = _get_own_notification(db, notification_id, session)
    notification_service.delete_notification(db, notification)
    return {"deleted": True}
