"""Pydantic schemas for in-app notifications."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.db.enums import NotificationPriority, NotificationType


class NotificationRead(BaseModel):
    id: UUID
    recipient_id: UUID
    sender_id: UUID | None = None
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority
    action_url: str | None = None
    metadata: dict | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    items: list[NotificationRead]
    unread_count: int
    total: int
    has_more: bool


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int


class NotificationCreate(BaseModel):
    """Manual notification from staff."""

    recipient_id: UUID
    type: NotificationType = NotificationType.GENERAL
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)
    priority: NotificationPriority = NotificationPriority.MEDIUM
    action_url: str | None = Field(None, max_length=500)
    metadata: dict | None = None
    dedupe_key: str | None = Field(None, max_length=255)


class NotificationTypeCount(BaseModel):
    type: str
    count: int
    unread: int


class NotificationStats(BaseModel):
    by_type: list[NotificationTypeCount]
    recent: list[NotificationRead]
