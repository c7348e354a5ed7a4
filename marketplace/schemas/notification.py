"""Notification schemas."""

from datetime import datetime
from typing import List, Optional

from marketplace.core.enums import ActorRole, NotificationType

from .base import BaseSchema


class NotificationRead(BaseSchema):
    id: int
    recipient_role: ActorRole
    recipient_id: int
    type: NotificationType
    order_id: Optional[int] = None
    title: str
    message: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class NotificationList(BaseSchema):
    notifications: List[NotificationRead] = []
    unread_count: int


class MarkReadRequest(BaseSchema):
    """Omit ``ids`` to mark every notification read."""
    ids: Optional[List[int]] = None


class MarkReadResult(BaseSchema):
    updated: int
    unread_count: int
