"""Notification polling and read receipts for every role."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.security import Actor, get_current_actor
from marketplace.dependencies import get_db
from marketplace.schemas.notification import MarkReadRequest, MarkReadResult, NotificationList, NotificationRead
from marketplace.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationList)
async def list_notifications(
    unread_only: bool = Query(False),
    since: Optional[datetime] = Query(None, description="Only notifications created after this time"),
    limit: Optional[int] = Query(None, ge=1, le=200),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    service = NotificationService(db)
    notifications = await service.list_for(actor.role, actor.id, unread_only=unread_only, since=since, limit=limit)
    return NotificationList(
        notifications=[NotificationRead.model_validate(n) for n in notifications],
        unread_count=await service.unread_count(actor.role, actor.id),
    )


@router.post("/read", response_model=MarkReadResult)
async def mark_notifications_read(
    request: Optional[MarkReadRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    service = NotificationService(db)
    updated = await service.mark_read(actor.role, actor.id, request.ids if request else None)
    return MarkReadResult(updated=updated, unread_count=await service.unread_count(actor.role, actor.id))
