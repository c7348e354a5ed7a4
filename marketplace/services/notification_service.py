"""In-app notifications derived from order transitions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.config import get_settings
from marketplace.core.enums import ActorRole, NotificationType, OrderStatus
from marketplace.core.utils import order_reference, utcnow
from marketplace.models.notification import Notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionEvent:
    """A committed status change. ``from_status`` is None for order creation."""
    order_id: int
    from_status: Optional[OrderStatus]
    to_status: OrderStatus
    buyer_id: int
    seller_ids: Sequence[int] = field(default_factory=tuple)
    agent_id: Optional[int] = None
    order_total: Optional[Decimal] = None

    @property
    def is_noop(self) -> bool:
        return self.from_status == self.to_status


@dataclass(frozen=True)
class NotificationDraft:
    recipient_role: ActorRole
    recipient_id: int
    type: NotificationType
    order_id: int
    title: str
    message: str


_BUYER_TITLES = {
    OrderStatus.PENDING: "Order Placed Successfully",
    OrderStatus.PROCESSING: "Order Confirmed",
    OrderStatus.SHIPPED: "Order Shipped",
    OrderStatus.DELIVERED: "Order Delivered",
    OrderStatus.CANCELLED: "Order Cancelled",
}

_BUYER_MESSAGES = {
    OrderStatus.PENDING: "Your order {ref} has been placed and is waiting for seller confirmation.",
    OrderStatus.PROCESSING: "Great news! Your order {ref} has been confirmed by the seller and is being prepared.",
    OrderStatus.SHIPPED: "Your order {ref} is on its way! Our delivery partner will contact you soon.",
    OrderStatus.DELIVERED: "Your order {ref} has been delivered successfully. Thank you for shopping with us!",
    OrderStatus.CANCELLED: "Your order {ref} has been cancelled. If you have any questions, please contact support.",
}

_AGENT_NOTICES = {
    OrderStatus.SHIPPED: ("Order Ready for Delivery", "Order {ref} is ready for delivery. Please proceed to the delivery address."),
    OrderStatus.DELIVERED: ("Delivery Completed", "Order {ref} has been marked as delivered. Great job!"),
}


def build_notifications(event: TransitionEvent) -> List[NotificationDraft]:
    """
    Fan one transition out into per-recipient drafts.

    - buyer: a status notice on every transition, plus a confirmation on creation
    - each distinct seller: on entering PENDING (new order) and CANCELLED
    - assigned agent: on SHIPPED, DELIVERED and CANCELLED
    """
    if event.is_noop:
        return []

    ref = order_reference(event.order_id)
    status = event.to_status
    drafts: List[NotificationDraft] = []

    if event.from_status is None:
        total_text = f" Total: ₹{event.order_total:,.2f}." if event.order_total is not None else ""
        drafts.append(NotificationDraft(
            recipient_role=ActorRole.BUYER,
            recipient_id=event.buyer_id,
            type=NotificationType.ORDER_CONFIRMATION,
            order_id=event.order_id,
            title="Order Confirmation",
            message=f"Thank you! We received your order {ref}.{total_text}",
        ))

    drafts.append(NotificationDraft(
        recipient_role=ActorRole.BUYER,
        recipient_id=event.buyer_id,
        type=NotificationType.ORDER_STATUS,
        order_id=event.order_id,
        title=_BUYER_TITLES.get(status, "Order Update"),
        message=_BUYER_MESSAGES.get(status, "Your order {ref} status has been updated.").format(ref=ref),
    ))

    if status in (OrderStatus.PENDING, OrderStatus.CANCELLED):
        for seller_id in sorted(set(event.seller_ids)):
            if status == OrderStatus.PENDING:
                drafts.append(NotificationDraft(
                    recipient_role=ActorRole.SELLER,
                    recipient_id=seller_id,
                    type=NotificationType.NEW_ORDER,
                    order_id=event.order_id,
                    title="New Order Received",
                    message=f"Order {ref} includes your products and is waiting for confirmation.",
                ))
            else:
                drafts.append(NotificationDraft(
                    recipient_role=ActorRole.SELLER,
                    recipient_id=seller_id,
                    type=NotificationType.ORDER_STATUS,
                    order_id=event.order_id,
                    title="Order Cancelled",
                    message=f"Order {ref} has been cancelled. Reserved stock has been returned to inventory.",
                ))

    if event.agent_id is not None:
        if status == OrderStatus.CANCELLED:
            drafts.append(NotificationDraft(
                recipient_role=ActorRole.DELIVERY_AGENT,
                recipient_id=event.agent_id,
                type=NotificationType.DELIVERY_UPDATE,
                order_id=event.order_id,
                title="Delivery Cancelled",
                message=f"Order {ref} was cancelled; it has been removed from your deliveries.",
            ))
        elif status in _AGENT_NOTICES:
            title, message = _AGENT_NOTICES[status]
            drafts.append(NotificationDraft(
                recipient_role=ActorRole.DELIVERY_AGENT,
                recipient_id=event.agent_id,
                type=NotificationType.DELIVERY_UPDATE,
                order_id=event.order_id,
                title=title,
                message=message.format(ref=ref),
            ))

    return drafts


def build_assignment_notification(order_id: int, agent_id: int) -> NotificationDraft:
    """Notice for an agent who has just claimed an order."""
    return NotificationDraft(
        recipient_role=ActorRole.DELIVERY_AGENT,
        recipient_id=agent_id,
        type=NotificationType.DELIVERY_UPDATE,
        order_id=order_id,
        title="New Order Assigned",
        message=f"You have been assigned order {order_reference(order_id)}. Please prepare for pickup.",
    )


class NotificationService:
    """
    Persists fan-out output and serves it to pollers.

    Delivery is at-least-once: readers dedupe by notification id.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------
    async def fan_out(self, event: TransitionEvent) -> List[Notification]:
        """
        Write one notification per interested party.

        Runs after the transition has committed. Each recipient is written in
        its own savepoint and commit; a failure is logged and the remaining
        recipients are still attempted. Objects already loaded in the session
        stay usable when a single insert fails.
        """
        created: List[Notification] = []
        for draft in build_notifications(event):
            notification = await self._persist(draft)
            if notification is not None:
                created.append(notification)

        logger.debug(f"Order {event.order_id} {event.from_status} -> {event.to_status}: {len(created)} notification(s)")
        return created

    async def notify_assignment(self, order_id: int, agent_id: int) -> Optional[Notification]:
        """Tell an agent about an order it has just claimed. Best-effort, like ``fan_out``."""
        return await self._persist(build_assignment_notification(order_id, agent_id))

    async def _persist(self, draft: NotificationDraft) -> Optional[Notification]:
        notification = Notification(
            recipient_role=draft.recipient_role,
            recipient_id=draft.recipient_id,
            type=draft.type,
            order_id=draft.order_id,
            title=draft.title,
            message=draft.message,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(notification)
        except SQLAlchemyError as e:
            # Only this recipient's savepoint is rolled back
            self._log_failure(draft, e)
            return None

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            self._log_failure(draft, e)
            return None
        return notification

    @staticmethod
    def _log_failure(draft: NotificationDraft, error: Exception) -> None:
        logger.error(
            f"Failed to write {draft.type.value} notification for "
            f"{draft.recipient_role.value}:{draft.recipient_id} (order {draft.order_id}): {error}"
        )

    # ------------------------------------------------------------------
    # Reader API
    # ------------------------------------------------------------------
    async def list_for(
        self,
        role: ActorRole,
        recipient_id: int,
        *,
        unread_only: bool = False,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Notification]:
        limit = limit or get_settings().NOTIFICATION_PAGE_SIZE
        query = select(Notification).where(
            Notification.recipient_role == role,
            Notification.recipient_id == recipient_id,
        )
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        if since is not None:
            query = query.where(Notification.created_at > since)

        query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        return list((await self.db.execute(query)).scalars().all())

    async def unread_count(self, role: ActorRole, recipient_id: int) -> int:
        query = select(func.count(Notification.id)).where(
            Notification.recipient_role == role,
            Notification.recipient_id == recipient_id,
            Notification.is_read.is_(False),
        )
        return await self.db.scalar(query) or 0

    async def mark_read(self, role: ActorRole, recipient_id: int, ids: Optional[Sequence[int]] = None) -> int:
        """
        Mark the caller's notifications read; all of them when ``ids`` is None.
        Ids belonging to other recipients are ignored.
        """
        stmt = (
            update(Notification)
            .where(
                Notification.recipient_role == role,
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if ids is not None:
            if not ids:
                return 0
            stmt = stmt.where(Notification.id.in_(list(ids)))

        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount
