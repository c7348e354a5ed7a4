"""
Purpose: Checkout and the order state machine.

Role: The only writer of ``Order.status`` and the per-status timestamps.

Key features of this service:
- Checkout turns a cart snapshot into an order in one transaction: every line
  is reserved through the inventory ledger, items are frozen, purchased cart
  lines are removed. Any failure rolls the whole thing back.
- Transitions lock the order row, check ownership and the role table, and
  apply the change as a compare-and-set on the previous status.
- Cancellation returns stock for every line in the same transaction.
- Notifications and audit entries are written after commit and never undo
  the change they describe.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy import select, update, exists
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.core.enums import ActorRole, OrderStatus
from marketplace.core.exceptions import (
    BaseServiceError,
    ForbiddenError,
    InvalidInputError,
    InvalidTransitionError,
    OrderNotFoundError,
)
from marketplace.core.utils import utcnow
from marketplace.models.order import Order, OrderItem
from marketplace.services.activity_logger import ActivityLogger
from marketplace.services.cart_service import CartService
from marketplace.services.delivery_service import DeliveryService
from marketplace.services.inventory_ledger import InventoryLedger
from marketplace.services.notification_service import NotificationService, TransitionEvent
from marketplace.services.order_state_machine import (
    STATUS_TIMESTAMP_FIELDS,
    can_act_on,
    check_transition,
)

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    order: Order
    previous_status: OrderStatus
    changed: bool


class OrderService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = InventoryLedger(db)
        self.cart = CartService(db)
        self.delivery = DeliveryService(db)
        self.notifications = NotificationService(db)
        self.activity = ActivityLogger(db)

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------
    async def checkout(self, buyer_id: int, shipping_address: str, shipping_state: Optional[str] = None) -> Order:
        """
        Create an order from the buyer's cart.

        Args:
            buyer_id: Buyer placing the order
            shipping_address: Free-form delivery address
            shipping_state: Optional region, matched against agent service areas

        Returns:
            The committed order with its items

        Raises:
            InvalidInputError: empty cart or blank address
            InsufficientStockError: a line could not be reserved (nothing is kept)
            ProductNotFoundError: a cart line points at a deleted product
        """
        if not shipping_address or not shipping_address.strip():
            raise InvalidInputError("Shipping address is required")

        snapshot = await self.cart.snapshot(buyer_id)
        if not snapshot.lines:
            raise InvalidInputError("Cart is empty")

        try:
            order = Order(
                buyer_id=buyer_id,
                status=OrderStatus.PENDING,
                shipping_address=shipping_address.strip(),
                shipping_state=shipping_state.strip() if shipping_state else None,
                total=snapshot.subtotal,
                delivery_fee=snapshot.delivery_fee,
            )

            for line in snapshot.lines:
                await self.ledger.reserve(line.product_id, line.quantity)
                order.items.append(OrderItem(
                    product_id=line.product_id,
                    product_name=line.product_name,
                    seller_id=line.seller_id,
                    price=line.price,
                    quantity=line.quantity,
                ))

            self.db.add(order)
            await self.cart.clear(buyer_id, [line.product_id for line in snapshot.lines])
            await self.db.commit()

        except (BaseServiceError, SQLAlchemyError) as e:
            await self.db.rollback()
            logger.info(f"Checkout for buyer {buyer_id} rolled back: {e}")
            raise

        order_id = order.id
        logger.info(f"Order {order_id} placed by buyer {buyer_id}: {len(order.items)} line(s), total {order.total}")

        event = TransitionEvent(
            order_id=order_id,
            from_status=None,
            to_status=OrderStatus.PENDING,
            buyer_id=buyer_id,
            seller_ids=order.seller_ids,
            order_total=order.total,
        )
        await self.activity.log_transition(order_id, None, OrderStatus.PENDING, ActorRole.BUYER.value, buyer_id)
        await self.notifications.fan_out(event)
        return await self._load(order_id)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------
    async def transition(
        self,
        order_id: int,
        role: ActorRole,
        actor_id: int,
        target_status: OrderStatus,
    ) -> TransitionResult:
        """
        Move an order to ``target_status`` on behalf of an actor.

        Re-applying the current status is a silent no-op.

        Raises:
            OrderNotFoundError: no such order
            ForbiddenError: the actor has no rights over this order
            InvalidTransitionError: the edge is not allowed for the actor's role
            AlreadyClaimedError: an agent lost the race to claim the order while shipping it
        """
        target_status = OrderStatus(target_status)

        try:
            order = await self._load(order_id, for_update=True)
            if order is None:
                raise OrderNotFoundError(f"Order {order_id} not found")

            self._authorize(order, role, actor_id)

            current = order.status
            if current == target_status:
                await self.db.commit()  # releases the row lock; nothing was written
                logger.debug(f"Order {order_id} already {current.value}; nothing to do")
                return TransitionResult(order=order, previous_status=current, changed=False)

            check_transition(role, current, target_status)

            if role == ActorRole.DELIVERY_AGENT and order.assigned_agent_id is None:
                # Shipping an unassigned order claims it first
                await self.delivery.claim(actor_id, order_id, commit=False)

            now = utcnow()
            values = {"status": target_status, "updated_at": now}
            values[STATUS_TIMESTAMP_FIELDS[target_status]] = now

            result = await self.db.execute(
                update(Order)
                .where(Order.id == order_id, Order.status == current)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return await self._resolve_lost_race(order_id, current, target_status)

            if target_status == OrderStatus.CANCELLED:
                for item in order.items:
                    await self.ledger.release(item.product_id, item.quantity)

            await self.db.commit()

        except (BaseServiceError, SQLAlchemyError):
            await self.db.rollback()
            raise

        order = await self._load(order_id)
        logger.info(f"Order {order_id}: {current.value} -> {target_status.value} by {role.value} {actor_id}")

        event = TransitionEvent(
            order_id=order_id,
            from_status=current,
            to_status=target_status,
            buyer_id=order.buyer_id,
            seller_ids=order.seller_ids,
            agent_id=order.assigned_agent_id,
            order_total=order.total,
        )
        await self.activity.log_transition(order_id, current, target_status, role.value, actor_id)
        await self.notifications.fan_out(event)

        # A failed best-effort write may have expired the session's objects
        order = await self._load(order_id)
        return TransitionResult(order=order, previous_status=current, changed=True)

    async def _resolve_lost_race(self, order_id: int, expected: OrderStatus, target: OrderStatus) -> TransitionResult:
        """Another request changed the status between our read and write."""
        await self.db.rollback()
        fresh = await self._load(order_id)
        if fresh is not None and fresh.status == target:
            return TransitionResult(order=fresh, previous_status=target, changed=False)
        actual = fresh.status if fresh is not None else None
        raise InvalidTransitionError(
            f"Order {order_id} changed concurrently (expected {expected.value}, found {actual.value if actual else 'nothing'})",
            current_status=actual,
            target_status=target,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get_order(self, order_id: int, role: ActorRole, actor_id: int) -> Order:
        order = await self._load(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        self._authorize(order, role, actor_id)
        return order

    async def list_buyer_orders(self, buyer_id: int) -> List[Order]:
        query = (
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.buyer_id == buyer_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list((await self.db.execute(query)).scalars().all())

    async def list_seller_orders(
        self,
        seller_id: int,
        status: Optional[OrderStatus] = None,
    ) -> List[Tuple[Order, List[OrderItem]]]:
        """Orders containing the seller's products, each paired with only that seller's lines."""
        query = (
            select(Order)
            .options(selectinload(Order.items))
            .where(exists().where(OrderItem.order_id == Order.id, OrderItem.seller_id == seller_id))
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        if status is not None:
            query = query.where(Order.status == status)

        orders = (await self.db.execute(query)).scalars().all()
        return [(order, [item for item in order.items if item.seller_id == seller_id]) for order in orders]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _load(self, order_id: int, for_update: bool = False) -> Optional[Order]:
        query = (
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update(of=Order)
        return (await self.db.execute(query)).scalar_one_or_none()

    @staticmethod
    def _authorize(order: Order, role: ActorRole, actor_id: int) -> None:
        allowed = can_act_on(
            role,
            actor_id,
            buyer_id=order.buyer_id,
            seller_ids=order.seller_ids,
            assigned_agent_id=order.assigned_agent_id,
            status=order.status,
        )
        if not allowed:
            raise ForbiddenError(f"{role.value} {actor_id} is not authorized for order {order.id}")
