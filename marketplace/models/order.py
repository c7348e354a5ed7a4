# marketplace/models/order.py
"""
Order aggregate: the order row plus its frozen line items.

``status`` and the per-status timestamps are written only by the order
service; ``assigned_agent_id`` only by the delivery service.
"""
from sqlalchemy import Column, Integer, String, Text, Numeric, ForeignKey, TIMESTAMP, Enum, CheckConstraint, func
from sqlalchemy.orm import relationship

from marketplace.core.enums import OrderStatus
from marketplace.core.utils import utcnow
from marketplace.database import Base


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    buyer_id = Column(Integer, nullable=False, index=True)
    status = Column(
        Enum(OrderStatus, name="orderstatus"),
        nullable=False,
        default=OrderStatus.PENDING,
        index=True
    )

    shipping_address = Column(Text, nullable=False)
    shipping_state = Column(String(100), nullable=True)

    total = Column(Numeric(12, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)

    created_at = Column(TIMESTAMP(timezone=False), default=utcnow, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(TIMESTAMP(timezone=False), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)

    # Per-status stamps
    processing_at = Column(TIMESTAMP(timezone=False), nullable=True)
    shipped_at = Column(TIMESTAMP(timezone=False), nullable=True)
    delivered_at = Column(TIMESTAMP(timezone=False), nullable=True)
    cancelled_at = Column(TIMESTAMP(timezone=False), nullable=True)

    # Weak reference to the delivering agent
    assigned_agent_id = Column(Integer, ForeignKey("delivery_agents.id", ondelete="SET NULL"), nullable=True, index=True)
    assigned_at = Column(TIMESTAMP(timezone=False), nullable=True)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id"
    )
    assigned_agent = relationship("DeliveryAgent", back_populates="orders")

    @property
    def seller_ids(self):
        """Distinct sellers with at least one line in this order (requires items loaded)."""
        return sorted({item.seller_id for item in self.items})

    @property
    def amount_payable(self):
        return self.total + (self.delivery_fee or 0)

    def __repr__(self) -> str:
        return f"<Order id={self.id} buyer={self.buyer_id} status={self.status} total={self.total}>"


class OrderItem(Base):
    """A purchased line. Price, name and seller are copies taken at checkout."""
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
    )

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)

    product_name = Column(String(200), nullable=False)
    seller_id = Column(Integer, nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")

    @property
    def line_total(self):
        return self.price * self.quantity

    def __repr__(self) -> str:
        return f"<OrderItem order={self.order_id} product={self.product_id} {self.quantity} x {self.price}>"
