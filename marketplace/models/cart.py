# marketplace/models/cart.py
from sqlalchemy import Column, Integer, ForeignKey, TIMESTAMP, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import relationship

from marketplace.core.utils import utcnow
from marketplace.database import Base


class CartLine(Base):
    """One product in a buyer's cart. Pre-purchase state only; deleted at checkout."""
    __tablename__ = "cart_lines"
    __table_args__ = (
        UniqueConstraint("buyer_id", "product_id", name="uq_cart_lines_buyer_product"),
        CheckConstraint("quantity >= 1", name="ck_cart_lines_quantity_positive"),
    )

    id = Column(Integer, primary_key=True)
    buyer_id = Column(Integer, nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    created_at = Column(TIMESTAMP(timezone=False), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=False), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)

    product = relationship("Product", back_populates="cart_lines")

    def __repr__(self) -> str:
        return f"<CartLine buyer={self.buyer_id} product={self.product_id} qty={self.quantity}>"
