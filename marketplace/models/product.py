"""
Catalogue model.

Stock on this table is owned by the inventory ledger
(``marketplace.services.inventory_ledger``); nothing else writes it.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, Numeric, TIMESTAMP, CheckConstraint, func
from sqlalchemy.orm import relationship

from marketplace.core.utils import utcnow
from marketplace.database import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("price > 0", name="ck_products_price_positive"),
    )

    # Primary Key and Timestamps
    id = Column(Integer, primary_key=True)

    created_at = Column(
        TIMESTAMP(timezone=False),
        default=utcnow,
        server_default=func.now(),
        nullable=False
    )

    updated_at = Column(
        TIMESTAMP(timezone=False),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False
    )

    # Core Product Information
    seller_id = Column(Integer, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)

    # Stock and availability
    stock = Column(Integer, nullable=False, default=0)
    in_stock = Column(Boolean, nullable=False, default=True, index=True)  # seller-controlled availability

    #####################################################
    ################## Relationships ####################
    #####################################################

    cart_lines = relationship("CartLine", back_populates="product", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<Product id={self.id} seller={self.seller_id} stock={self.stock} in_stock={self.in_stock}>"
