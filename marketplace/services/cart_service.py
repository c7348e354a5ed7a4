"""
Per-buyer cart. Pre-purchase state only: prices shown here are always the
live product price; they are frozen into order items at checkout.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import select, delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.core.exceptions import InvalidQuantityError, ProductNotFoundError
from marketplace.core.utils import to_money, utcnow
from marketplace.models.cart import CartLine
from marketplace.models.product import Product
from marketplace.services.delivery_fees import delivery_fee_for

logger = logging.getLogger(__name__)


@dataclass
class CartLineView:
    product_id: int
    product_name: str
    seller_id: int
    price: Decimal
    quantity: int
    stock: int
    in_stock: bool

    @property
    def line_total(self) -> Decimal:
        return to_money(self.price * self.quantity)


@dataclass
class CartSnapshot:
    buyer_id: int
    lines: List[CartLineView] = field(default_factory=list)

    @property
    def subtotal(self) -> Decimal:
        return to_money(sum((line.line_total for line in self.lines), Decimal("0")))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def delivery_fee(self) -> Decimal:
        if not self.lines:
            return to_money(0)
        return delivery_fee_for(self.subtotal)

    @property
    def amount_payable(self) -> Decimal:
        return self.subtotal + self.delivery_fee


class CartService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_or_update(self, buyer_id: int, product_id: int, quantity: int, increment: bool = False) -> CartLine:
        """
        Upsert a cart line.

        With ``increment`` the quantity is added to an existing line instead of replacing it.

        Raises:
            InvalidQuantityError: quantity < 1
            ProductNotFoundError: product missing or disabled
        """
        if quantity is None or quantity < 1:
            raise InvalidQuantityError("Quantity must be at least 1")

        product = await self.db.scalar(select(Product).where(Product.id == product_id))
        if product is None or not product.in_stock:
            raise ProductNotFoundError(f"Product {product_id} not available")

        try:
            line = await self._find_line(buyer_id, product_id)
            if line is None:
                line = CartLine(buyer_id=buyer_id, product_id=product_id, quantity=quantity)
                try:
                    async with self.db.begin_nested():
                        self.db.add(line)
                except IntegrityError:
                    # Another request created the line first; apply ours on top of it
                    logger.debug(f"Cart line for buyer {buyer_id}, product {product_id} created concurrently")
                    line = await self._apply_quantity(buyer_id, product_id, quantity, increment)
            else:
                line = await self._apply_quantity(buyer_id, product_id, quantity, increment)

            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        logger.info(f"Cart of buyer {buyer_id}: product {product_id} -> qty {line.quantity}")
        return line

    async def _find_line(self, buyer_id: int, product_id: int) -> Optional[CartLine]:
        return await self.db.scalar(
            select(CartLine)
            .where(CartLine.buyer_id == buyer_id, CartLine.product_id == product_id)
            .execution_options(populate_existing=True)
        )

    async def _apply_quantity(self, buyer_id: int, product_id: int, quantity: int, increment: bool) -> CartLine:
        """Set or add to an existing line in one UPDATE so concurrent adds are not lost."""
        new_quantity = CartLine.quantity + quantity if increment else quantity
        await self.db.execute(
            update(CartLine)
            .where(CartLine.buyer_id == buyer_id, CartLine.product_id == product_id)
            .values(quantity=new_quantity, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return await self._find_line(buyer_id, product_id)

    async def remove(self, buyer_id: int, product_id: int) -> bool:
        """Remove a line; removing a missing line is not an error. Returns whether a row went away."""
        result = await self.db.execute(
            delete(CartLine).where(CartLine.buyer_id == buyer_id, CartLine.product_id == product_id)
        )
        await self.db.commit()
        return result.rowcount > 0

    async def snapshot(self, buyer_id: int) -> CartSnapshot:
        query = (
            select(CartLine)
            .options(selectinload(CartLine.product))
            .where(CartLine.buyer_id == buyer_id)
            .order_by(CartLine.created_at.desc(), CartLine.id.desc())
            .execution_options(populate_existing=True)
        )
        lines = (await self.db.execute(query)).scalars().all()

        return CartSnapshot(
            buyer_id=buyer_id,
            lines=[
                CartLineView(
                    product_id=line.product_id,
                    product_name=line.product.name,
                    seller_id=line.product.seller_id,
                    price=to_money(line.product.price),
                    quantity=line.quantity,
                    stock=line.product.stock,
                    in_stock=line.product.in_stock,
                )
                for line in lines
            ],
        )

    async def clear(self, buyer_id: int, product_ids: Iterable[int]) -> int:
        """
        Delete the given lines. Runs in the caller's transaction (no commit) so
        checkout removes purchased lines atomically with order creation.
        """
        product_ids = list(product_ids)
        if not product_ids:
            return 0
        result = await self.db.execute(
            delete(CartLine).where(CartLine.buyer_id == buyer_id, CartLine.product_id.in_(product_ids))
        )
        return result.rowcount
