"""
Purpose: The single writer of ``Product.stock``.

Every stock change is one conditional UPDATE so concurrent checkouts cannot
oversell: the decrement only applies while ``stock >= quantity`` still holds
at write time. The ledger never commits; callers own the transaction, which
lets checkout reserve several lines and roll all of them back together.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import InsufficientStockError, InvalidQuantityError, ProductNotFoundError
from marketplace.models.product import Product

logger = logging.getLogger(__name__)


class InventoryLedger:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def reserve(self, product_id: int, quantity: int) -> int:
        """
        Atomically take ``quantity`` units of a product.

        Args:
            product_id: Product to reserve from
            quantity: Units to take (>= 1)

        Returns:
            Remaining stock after the decrement

        Raises:
            InvalidQuantityError: quantity < 1
            ProductNotFoundError: no such product
            InsufficientStockError: not enough stock, or the product is disabled
        """
        if quantity < 1:
            raise InvalidQuantityError(f"Quantity must be at least 1, got {quantity}")

        stmt = (
            update(Product)
            .where(
                Product.id == product_id,
                Product.stock >= quantity,
                Product.in_stock.is_(True),
            )
            .values(stock=Product.stock - quantity)
            .returning(Product.stock)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        remaining = result.scalar_one_or_none()

        if remaining is None:
            await self._raise_reservation_failure(product_id, quantity)

        logger.debug(f"Reserved {quantity} of product {product_id}; {remaining} left")
        return remaining

    async def release(self, product_id: int, quantity: int) -> None:
        """
        Return ``quantity`` units to stock (cancellation path).

        A missing product is logged, not raised.
        """
        if quantity < 1:
            return

        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            logger.warning(f"Release of {quantity} units skipped: product {product_id} no longer exists")
        else:
            logger.debug(f"Released {quantity} of product {product_id}")

    async def set_stock(self, product_id: int, stock: int) -> None:
        """Seller restock or stock correction."""
        if stock < 0:
            raise InvalidQuantityError(f"Stock cannot be negative, got {stock}")

        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock=stock)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            raise ProductNotFoundError(f"Product with ID {product_id} not found")

    async def available(self, product_id: int) -> int:
        stock = await self.db.scalar(select(Product.stock).where(Product.id == product_id))
        if stock is None:
            raise ProductNotFoundError(f"Product with ID {product_id} not found")
        return stock

    async def _raise_reservation_failure(self, product_id: int, quantity: int) -> None:
        row = (await self.db.execute(
            select(Product.stock, Product.in_stock).where(Product.id == product_id)
        )).first()

        if row is None:
            raise ProductNotFoundError(f"Product with ID {product_id} not found")

        stock, in_stock = row
        if not in_stock:
            reason = f"Product {product_id} is not available for purchase"
        else:
            reason = f"Only {stock} unit(s) of product {product_id} left, {quantity} requested"
        raise InsufficientStockError(reason, product_id=product_id, requested=quantity, available=stock if in_stock else 0)
