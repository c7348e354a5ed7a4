"""
Purpose: Seller-facing catalogue management.

Role: Owns product rows except ``stock``, which is delegated to the
inventory ledger so every stock write goes through one place.

Key features of this service:
- Sellers can only modify their own products
- Deleting a product that appears in any order only disables it, so order
  history keeps a valid product reference
- Returns pydantic schemas built with ``model_to_schema``
"""

import logging
from typing import List, Tuple

from sqlalchemy import select, exists, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import BaseServiceError, ForbiddenError, InvalidInputError, ProductNotFoundError
from marketplace.core.utils import model_to_schema, models_to_schemas
from marketplace.models.cart import CartLine
from marketplace.models.order import OrderItem
from marketplace.models.product import Product
from marketplace.schemas.product import ProductCreate, ProductRead, ProductUpdate
from marketplace.services.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)


def _validate_fields(data: dict) -> None:
    if "name" in data and (data["name"] is None or not data["name"].strip()):
        raise InvalidInputError("Product name is required")
    if "price" in data and (data["price"] is None or data["price"] <= 0):
        raise InvalidInputError("Price must be greater than 0")
    if data.get("stock") is not None and data["stock"] < 0:
        raise InvalidInputError("Stock cannot be negative")


class ProductService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = InventoryLedger(db)

    async def create_product(self, seller_id: int, product_data: ProductCreate) -> ProductRead:
        """
        Creates a product owned by ``seller_id``.

        Args:
            seller_id: Owning seller
            product_data: Validated product data

        Returns:
            The created product
        """
        _validate_fields(product_data.model_dump())

        try:
            product = Product(seller_id=seller_id, **product_data.model_dump())
            self.db.add(product)
            await self.db.commit()
            await self.db.refresh(product)
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        logger.info(f"Seller {seller_id} created product {product.id} ({product.name}) with stock {product.stock}")
        return await model_to_schema(product, ProductRead)

    async def get_product(self, product_id: int) -> ProductRead:
        """
        Retrieves a product by ID.

        Raises:
            ProductNotFoundError: If product not found
        """
        product = await self._get_model(product_id)
        return await model_to_schema(product, ProductRead)

    async def list_seller_products(self, seller_id: int) -> List[ProductRead]:
        query = (
            select(Product)
            .where(Product.seller_id == seller_id)
            .order_by(Product.created_at.desc(), Product.id.desc())
        )
        products = (await self.db.execute(query)).scalars().all()
        return await models_to_schemas(products, ProductRead)

    async def update_product(self, seller_id: int, product_id: int, product_data: ProductUpdate) -> ProductRead:
        """
        Updates a product's details. Only the owner may update.

        Stock, when present, is applied through ``InventoryLedger.set_stock``.
        """
        product = await self._get_model(product_id)
        self._check_owner(product, seller_id)

        update_data = product_data.model_dump(exclude_unset=True)
        _validate_fields(update_data)
        new_stock = update_data.pop("stock", None)

        try:
            for key, value in update_data.items():
                setattr(product, key, value)
            await self.db.flush()

            if new_stock is not None:
                await self.ledger.set_stock(product_id, new_stock)

            await self.db.commit()
        except (BaseServiceError, SQLAlchemyError):
            await self.db.rollback()
            raise

        product = await self._get_model(product_id)
        logger.info(f"Seller {seller_id} updated product {product_id}: {sorted(product_data.model_fields_set)}")
        return await model_to_schema(product, ProductRead)

    async def delete_product(self, seller_id: int, product_id: int) -> Tuple[bool, ProductRead]:
        """
        Removes a product from sale.

        Returns:
            (hard_deleted, product as it was). Products with order history are
            disabled (``in_stock = False``) rather than deleted.
        """
        product = await self._get_model(product_id)
        self._check_owner(product, seller_id)
        snapshot = await model_to_schema(product, ProductRead)

        has_history = await self.db.scalar(select(exists().where(OrderItem.product_id == product_id)))

        try:
            if has_history:
                product.in_stock = False
                await self.db.commit()
                snapshot = await model_to_schema(await self._get_model(product_id), ProductRead)
                logger.info(f"Product {product_id} has order history; disabled instead of deleted")
            else:
                await self.db.execute(delete(CartLine).where(CartLine.product_id == product_id))
                await self.db.delete(product)
                await self.db.commit()
                logger.info(f"Product {product_id} deleted by seller {seller_id}")
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        return (not has_history, snapshot)

    async def _get_model(self, product_id: int) -> Product:
        product = await self.db.scalar(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        if product is None:
            raise ProductNotFoundError(f"Product with ID {product_id} not found")
        return product

    @staticmethod
    def _check_owner(product: Product, seller_id: int) -> None:
        if product.seller_id != seller_id:
            raise ForbiddenError(f"Product {product.id} does not belong to seller {seller_id}")
