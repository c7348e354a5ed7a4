"""
Schemas for product-related API endpoints.

Range checks (price > 0, stock >= 0) live in the product service so they
surface as InvalidInput errors rather than request validation failures.
"""

from decimal import Decimal
from typing import Optional

from pydantic import field_validator

from .base import BaseSchema, TimestampedSchema


class ProductValidationMixin(BaseSchema):
    """Shared validation for product payloads"""

    @field_validator('name', 'description', mode='before', check_fields=False)
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class ProductBase(ProductValidationMixin):
    name: str
    description: Optional[str] = None
    price: Decimal
    stock: int = 0
    in_stock: bool = True


class ProductCreate(ProductBase):
    """Model for creating a new product"""
    pass


class ProductUpdate(ProductValidationMixin):
    """Model for updating an existing product (PATCH). All fields are optional."""
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    stock: Optional[int] = None
    in_stock: Optional[bool] = None


class ProductRead(ProductBase, TimestampedSchema):
    """Model for reading a product"""
    id: int
    seller_id: int


class ProductDeleteResult(BaseSchema):
    deleted: bool
    disabled: bool
    product: ProductRead
