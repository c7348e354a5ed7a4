"""Cart request and response schemas."""

from typing import List

from .base import BaseSchema, Money


class CartItemAdd(BaseSchema):
    product_id: int
    quantity: int = 1


class CartItemUpdate(BaseSchema):
    quantity: int


class CartLineRead(BaseSchema):
    product_id: int
    product_name: str
    seller_id: int
    price: Money
    quantity: int
    stock: int
    in_stock: bool
    line_total: Money


class CartRead(BaseSchema):
    buyer_id: int
    lines: List[CartLineRead] = []
    subtotal: Money
    item_count: int
    delivery_fee: Money
    amount_payable: Money
