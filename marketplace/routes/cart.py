"""Buyer cart endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.enums import ActorRole
from marketplace.core.security import Actor, require_roles
from marketplace.dependencies import get_db
from marketplace.schemas.cart import CartItemAdd, CartItemUpdate, CartRead
from marketplace.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])

buyer_only = require_roles(ActorRole.BUYER)


async def _cart_response(service: CartService, buyer_id: int) -> CartRead:
    return CartRead.model_validate(await service.snapshot(buyer_id))


@router.get("", response_model=CartRead)
async def get_cart(actor: Actor = Depends(buyer_only), db: AsyncSession = Depends(get_db)):
    return await _cart_response(CartService(db), actor.id)


@router.post("", response_model=CartRead)
async def add_to_cart(
    item: CartItemAdd,
    actor: Actor = Depends(buyer_only),
    db: AsyncSession = Depends(get_db),
):
    """Adding a product already in the cart increases its quantity."""
    service = CartService(db)
    await service.add_or_update(actor.id, item.product_id, item.quantity, increment=True)
    return await _cart_response(service, actor.id)


@router.put("/{product_id}", response_model=CartRead)
async def set_cart_quantity(
    product_id: int,
    item: CartItemUpdate,
    actor: Actor = Depends(buyer_only),
    db: AsyncSession = Depends(get_db),
):
    service = CartService(db)
    await service.add_or_update(actor.id, product_id, item.quantity)
    return await _cart_response(service, actor.id)


@router.delete("/{product_id}", response_model=CartRead)
async def remove_from_cart(
    product_id: int,
    actor: Actor = Depends(buyer_only),
    db: AsyncSession = Depends(get_db),
):
    service = CartService(db)
    await service.remove(actor.id, product_id)
    return await _cart_response(service, actor.id)
