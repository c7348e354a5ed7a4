"""Checkout, order reads, status changes and buyer tracking."""
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.enums import ActorRole
from marketplace.core.security import Actor, get_current_actor, require_roles
from marketplace.dependencies import get_db
from marketplace.schemas.order import (
    CheckoutRequest,
    OrderRead,
    StatusUpdate,
    StatusUpdateResult,
    TrackingRead,
)
from marketplace.services.order_service import OrderService
from marketplace.services.tracking_service import TrackingService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/orders", tags=["orders"])

buyer_only = require_roles(ActorRole.BUYER)


@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
async def checkout(
    request: CheckoutRequest,
    actor: Actor = Depends(buyer_only),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService(db).checkout(actor.id, request.shipping_address, request.shipping_state)


@router.get("", response_model=List[OrderRead])
async def list_my_orders(actor: Actor = Depends(buyer_only), db: AsyncSession = Depends(get_db)):
    return await OrderService(db).list_buyer_orders(actor.id)


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService(db).get_order(order_id, actor.role, actor.id)


@router.patch("/{order_id}/status", response_model=StatusUpdateResult)
async def update_order_status(
    order_id: int,
    update: StatusUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    result = await OrderService(db).transition(order_id, actor.role, actor.id, update.status)
    return StatusUpdateResult.model_validate(result)


@router.get("/{order_id}/track", response_model=TrackingRead)
async def track_order(
    order_id: int,
    actor: Actor = Depends(buyer_only),
    db: AsyncSession = Depends(get_db),
):
    return TrackingRead.model_validate(await TrackingService(db).track(order_id, actor.id))
