"""Seller order views and earnings."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.enums import ActorRole, OrderStatus
from marketplace.core.security import Actor, require_roles
from marketplace.core.utils import to_money
from marketplace.dependencies import get_db
from marketplace.schemas.analytics import SellerAnalyticsRead
from marketplace.schemas.order import OrderItemRead, SellerOrderRead
from marketplace.services.analytics_service import SellerAnalyticsService
from marketplace.services.order_service import OrderService

router = APIRouter(prefix="/seller", tags=["seller"])

seller_only = require_roles(ActorRole.SELLER)


@router.get("/orders", response_model=List[SellerOrderRead])
async def list_seller_orders(
    status: Optional[OrderStatus] = Query(None, description="Filter by order status"),
    actor: Actor = Depends(seller_only),
    db: AsyncSession = Depends(get_db),
):
    rows = await OrderService(db).list_seller_orders(actor.id, status)
    return [
        SellerOrderRead(
            id=order.id,
            buyer_id=order.buyer_id,
            status=order.status,
            shipping_address=order.shipping_address,
            created_at=order.created_at,
            items=[OrderItemRead.model_validate(item) for item in items],
            seller_total=to_money(sum(item.line_total for item in items)),
        )
        for order, items in rows
    ]


@router.get("/analytics", response_model=SellerAnalyticsRead)
async def seller_analytics(
    time_range: Optional[str] = Query("30d", alias="range", description="7d, 30d, 90d or 1y"),
    actor: Actor = Depends(seller_only),
    db: AsyncSession = Depends(get_db),
):
    return SellerAnalyticsRead.model_validate(await SellerAnalyticsService(db).seller_earnings(actor.id, time_range))
