# marketplace/services/analytics_service.py
"""
Seller Analytics Service

Read-only projection of orders containing a seller's products. Every figure
uses only the seller's own lines of a multi-seller order.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Union

from sqlalchemy import select, exists
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.core.enums import OrderStatus, TimeRange
from marketplace.core.exceptions import InvalidInputError
from marketplace.core.utils import to_money, utcnow
from marketplace.models.order import Order, OrderItem

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
TOP_PRODUCTS_LIMIT = 5
MONTHS_OF_HISTORY = 12


@dataclass
class SellerOrderSummary:
    order_id: int
    status: OrderStatus
    created_at: datetime
    delivered_at: Optional[datetime]
    item_count: int
    seller_total: Decimal


@dataclass
class ProductSales:
    product_id: int
    name: str
    quantity: int = 0
    revenue: Decimal = ZERO


@dataclass
class MonthlyRevenue:
    month: str
    revenue: Decimal
    orders: int


@dataclass
class SellerAnalytics:
    seller_id: int
    time_range: TimeRange
    since: datetime
    total_orders: int
    status_counts: Dict[str, int]
    total_revenue: Decimal
    potential_revenue: Decimal
    completion_rate: float
    average_order_value: Decimal
    top_products: List[ProductSales] = field(default_factory=list)
    monthly_revenue: List[MonthlyRevenue] = field(default_factory=list)
    orders: List[SellerOrderSummary] = field(default_factory=list)


def parse_time_range(value: Union[str, TimeRange, None]) -> TimeRange:
    """'7d' | '30d' | '90d' | '1y'; None means the 30 day default."""
    if value is None or value == "":
        return TimeRange.LAST_30_DAYS
    try:
        return TimeRange(value)
    except ValueError:
        raise InvalidInputError(
            f"Unknown time range '{value}'. Expected one of: {', '.join(r.value for r in TimeRange)}"
        )


def _month_starts(now: datetime, count: int) -> List[datetime]:
    """First day of the last ``count`` months, oldest first, current month last."""
    starts = []
    year, month = now.year, now.month
    for _ in range(count):
        starts.append(datetime(year, month, 1))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(starts))


class SellerAnalyticsService:
    """
    Service for computing seller earnings.

    Key features:
    - Status breakdown of the seller's orders in the window
    - Revenue from delivered orders and potential revenue from open ones
    - Top products by delivered revenue
    - Monthly delivered revenue for the last year
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def seller_earnings(
        self,
        seller_id: int,
        time_range: Union[str, TimeRange, None] = None,
        now: Optional[datetime] = None,
    ) -> SellerAnalytics:
        """
        Args:
            seller_id: Seller whose lines are aggregated
            time_range: Window on order creation time
            now: Reference time (defaults to current UTC)

        Raises:
            InvalidInputError: unknown time range
        """
        window = parse_time_range(time_range)
        now = now or utcnow()
        since = now - timedelta(days=window.days)

        query = (
            select(Order)
            .options(selectinload(Order.items))
            .where(
                exists().where(OrderItem.order_id == Order.id, OrderItem.seller_id == seller_id),
                Order.created_at >= since,
            )
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        orders = (await self.db.execute(query)).scalars().all()

        summaries: List[SellerOrderSummary] = []
        status_counts = {status.value: 0 for status in OrderStatus}
        product_sales: Dict[int, ProductSales] = {}

        for order in orders:
            own_items = [item for item in order.items if item.seller_id == seller_id]
            seller_total = to_money(sum((item.price * item.quantity for item in own_items), ZERO))
            status_counts[order.status.value] += 1

            summaries.append(SellerOrderSummary(
                order_id=order.id,
                status=order.status,
                created_at=order.created_at,
                delivered_at=order.delivered_at,
                item_count=sum(item.quantity for item in own_items),
                seller_total=seller_total,
            ))

            if order.status == OrderStatus.DELIVERED:
                for item in own_items:
                    sales = product_sales.setdefault(
                        item.product_id, ProductSales(product_id=item.product_id, name=item.product_name)
                    )
                    sales.quantity += item.quantity
                    sales.revenue = to_money(sales.revenue + item.price * item.quantity)

        delivered = [s for s in summaries if s.status == OrderStatus.DELIVERED]
        total_revenue = to_money(sum((s.seller_total for s in delivered), ZERO))
        potential_revenue = to_money(sum(
            (s.seller_total for s in summaries if s.status != OrderStatus.CANCELLED), ZERO
        ))
        total_orders = len(summaries)

        top_products = sorted(product_sales.values(), key=lambda p: (-p.revenue, p.product_id))[:TOP_PRODUCTS_LIMIT]

        logger.debug(f"Analytics for seller {seller_id} over {window.value}: {total_orders} order(s)")

        return SellerAnalytics(
            seller_id=seller_id,
            time_range=window,
            since=since,
            total_orders=total_orders,
            status_counts=status_counts,
            total_revenue=total_revenue,
            potential_revenue=potential_revenue,
            completion_rate=round(len(delivered) / total_orders * 100, 1) if total_orders else 0.0,
            average_order_value=to_money(total_revenue / len(delivered)) if delivered else to_money(0),
            top_products=top_products,
            monthly_revenue=self._monthly_revenue(delivered, now),
            orders=summaries,
        )

    @staticmethod
    def _monthly_revenue(delivered: List[SellerOrderSummary], now: datetime) -> List[MonthlyRevenue]:
        months = []
        for start in _month_starts(now, MONTHS_OF_HISTORY):
            end = datetime(start.year + 1, 1, 1) if start.month == 12 else datetime(start.year, start.month + 1, 1)
            in_month = [s for s in delivered if s.delivered_at and start <= s.delivered_at < end]
            months.append(MonthlyRevenue(
                month=start.strftime("%b %Y"),
                revenue=to_money(sum((s.seller_total for s in in_month), ZERO)),
                orders=len(in_month),
            ))
        return months
