"""Delivery fee schedule for buyers and per-delivery earnings for agents."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from marketplace.core.config import Settings, get_settings
from marketplace.core.utils import to_money


@dataclass(frozen=True)
class AgentEarning:
    amount: Decimal
    fee_type: str
    description: str


# (upper bound exclusive, earning, fee type, description); the last tier is open-ended
_EARNING_TIERS = [
    (Decimal("500"), Decimal("65"), "standard", "Delivery Fee + Commission"),
    (Decimal("1000"), Decimal("35"), "free_delivery", "Free Delivery Commission"),
    (Decimal("2000"), Decimal("50"), "premium", "Premium Order Commission"),
    (None, Decimal("75"), "high_value", "High-Value Order Commission"),
]


def delivery_fee_for(subtotal, settings: Optional[Settings] = None) -> Decimal:
    """Fee charged to the buyer: free at or above the threshold."""
    settings = settings or get_settings()
    if to_money(subtotal) >= settings.FREE_DELIVERY_THRESHOLD:
        return to_money(0)
    return to_money(settings.STANDARD_DELIVERY_FEE)


def agent_earning_for(order_total) -> AgentEarning:
    total = to_money(order_total)
    for upper, amount, fee_type, description in _EARNING_TIERS:
        if upper is None or total < upper:
            break
    return AgentEarning(amount=to_money(amount), fee_type=fee_type, description=description)
