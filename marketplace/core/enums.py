"""
Shared enums and constants used across the application.
"""

from enum import Enum


class OrderStatus(str, Enum):
    """Order lifecycle states used in both models and schemas"""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


class ActorRole(str, Enum):
    """Roles resolved by the upstream identity gateway"""
    BUYER = "BUYER"
    SELLER = "SELLER"
    DELIVERY_AGENT = "DELIVERY_AGENT"
    ADMIN = "ADMIN"


class NotificationType(str, Enum):
    ORDER_CONFIRMATION = "ORDER_CONFIRMATION"
    ORDER_STATUS = "ORDER_STATUS"
    NEW_ORDER = "NEW_ORDER"
    DELIVERY_UPDATE = "DELIVERY_UPDATE"


class TimeRange(str, Enum):
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    LAST_YEAR = "1y"

    @property
    def days(self) -> int:
        return {"7d": 7, "30d": 30, "90d": 90, "1y": 365}[self.value]


class StepState(str, Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    PENDING = "pending"
