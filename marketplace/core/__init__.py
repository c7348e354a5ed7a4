"""
Core module exports.
"""
from .enums import (
    OrderStatus,
    ActorRole,
    NotificationType,
    TimeRange,
    StepState
)

from .exceptions import (
    BaseServiceError,
    NotFoundError,
    ProductNotFoundError,
    OrderNotFoundError,
    AgentNotFoundError,
    ForbiddenError,
    InvalidTransitionError,
    InsufficientStockError,
    AlreadyClaimedError,
    ValidationError,
    InvalidInputError,
    InvalidQuantityError
)

from .utils import (
    utcnow,
    model_to_schema,
    models_to_schemas,
    order_reference
)
