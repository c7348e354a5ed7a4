"""
Utility functions for the application.
"""
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Type, TypeVar, List, Any

from pydantic import BaseModel

T = TypeVar('T', bound=BaseModel)

CENTS = Decimal("0.01")


def utcnow() -> datetime:
    """Naive UTC timestamp; every stored datetime uses this convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_money(value: Any) -> Decimal:
    """Coerce to a two-place Decimal."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def order_reference(order_id: int) -> str:
    """Short human-facing order reference used in notification text."""
    return f"#{order_id:08d}"


async def model_to_schema(db_model: Any, schema_class: Type[T]) -> T:
    """
    Convert a SQLAlchemy model instance to a Pydantic schema instance.

    Args:
        db_model: SQLAlchemy model instance
        schema_class: Pydantic schema class

    Returns:
        Instance of the Pydantic schema
    """
    return schema_class.model_validate(db_model, from_attributes=True)


async def models_to_schemas(db_models: List[Any], schema_class: Type[T]) -> List[T]:
    """
    Convert a list of SQLAlchemy model instances to a list of Pydantic schema instances.
    """
    return [await model_to_schema(model, schema_class) for model in db_models]
