"""
Base schemas with common functionality.
"""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, PlainSerializer
from typing import Annotated

from marketplace.core.utils import to_money

# Amounts leave the API as two-decimal strings ("250.00")
Money = Annotated[Decimal, PlainSerializer(lambda value: str(to_money(value)), return_type=str, when_used="json")]


class BaseSchema(BaseModel):
    """Base schema for all request/response models; reads ORM rows and service dataclasses"""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True
    )


class TimestampedSchema(BaseSchema):
    """Base schema for models with timestamp fields"""
    created_at: datetime
    updated_at: datetime
