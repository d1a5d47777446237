"""
Base schemas and shared helpers for all models.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from pydantic import BaseModel, ConfigDict


CENT = Decimal("0.01")


class BaseSchema(BaseModel):
    """
    Base for all schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )


class FrozenSchema(BaseSchema):
    """Immutable schema (catalog snapshots, emitted cart lines)."""
    model_config = ConfigDict(frozen=True)


def to_money(value: Union[Decimal, int, float, str, None]) -> Decimal:
    """
    Quantize a value to currency precision (2 places, half-up).

    Floats go through str() so 0.1 stays 0.10 instead of its binary expansion.
    """
    if value is None:
        return Decimal("0.00")
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
