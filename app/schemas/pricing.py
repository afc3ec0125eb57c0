"""
Pricing table schemas.
"""
from pydantic import Field

from app.schemas.base import BaseSchema


class RegionPriceResponse(BaseSchema):
    """A region with its effective price."""
    region: str
    total_price: int
    base_price: int
    overridden: bool = False
    days_min: int
    days_max: int


class PricingOverrides(BaseSchema):
    """Region name to replacement total price."""
    overrides: dict[str, int] = Field(default_factory=dict)


class PricingOverrideSet(BaseSchema):
    total_price: int = Field(..., gt=0)
