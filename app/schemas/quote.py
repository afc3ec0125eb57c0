"""
Quote, route and totals schemas.
"""
from decimal import Decimal
from typing import Any, Optional

from pydantic import Field

from app.models.enums import PricingStatus
from app.schemas.base import BaseSchema, Coordinates
from app.schemas.shipment_form import ShipmentForm


class RouteEstimate(BaseSchema):
    """
    Result of the routing chain.

    ``provider`` is one of ``osrm``, ``mapbox`` or ``haversine``. Road
    providers report whole kilometers; the straight-line fallback keeps the
    unrounded distance so the estimate is priced from the exact figure.
    """
    distance_km: float = Field(..., ge=0)
    duration_min: int = Field(..., ge=0)
    provider: str
    geometry: Optional[dict[str, Any]] = None
    polyline: Optional[str] = None


class Quote(BaseSchema):
    """Priced answer for one shipment form."""
    price_before_tax: int = Field(..., gt=0, description="Whole currency units")
    pricing_status: PricingStatus
    region: Optional[str] = None
    currency: str = "CAD"

    distance_km: Optional[float] = Field(None, ge=0)
    duration_min: Optional[int] = Field(None, ge=0)
    provider: Optional[str] = None
    geometry: Optional[dict[str, Any]] = None
    polyline: Optional[str] = None

    fulfillment_days_min: int = Field(..., ge=0)
    fulfillment_days_max: int = Field(..., ge=0)


class Totals(BaseSchema):
    """Tax and grand total derived from a pre-tax subtotal."""
    currency: str = "CAD"
    subtotal: Decimal
    tax_rate: Decimal
    tax: Decimal
    total: Decimal
    tax_note: str


class QuoteRequest(BaseSchema):
    """Request body for pricing a form."""
    form: ShipmentForm
    pickup: Optional[Coordinates] = Field(
        None,
        description="Known pickup coordinates; geocoded from the form otherwise",
    )


class QuoteResponse(BaseSchema):
    quote: Quote
    totals: Totals
