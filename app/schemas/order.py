"""
Order schemas.
"""
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import Field, model_validator

from app.models.enums import OrderStatus, PaymentStatus, ServiceType
from app.schemas.base import BaseSchema, Coordinates, TimestampSchema
from app.schemas.quote import Quote, Totals
from app.schemas.shipment_form import ShipmentForm


class Disclosures(BaseSchema):
    """Customer acknowledgements required before an order is placed."""
    timelines: bool = False
    payments: bool = False
    in_transit: bool = False

    @property
    def all_accepted(self) -> bool:
        return self.timelines and self.payments and self.in_transit


class CustomerInfo(BaseSchema):
    name: Optional[str] = Field(None, max_length=200)
    email: Optional[str] = Field(None, max_length=320)
    phone: Optional[str] = Field(None, max_length=50)


class OrderCreate(BaseSchema):
    """
    Request body for placing an order.

    Exactly one of ``draft_id`` or ``form`` supplies the shipment; the price
    is always recomputed from it.
    """
    draft_id: Optional[str] = None
    form: Optional[ShipmentForm] = None
    pickup: Optional[Coordinates] = None
    disclosures: Disclosures = Field(default_factory=Disclosures)
    customer: Optional[CustomerInfo] = None

    @model_validator(mode="after")
    def one_source(self) -> "OrderCreate":
        if (self.draft_id is None) == (self.form is None):
            raise ValueError("Provide exactly one of draft_id or form")
        return self


class OrderEventResponse(BaseSchema):
    status: OrderStatus
    note: Optional[str] = None
    at: datetime


class OrderResponse(TimestampSchema):
    """Order summary."""
    id: UUID
    order_code: str
    user_id: str
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    route_area: Optional[str] = None
    service_type: ServiceType
    vehicle_type: str
    price_before_tax: int
    currency: str
    status: OrderStatus
    payment_status: PaymentStatus
    fulfillment_days_min: Optional[int] = None
    fulfillment_days_max: Optional[int] = None
    totals: Optional[Totals] = None


class OrderDetailResponse(OrderResponse):
    """Order with form and quote snapshots and its timeline."""
    form_data: Optional[dict[str, Any]] = None
    quote_data: Optional[Quote] = None
    events: list[OrderEventResponse] = Field(default_factory=list)


class OrderStatusUpdate(BaseSchema):
    """Staff status change."""
    status: OrderStatus
    note: Optional[str] = Field(None, max_length=500)


class TrackedOrder(TimestampSchema):
    id: UUID
    order_code: str
    status: OrderStatus


class TrackingResponse(BaseSchema):
    """Public tracking view: no customer or payment details."""
    order: TrackedOrder
    events: list[OrderEventResponse]
