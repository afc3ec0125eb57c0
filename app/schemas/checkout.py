"""
Checkout schemas.
"""
from pydantic import Field

from app.schemas.base import BaseSchema


class CheckoutSessionRequest(BaseSchema):
    order_code: str = Field(..., min_length=1, max_length=32)


class CheckoutSessionResponse(BaseSchema):
    """Hosted checkout page the browser is redirected to."""
    url: str
    session_id: str


class WebhookAck(BaseSchema):
    received: bool = True
    handled: bool = False
    detail: str = ""
