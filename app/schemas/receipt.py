"""
Receipt schemas.
"""
from datetime import datetime
from uuid import UUID

from app.schemas.base import BaseSchema


class ReceiptResponse(BaseSchema):
    id: UUID
    order_code: str
    text: str
    created_at: datetime
