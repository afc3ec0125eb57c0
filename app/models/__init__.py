"""
SQLAlchemy ORM Models for the EasyDrive booking API.

This module exports all domain models and enums.
"""

# Enums
from app.models.enums import (
    OrderStatus,
    PaymentStatus,
    ServiceType,
    PricingStatus,
    DraftSource,
    StaffRole,
)

# Base
from app.models.base import BaseModel, TimestampMixin, UUIDPrimaryKeyMixin

# Domain Models
from app.models.order import Order, OrderEvent
from app.models.receipt import Receipt
from app.models.staff import StaffProfile, BillingProfile

__all__ = [
    # Enums
    "OrderStatus",
    "PaymentStatus",
    "ServiceType",
    "PricingStatus",
    "DraftSource",
    "StaffRole",
    # Base
    "BaseModel",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    # Domain Models
    "Order",
    "OrderEvent",
    "Receipt",
    "StaffProfile",
    "BillingProfile",
]
