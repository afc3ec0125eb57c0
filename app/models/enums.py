"""
Enum type definitions for the booking API.

Order/payment enums map directly to PostgreSQL ENUM types created in the
baseline migration.
"""
from enum import Enum


class OrderStatus(str, Enum):
    """
    Delivery lifecycle status.

    Ordered: Scheduled -> Picked Up -> In Transit -> Out for Delivery -> Delivered.
    DELAYED is a side branch and is not terminal. Staff may set any status at
    any time; no skipping rules are enforced.
    """
    SCHEDULED = "Scheduled"
    PICKED_UP = "Picked Up"
    IN_TRANSIT = "In Transit"
    DELAYED = "Delayed"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"

    @property
    def is_terminal(self) -> bool:
        """Only DELIVERED ends the lifecycle."""
        return self == OrderStatus.DELIVERED


class PaymentStatus(str, Enum):
    """Payment status: unpaid -> pending -> paid, or pending -> failed -> pending."""
    UNPAID = "unpaid"
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class ServiceType(str, Enum):
    """One-way service direction."""
    PICKUP = "pickup"
    DELIVERY = "delivery"


class PricingStatus(str, Enum):
    """
    How a quote's price was obtained.

    - OFFICIAL: matched a fixed region price (or its override)
    - ESTIMATED: derived from routed/straight-line distance
    """
    OFFICIAL = "official"
    ESTIMATED = "estimated"


class DraftSource(str, Enum):
    """Where a draft came from."""
    MANUAL = "manual"
    BULK_EXTRACTED = "bulk-extracted"


class StaffRole(str, Enum):
    """Staff console roles."""
    ADMIN = "admin"
    EMPLOYEE = "employee"
