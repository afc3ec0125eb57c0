"""
Order and order-event models.

An order's ``status`` column is a denormalized copy of its newest event; the
``order_events`` table is append-only and its integer key preserves insertion
order for audit.
"""
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import JSON, BigInteger, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base
from app.models.base import BaseModel
from app.models.enums import OrderStatus, PaymentStatus, ServiceType

JSONType = JSON().with_variant(JSONB(), "postgresql")

# SQLite only autoincrements INTEGER PRIMARY KEY
EventKeyType = BigInteger().with_variant(Integer(), "sqlite")


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class Order(BaseModel):
    """
    A confirmed, payable shipment request.

    ``order_code`` is human-readable (``EDC-YYYYMMDD-XXXXXX``) and unique at
    the database level; creation retries on collision.
    """
    __tablename__ = "orders"

    # =========================================================================
    # Identity & Ownership
    # =========================================================================
    order_code: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
        index=True,
    )

    # Identity-provider subject of the owning customer
    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )

    customer_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    customer_email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)

    # =========================================================================
    # Service & Pricing
    # =========================================================================
    route_area: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Region label the price was taken from",
    )

    service_type: Mapped[ServiceType] = mapped_column(
        Enum(ServiceType, name="service_type", values_callable=_enum_values),
        nullable=False,
        default=ServiceType.PICKUP,
    )

    vehicle_type: Mapped[str] = mapped_column(String(20), nullable=False, default="standard")

    price_before_tax: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Whole currency units",
    )

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="CAD")

    fulfillment_days_min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    fulfillment_days_max: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # =========================================================================
    # Lifecycle
    # =========================================================================
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        nullable=False,
        default=OrderStatus.SCHEDULED,
    )

    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status", values_callable=_enum_values),
        nullable=False,
        default=PaymentStatus.UNPAID,
    )

    # =========================================================================
    # Snapshots
    # =========================================================================
    form_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    quote_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    documents: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(JSONType, nullable=True)

    # =========================================================================
    # Payment Gateway References
    # =========================================================================
    stripe_session_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    stripe_payment_intent_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Order(code={self.order_code!r}, status={self.status.value}, "
            f"payment={self.payment_status.value})>"
        )


class OrderEvent(Base):
    """Immutable status-timeline entry."""
    __tablename__ = "order_events"

    id: Mapped[int] = mapped_column(EventKeyType, primary_key=True, autoincrement=True)

    order_id: Mapped[UUID] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        nullable=False,
    )

    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<OrderEvent(order={self.order_id}, status={self.status.value}, at={self.at})>"
