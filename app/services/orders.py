"""
Order Lifecycle Manager.

Every status change appends an ``order_events`` row and then updates the
denormalized ``orders.status`` column in the same transaction, so the
current status always equals the newest event. Payment transitions are
conditional single-statement updates keyed by order id:

    unpaid/failed -> pending      (checkout started)
    anything but paid -> paid     (gateway confirmed; duplicates are no-ops)
    pending -> failed

``paid`` is never downgraded, so a late client-side "pending" write cannot
undo a webhook that already arrived.
"""
import logging
import secrets
import string
from datetime import datetime, timezone
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import OrderStatus, PaymentStatus
from app.models.order import Order, OrderEvent
from app.schemas.draft import DocumentMeta
from app.schemas.order import CustomerInfo
from app.schemas.quote import Quote
from app.schemas.shipment_form import ShipmentForm

logger = logging.getLogger(__name__)

ORDER_CODE_PREFIX = "EDC"
ORDER_CODE_ALPHABET = string.digits + string.ascii_uppercase
MAX_CODE_ATTEMPTS = 5
CORRECTION_NOTE = "Corrected after delivery"


class OrderNotFoundError(Exception):
    """Order does not exist."""
    pass


class InvalidQuoteError(ValueError):
    """Quote cannot be checked out (non-positive price)."""
    pass


class OrderCodeConflictError(Exception):
    """A concurrently created order took the same code."""
    pass


def generate_order_code(now: Optional[datetime] = None) -> str:
    """``EDC-YYYYMMDD-XXXXXX`` with a 6-character base-36 suffix."""
    now = now or datetime.now(timezone.utc)
    suffix = "".join(secrets.choice(ORDER_CODE_ALPHABET) for _ in range(6))
    return f"{ORDER_CODE_PREFIX}-{now:%Y%m%d}-{suffix}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderLifecycleManager:
    """Order writes and reads for one database session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # =========================================================================
    # Creation
    # =========================================================================

    async def _unused_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_order_code()
            taken = await self.session.scalar(
                select(func.count()).select_from(Order).where(Order.order_code == code)
            )
            if not taken:
                return code
            logger.warning("Order code collision on %s, regenerating", code)
        raise OrderCodeConflictError("Could not allocate a unique order code")

    async def create_order(
        self,
        owner: str,
        form: ShipmentForm,
        quote: Quote,
        customer: Optional[CustomerInfo] = None,
        documents: Sequence[DocumentMeta] = (),
    ) -> Order:
        """
        Persist a confirmed order with its initial ``Scheduled`` event.

        Raises:
            InvalidQuoteError: price is not positive
            OrderCodeConflictError: code could not be made unique
        """
        if quote.price_before_tax is None or quote.price_before_tax <= 0:
            raise InvalidQuoteError("Quote price must be greater than zero")

        customer = customer or CustomerInfo()
        now = _utcnow()

        order = Order(
            order_code=await self._unused_code(),
            user_id=owner,
            customer_name=customer.name or form.buying_dealership.contact_name,
            customer_email=customer.email,
            route_area=quote.region,
            service_type=form.service.service_type,
            vehicle_type=form.service.vehicle_type,
            price_before_tax=quote.price_before_tax,
            currency=quote.currency,
            fulfillment_days_min=quote.fulfillment_days_min,
            fulfillment_days_max=quote.fulfillment_days_max,
            status=OrderStatus.SCHEDULED,
            payment_status=PaymentStatus.UNPAID,
            form_data=form.model_dump(mode="json"),
            quote_data=quote.model_dump(mode="json"),
            documents=[d.model_dump(mode="json") for d in documents],
        )
        self.session.add(order)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise OrderCodeConflictError("Order code already in use") from e

        self.session.add(OrderEvent(
            order_id=order.id,
            status=OrderStatus.SCHEDULED,
            note="Order created",
            at=now,
        ))
        await self.session.flush()

        logger.info("Order %s created for %s (%s %s)",
                    order.order_code, owner, order.price_before_tax, order.currency)
        return order

    # =========================================================================
    # Payment transitions
    # =========================================================================

    async def mark_pending(self, order_id: UUID, session_id: Optional[str] = None) -> bool:
        """Checkout started. Only moves from unpaid or failed."""
        values = {"payment_status": PaymentStatus.PENDING}
        if session_id:
            values["stripe_session_id"] = session_id
        result = await self.session.execute(
            update(Order)
            .where(
                Order.id == order_id,
                Order.payment_status.in_([PaymentStatus.UNPAID, PaymentStatus.FAILED]),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        moved = result.rowcount == 1
        if moved:
            logger.info("Order %s payment pending", order_id)
        return moved

    async def mark_paid(self, order_id: UUID, payment_intent_id: Optional[str] = None) -> bool:
        """
        Gateway confirmed payment.

        Resets delivery status to ``Scheduled`` and appends "Payment received".
        Returns False without writing when the order was already paid.
        """
        result = await self.session.execute(
            update(Order)
            .where(Order.id == order_id, Order.payment_status != PaymentStatus.PAID)
            .values(
                payment_status=PaymentStatus.PAID,
                status=OrderStatus.SCHEDULED,
                stripe_payment_intent_id=payment_intent_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.info("Order %s already paid, ignoring duplicate confirmation", order_id)
            return False

        self.session.add(OrderEvent(
            order_id=order_id,
            status=OrderStatus.SCHEDULED,
            note="Payment received",
            at=_utcnow(),
        ))
        await self.session.flush()
        logger.info("Order %s paid", order_id)
        return True

    async def mark_failed(self, order_id: UUID) -> bool:
        """Checkout failed or expired. Only moves from pending."""
        result = await self.session.execute(
            update(Order)
            .where(Order.id == order_id, Order.payment_status == PaymentStatus.PENDING)
            .values(payment_status=PaymentStatus.FAILED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # =========================================================================
    # Delivery status
    # =========================================================================

    async def advance_status(
        self,
        order_id: UUID,
        status: OrderStatus,
        note: Optional[str] = None,
    ) -> Order:
        """
        Staff status change. Any status may follow any other.

        Moving an order out of a terminal status is an administrative
        correction; the event is labelled as such when no note is given.

        Raises:
            OrderNotFoundError: order does not exist
        """
        order = await self.get_order(order_id, refresh=True)
        current = OrderStatus(order.status)
        if current.is_terminal and status != current:
            logger.warning("Order %s reopened from %s to %s", order_id, current.value, OrderStatus(status).value)
            note = note or CORRECTION_NOTE

        self.session.add(OrderEvent(order_id=order_id, status=status, note=note, at=_utcnow()))
        await self.session.flush()
        await self.session.execute(
            update(Order)
            .where(Order.id == order_id)
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        logger.info("Order %s -> %s", order_id, OrderStatus(status).value)
        return await self.get_order(order_id, refresh=True)

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_order(self, order_id: UUID, refresh: bool = False) -> Order:
        stmt = select(Order).where(Order.id == order_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        order = (await self.session.execute(stmt)).scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order

    async def get_by_code(self, order_code: str, refresh: bool = False) -> Optional[Order]:
        stmt = select(Order).where(Order.order_code == order_code)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def get_timeline(self, order_id: UUID) -> list[OrderEvent]:
        """Newest first; insertion id breaks ties between equal timestamps."""
        result = await self.session.execute(
            select(OrderEvent)
            .where(OrderEvent.order_id == order_id)
            .order_by(OrderEvent.at.desc(), OrderEvent.id.desc())
        )
        return list(result.scalars().all())

    async def list_for_user(self, user_id: str, limit: int = 50, offset: int = 0) -> list[Order]:
        result = await self.session.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_all(
        self,
        status: Optional[OrderStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Order], int]:
        """Staff listing with optional filters; returns (items, total)."""
        query = select(Order)
        if status is not None:
            query = query.where(Order.status == status)
        if payment_status is not None:
            query = query.where(Order.payment_status == payment_status)

        total = await self.session.scalar(
            select(func.count()).select_from(query.subquery())
        ) or 0

        result = await self.session.execute(
            query.order_by(Order.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total
