"""
Stripe hosted checkout and webhook handling.

Checkout is only ever started for an order that already exists; the order
moves to ``pending`` only after Stripe has returned a session. The webhook
verifies the signature before reading anything from the payload.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

import stripe
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import TokenClaims
from app.models.enums import PaymentStatus
from app.models.staff import BillingProfile
from app.schemas.checkout import CheckoutSessionResponse, WebhookAck
from app.services.orders import InvalidQuoteError, OrderLifecycleManager, OrderNotFoundError
from app.services.receipts import build_receipt_text, create_receipt_once
from app.services.totals import compute_totals, to_cents

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
CHECKOUT_FAILED = frozenset({
    "checkout.session.expired",
    "checkout.session.async_payment_failed",
})


class PaymentConfigError(RuntimeError):
    pass


class PaymentGatewayError(Exception):
    """Stripe rejected or failed the request; safe to retry."""
    pass


class WebhookSignatureError(Exception):
    pass


class OrderAccessError(Exception):
    """Order belongs to another user."""
    pass


class OrderAlreadyPaidError(Exception):
    pass


def _init_stripe() -> None:
    if not settings.stripe_secret_key:
        raise PaymentConfigError("STRIPE_SECRET_KEY is not configured")
    stripe.api_key = settings.stripe_secret_key
    stripe.api_version = settings.stripe_api_version


def _field(obj: Any, key: str) -> Any:
    """
    Read one field of a Stripe object (or plain mapping).

    Stripe objects are not dicts in current SDKs, so only subscription is
    relied on. Missing objects and absent keys read as None.
    """
    if obj is None:
        return None
    try:
        return obj[key]
    except (KeyError, TypeError):
        return None


# =============================================================================
# Billing profiles
# =============================================================================

async def _billing_profile(session: AsyncSession, user_id: str) -> Optional[BillingProfile]:
    return await session.scalar(select(BillingProfile).where(BillingProfile.user_id == user_id))


async def _upsert_billing_profile(session: AsyncSession, user_id: str, **fields: Any) -> None:
    profile = await _billing_profile(session, user_id)
    if profile is None:
        profile = BillingProfile(user_id=user_id)
        session.add(profile)
    for name, value in fields.items():
        setattr(profile, name, value)
    await session.flush()


async def _ensure_customer(session: AsyncSession, user: TokenClaims) -> Optional[str]:
    """
    Stripe customer for the user, created on first checkout.

    Lookup or creation problems fall back to checkout without a customer.
    """
    try:
        profile = await _billing_profile(session, user.user_id)
    except SQLAlchemyError as e:
        logger.warning("Billing profile lookup failed for %s: %s", user.user_id, e)
        return None
    if profile is not None and profile.stripe_customer_id:
        return profile.stripe_customer_id

    try:
        customer = await asyncio.to_thread(
            stripe.Customer.create,
            email=user.email or None,
            metadata={"user_id": user.user_id},
        )
    except stripe.StripeError as e:
        logger.warning("Stripe customer creation failed for %s: %s", user.user_id, e)
        return None

    customer_id = _field(customer, "id")
    if customer_id:
        await _upsert_billing_profile(session, user.user_id, stripe_customer_id=customer_id)
    return customer_id


# =============================================================================
# Checkout
# =============================================================================

async def create_checkout_session(
    session: AsyncSession,
    order_code: str,
    user: TokenClaims,
) -> CheckoutSessionResponse:
    """
    Start hosted checkout for one of the user's orders.

    Raises:
        PaymentConfigError: Stripe is not configured
        OrderNotFoundError: no such order code
        OrderAccessError: order belongs to someone else
        OrderAlreadyPaidError: nothing left to pay
        InvalidQuoteError: order amount is not positive
        PaymentGatewayError: Stripe failed; the order is left unchanged
    """
    _init_stripe()

    manager = OrderLifecycleManager(session)
    order = await manager.get_by_code(order_code)
    if order is None:
        raise OrderNotFoundError(f"Order {order_code} not found")
    if order.user_id != user.user_id:
        raise OrderAccessError("Forbidden")
    if order.payment_status == PaymentStatus.PAID:
        raise OrderAlreadyPaidError(f"Order {order_code} is already paid")
    if order.price_before_tax is None or order.price_before_tax <= 0:
        raise InvalidQuoteError("Invalid order amount")

    totals = compute_totals(order.price_before_tax, order.route_area, order.currency)
    currency = (order.currency or settings.currency).lower()
    base_url = settings.public_base_url.rstrip("/")

    customer_id = await _ensure_customer(session, user)

    params: dict[str, Any] = {
        "mode": "payment",
        "line_items": [
            {
                "quantity": 1,
                "price_data": {
                    "currency": currency,
                    "unit_amount": to_cents(totals.subtotal),
                    "product_data": {"name": f"EasyDrive Transport ({order.order_code})"},
                },
            },
            {
                "quantity": 1,
                "price_data": {
                    "currency": currency,
                    "unit_amount": to_cents(totals.tax),
                    "product_data": {
                        "name": f"Tax {totals.tax_note} ({totals.tax_rate * 100:.3f}%)",
                    },
                },
            },
        ],
        "success_url": f"{base_url}/?checkout=success&order={order.order_code}",
        "cancel_url": f"{base_url}/?checkout=cancel&order={order.order_code}",
        "metadata": {"order_id": str(order.id), "order_code": order.order_code},
    }
    if customer_id:
        params["customer"] = customer_id
        params["payment_intent_data"] = {"setup_future_usage": "off_session"}
    elif user.email:
        params["customer_email"] = user.email

    try:
        checkout = await asyncio.to_thread(stripe.checkout.Session.create, **params)
    except stripe.StripeError as e:
        logger.warning("Stripe checkout creation failed for %s: %s", order.order_code, e)
        raise PaymentGatewayError("Payment provider unavailable, please try again") from e

    session_id = _field(checkout, "id")
    await manager.mark_pending(order.id, session_id)
    logger.info("Checkout session %s created for %s", session_id, order.order_code)
    return CheckoutSessionResponse(url=_field(checkout, "url"), session_id=session_id)


# =============================================================================
# Webhook
# =============================================================================

async def _card_details(payment_intent_id: Optional[str]) -> dict[str, Any]:
    """Saved card summary for a payment intent; empty when unavailable."""
    if not payment_intent_id or not settings.stripe_secret_key:
        return {}
    try:
        intent = await asyncio.to_thread(stripe.PaymentIntent.retrieve, payment_intent_id)
        method_id = _field(intent, "payment_method")
        if not isinstance(method_id, str):
            return {}
        method = await asyncio.to_thread(stripe.PaymentMethod.retrieve, method_id)
        card = _field(method, "card")
    except stripe.StripeError as e:
        logger.warning("Could not load card details for %s: %s", payment_intent_id, e)
        return {}

    brand, last4 = _field(card, "brand"), _field(card, "last4")
    if not (isinstance(brand, str) and isinstance(last4, str)):
        return {}
    return {
        "has_saved_payment_method": True,
        "card_brand": brand,
        "card_last4": last4,
        "card_exp_month": _field(card, "exp_month"),
        "card_exp_year": _field(card, "exp_year"),
    }


async def handle_webhook(
    session: AsyncSession,
    payload: bytes,
    signature: Optional[str],
) -> WebhookAck:
    """
    Process a Stripe webhook delivery.

    ``checkout.session.completed`` marks the order paid; duplicate deliveries
    are acknowledged without a second payment event or receipt. An expired or
    failed checkout moves a pending order to ``failed`` so it can be retried.
    Other event types are ignored.

    Raises:
        PaymentConfigError: webhook secret not configured
        WebhookSignatureError: missing or invalid signature; nothing is written
    """
    if not settings.stripe_webhook_secret:
        raise PaymentConfigError("STRIPE_WEBHOOK_SECRET is not configured")
    if not signature:
        raise WebhookSignatureError("Missing stripe-signature header")

    try:
        event = stripe.Webhook.construct_event(
            payload=payload,
            sig_header=signature,
            secret=settings.stripe_webhook_secret,
        )
    except (ValueError, stripe.SignatureVerificationError) as e:
        raise WebhookSignatureError("Invalid signature") from e

    if settings.stripe_secret_key:
        stripe.api_key = settings.stripe_secret_key

    event_type = _field(event, "type")
    if event_type != CHECKOUT_COMPLETED and event_type not in CHECKOUT_FAILED:
        return WebhookAck(handled=False, detail="Ignored")

    data_obj = _field(_field(event, "data"), "object")
    metadata = _field(data_obj, "metadata")
    order_id, order_code = _field(metadata, "order_id"), _field(metadata, "order_code")
    if not order_id or not order_code:
        return WebhookAck(handled=False, detail="Missing metadata")

    try:
        order_uuid = UUID(str(order_id))
    except ValueError:
        logger.warning("Webhook for malformed order id %r", order_id)
        return WebhookAck(handled=False, detail="Unknown order")

    manager = OrderLifecycleManager(session)
    try:
        await manager.get_order(order_uuid)
    except OrderNotFoundError:
        logger.warning("Webhook for unknown order %s (%s)", order_id, order_code)
        return WebhookAck(handled=False, detail="Unknown order")

    if event_type in CHECKOUT_FAILED:
        failed = await manager.mark_failed(order_uuid)
        logger.info("Checkout for %s ended without payment (%s)", order_code, event_type)
        return WebhookAck(handled=True, detail="Payment failed" if failed else "No change")

    payment_intent = _field(data_obj, "payment_intent")
    payment_intent_id = payment_intent if isinstance(payment_intent, str) else None

    transitioned = await manager.mark_paid(order_uuid, payment_intent_id)
    order = await manager.get_order(order_uuid, refresh=True)

    profile_fields = await _card_details(payment_intent_id)
    customer = _field(data_obj, "customer")
    if isinstance(customer, str):
        profile_fields["stripe_customer_id"] = customer
    if profile_fields:
        await _upsert_billing_profile(session, order.user_id, **profile_fields)

    totals = compute_totals(order.price_before_tax, order.route_area, order.currency)
    text = build_receipt_text(
        str(order_code),
        datetime.now(timezone.utc),
        order.customer_email,
        totals,
    )
    await create_receipt_once(session, order.user_id, str(order_code), text)

    return WebhookAck(handled=True, detail="OK" if transitioned else "Already paid")
