"""Tests for Stripe checkout creation and webhook handling."""
import json
from unittest.mock import patch

import pytest
import stripe
from sqlalchemy import func, select

from app.core.config import settings
from app.core.security import TokenClaims
from app.models.enums import PaymentStatus
from app.models.order import OrderEvent
from app.models.receipt import Receipt
from app.models.staff import BillingProfile
from app.services.orders import InvalidQuoteError, OrderLifecycleManager, OrderNotFoundError
from app.services.payments import (
    OrderAccessError,
    OrderAlreadyPaidError,
    PaymentConfigError,
    PaymentGatewayError,
    WebhookSignatureError,
    create_checkout_session,
    handle_webhook,
)
from tests.api.conftest import make_quote
from tests.conftest import sign

OWNER = TokenClaims(user_id="user-customer-1", email="dealer@example.com")
CHECKOUT_URL = "https://checkout.stripe.test/c/pay/cs_test_1"


def completed_event(order, event_type="checkout.session.completed", **session_fields) -> str:
    session = {
        "id": "cs_test_1",
        "object": "checkout.session",
        "metadata": {"order_id": str(order.id), "order_code": order.order_code},
        "customer": "cus_test_1",
    }
    session.update(session_fields)
    return json.dumps({
        "id": "evt_test_1",
        "object": "event",
        "type": event_type,
        "data": {"object": session},
    })


@pytest.fixture
async def order(db_session, montreal_form):
    manager = OrderLifecycleManager(db_session)
    return await manager.create_order(OWNER.user_id, montreal_form, make_quote())


async def count(session, model, *where) -> int:
    return await session.scalar(select(func.count()).select_from(model).where(*where))


class TestCreateCheckoutSession:

    async def test_creates_session_and_marks_pending(self, db_session, order):
        with patch("stripe.Customer.create", return_value={"id": "cus_new"}) as create_customer, \
                patch("stripe.checkout.Session.create",
                      return_value={"id": "cs_test_1", "url": CHECKOUT_URL}) as create_session:
            result = await create_checkout_session(db_session, order.order_code, OWNER)

        assert result.url == CHECKOUT_URL
        assert result.session_id == "cs_test_1"
        create_customer.assert_called_once()

        params = create_session.call_args.kwargs
        amounts = [item["price_data"]["unit_amount"] for item in params["line_items"]]
        assert amounts == [28500, 4268]
        assert params["line_items"][0]["price_data"]["currency"] == "cad"
        assert params["line_items"][1]["price_data"]["product_data"]["name"] == "Tax QC (GST+QST) (14.975%)"
        assert params["customer"] == "cus_new"
        assert params["payment_intent_data"] == {"setup_future_usage": "off_session"}
        assert params["metadata"] == {"order_id": str(order.id), "order_code": order.order_code}
        assert params["success_url"].endswith(f"?checkout=success&order={order.order_code}")
        assert params["cancel_url"].endswith(f"?checkout=cancel&order={order.order_code}")

        current = await OrderLifecycleManager(db_session).get_order(order.id, refresh=True)
        assert current.payment_status == PaymentStatus.PENDING
        assert current.stripe_session_id == "cs_test_1"

        profile = await db_session.scalar(select(BillingProfile))
        assert profile.stripe_customer_id == "cus_new"

    async def test_reads_sdk_objects(self, db_session, order):
        customer = stripe.Customer.construct_from({"id": "cus_sdk", "object": "customer"}, "sk_test")
        checkout = stripe.checkout.Session.construct_from(
            {"id": "cs_sdk", "object": "checkout.session", "url": CHECKOUT_URL}, "sk_test",
        )

        with patch("stripe.Customer.create", return_value=customer), \
                patch("stripe.checkout.Session.create", return_value=checkout):
            result = await create_checkout_session(db_session, order.order_code, OWNER)

        assert (result.session_id, result.url) == ("cs_sdk", CHECKOUT_URL)
        profile = await db_session.scalar(select(BillingProfile))
        assert profile.stripe_customer_id == "cus_sdk"

    async def test_reuses_saved_customer(self, db_session, order):
        db_session.add(BillingProfile(user_id=OWNER.user_id, stripe_customer_id="cus_saved"))
        await db_session.flush()

        with patch("stripe.Customer.create") as create_customer, \
                patch("stripe.checkout.Session.create",
                      return_value={"id": "cs_test_2", "url": CHECKOUT_URL}) as create_session:
            await create_checkout_session(db_session, order.order_code, OWNER)

        create_customer.assert_not_called()
        assert create_session.call_args.kwargs["customer"] == "cus_saved"

    async def test_customer_failure_falls_back_to_email(self, db_session, order):
        with patch("stripe.Customer.create", side_effect=stripe.APIConnectionError("offline")), \
                patch("stripe.checkout.Session.create",
                      return_value={"id": "cs_test_3", "url": CHECKOUT_URL}) as create_session:
            await create_checkout_session(db_session, order.order_code, OWNER)

        params = create_session.call_args.kwargs
        assert "customer" not in params
        assert params["customer_email"] == "dealer@example.com"

    async def test_gateway_failure_leaves_order_unchanged(self, db_session, order):
        with patch("stripe.Customer.create", return_value={"id": "cus_new"}), \
                patch("stripe.checkout.Session.create",
                      side_effect=stripe.APIConnectionError("offline")):
            with pytest.raises(PaymentGatewayError):
                await create_checkout_session(db_session, order.order_code, OWNER)

        current = await OrderLifecycleManager(db_session).get_order(order.id, refresh=True)
        assert current.payment_status == PaymentStatus.UNPAID
        assert current.stripe_session_id is None

    async def test_unknown_order(self, db_session):
        with pytest.raises(OrderNotFoundError):
            await create_checkout_session(db_session, "EDC-00000000-NOPE00", OWNER)

    async def test_other_users_order(self, db_session, order):
        stranger = TokenClaims(user_id="someone-else")
        with pytest.raises(OrderAccessError):
            await create_checkout_session(db_session, order.order_code, stranger)

    async def test_already_paid(self, db_session, order):
        await OrderLifecycleManager(db_session).mark_paid(order.id)
        await OrderLifecycleManager(db_session).get_order(order.id, refresh=True)
        with pytest.raises(OrderAlreadyPaidError):
            await create_checkout_session(db_session, order.order_code, OWNER)

    async def test_non_positive_amount(self, db_session, order):
        order.price_before_tax = 0
        with pytest.raises(InvalidQuoteError):
            await create_checkout_session(db_session, order.order_code, OWNER)

    async def test_not_configured(self, db_session, order, monkeypatch):
        monkeypatch.setattr(settings, "stripe_secret_key", "")
        with pytest.raises(PaymentConfigError):
            await create_checkout_session(db_session, order.order_code, OWNER)


class TestHandleWebhook:

    async def test_completed_checkout_marks_paid(self, db_session, order):
        payload = completed_event(order)

        ack = await handle_webhook(db_session, payload.encode(), sign(payload))

        assert ack.handled is True
        assert ack.detail == "OK"
        current = await OrderLifecycleManager(db_session).get_order(order.id, refresh=True)
        assert current.payment_status == PaymentStatus.PAID

        receipt = await db_session.scalar(select(Receipt))
        assert receipt.order_code == order.order_code
        assert "Total: $327.68" in receipt.text

        profile = await db_session.scalar(select(BillingProfile))
        assert profile.stripe_customer_id == "cus_test_1"

    async def test_duplicate_delivery_is_noop(self, db_session, order):
        payload = completed_event(order)
        await handle_webhook(db_session, payload.encode(), sign(payload))

        ack = await handle_webhook(db_session, payload.encode(), sign(payload))

        assert ack.detail == "Already paid"
        assert await count(db_session, Receipt) == 1
        assert await count(
            db_session, OrderEvent,
            OrderEvent.order_id == order.id, OrderEvent.note == "Payment received",
        ) == 1

    async def test_saves_card_details(self, db_session, order):
        payload = completed_event(order, payment_intent="pi_test_1")
        card = {"brand": "visa", "last4": "4242", "exp_month": 12, "exp_year": 2030}

        with patch("stripe.PaymentIntent.retrieve", return_value={"payment_method": "pm_1"}), \
                patch("stripe.PaymentMethod.retrieve", return_value={"card": card}):
            await handle_webhook(db_session, payload.encode(), sign(payload))

        profile = await db_session.scalar(select(BillingProfile))
        assert profile.has_saved_payment_method is True
        assert (profile.card_brand, profile.card_last4) == ("visa", "4242")

        current = await OrderLifecycleManager(db_session).get_order(order.id, refresh=True)
        assert current.stripe_payment_intent_id == "pi_test_1"

    async def test_bad_signature_writes_nothing(self, db_session, order):
        payload = completed_event(order)

        with pytest.raises(WebhookSignatureError):
            await handle_webhook(db_session, payload.encode(), sign(payload, secret="whsec_wrong"))

        current = await OrderLifecycleManager(db_session).get_order(order.id, refresh=True)
        assert current.payment_status == PaymentStatus.UNPAID
        assert await count(db_session, Receipt) == 0

    async def test_tampered_payload_rejected(self, db_session, order):
        payload = completed_event(order)
        header = sign(payload)
        tampered = payload.replace("cus_test_1", "cus_evil")

        with pytest.raises(WebhookSignatureError):
            await handle_webhook(db_session, tampered.encode(), header)

    async def test_missing_signature(self, db_session, order):
        with pytest.raises(WebhookSignatureError):
            await handle_webhook(db_session, completed_event(order).encode(), None)

    async def test_saves_card_details_from_sdk_objects(self, db_session, order):
        payload = completed_event(order, payment_intent="pi_test_2")
        intent = stripe.PaymentIntent.construct_from(
            {"id": "pi_test_2", "object": "payment_intent", "payment_method": "pm_2"}, "sk_test",
        )
        method = stripe.PaymentMethod.construct_from(
            {"id": "pm_2", "object": "payment_method",
             "card": {"brand": "mastercard", "last4": "4444", "exp_month": 1, "exp_year": 2031}},
            "sk_test",
        )

        with patch("stripe.PaymentIntent.retrieve", return_value=intent), \
                patch("stripe.PaymentMethod.retrieve", return_value=method):
            await handle_webhook(db_session, payload.encode(), sign(payload))

        profile = await db_session.scalar(select(BillingProfile))
        assert (profile.card_brand, profile.card_last4, profile.card_exp_year) == ("mastercard", "4444", 2031)

    async def test_other_event_types_ignored(self, db_session, order):
        payload = completed_event(order, event_type="payment_intent.created")

        ack = await handle_webhook(db_session, payload.encode(), sign(payload))

        assert ack.handled is False
        assert ack.detail == "Ignored"
        current = await OrderLifecycleManager(db_session).get_order(order.id, refresh=True)
        assert current.payment_status == PaymentStatus.UNPAID

    @pytest.mark.parametrize("event_type", [
        "checkout.session.expired",
        "checkout.session.async_payment_failed",
    ])
    async def test_unfinished_checkout_marks_failed(self, db_session, order, event_type):
        manager = OrderLifecycleManager(db_session)
        await manager.mark_pending(order.id, "cs_test_1")
        payload = completed_event(order, event_type=event_type)

        ack = await handle_webhook(db_session, payload.encode(), sign(payload))

        assert (ack.handled, ack.detail) == (True, "Payment failed")
        current = await manager.get_order(order.id, refresh=True)
        assert current.payment_status == PaymentStatus.FAILED
        assert await count(db_session, Receipt) == 0

        # a failed checkout can be started again
        with patch("stripe.Customer.create", return_value={"id": "cus_new"}), \
                patch("stripe.checkout.Session.create",
                      return_value={"id": "cs_test_retry", "url": CHECKOUT_URL}):
            await create_checkout_session(db_session, order.order_code, OWNER)
        current = await manager.get_order(order.id, refresh=True)
        assert current.payment_status == PaymentStatus.PENDING

    async def test_expiry_after_payment_keeps_paid(self, db_session, order):
        paid = completed_event(order)
        await handle_webhook(db_session, paid.encode(), sign(paid))
        expired = completed_event(order, event_type="checkout.session.expired")

        ack = await handle_webhook(db_session, expired.encode(), sign(expired))

        assert ack.detail == "No change"
        current = await OrderLifecycleManager(db_session).get_order(order.id, refresh=True)
        assert current.payment_status == PaymentStatus.PAID

    async def test_missing_metadata(self, db_session, order):
        payload = completed_event(order, metadata={})
        ack = await handle_webhook(db_session, payload.encode(), sign(payload))
        assert ack.detail == "Missing metadata"

    @pytest.mark.parametrize("order_id", ["not-a-uuid", "00000000-0000-0000-0000-000000000000"])
    async def test_unknown_order(self, db_session, order, order_id):
        payload = completed_event(order, metadata={"order_id": order_id, "order_code": "EDC-X"})
        ack = await handle_webhook(db_session, payload.encode(), sign(payload))
        assert ack.handled is False
        assert ack.detail == "Unknown order"

    async def test_secret_not_configured(self, db_session, order, monkeypatch):
        monkeypatch.setattr(settings, "stripe_webhook_secret", "")
        payload = completed_event(order)
        with pytest.raises(PaymentConfigError):
            await handle_webhook(db_session, payload.encode(), "t=1,v1=abc")
