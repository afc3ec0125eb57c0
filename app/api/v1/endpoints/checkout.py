"""
Hosted checkout and Stripe webhook endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Request

from app.core.dependencies import CurrentUser, DbSession
from app.schemas.checkout import CheckoutSessionRequest, CheckoutSessionResponse, WebhookAck
from app.services.busy import BusyError, busy_guard
from app.services.orders import InvalidQuoteError, OrderNotFoundError
from app.services.payments import (
    OrderAccessError,
    OrderAlreadyPaidError,
    PaymentConfigError,
    PaymentGatewayError,
    WebhookSignatureError,
    create_checkout_session,
    handle_webhook,
)

router = APIRouter()


@router.post("/checkout/session", response_model=CheckoutSessionResponse)
async def start_checkout(
    data: CheckoutSessionRequest,
    current_user: CurrentUser,
    session: DbSession,
):
    """
    Create a hosted checkout session for one of the caller's orders.

    The order is marked ``pending`` only once the session exists; a Stripe
    failure leaves it untouched and can be retried.

    **Error Responses:**
    - 400: Order amount is not positive
    - 403: Order belongs to another user
    - 404: Order not found
    - 409: Already paid, or a checkout is already being created
    - 500: Payments not configured
    - 502: Stripe unavailable; retry
    """
    try:
        async with busy_guard.hold(f"checkout:{current_user.user_id}"):
            return await create_checkout_session(session, data.order_code, current_user)
    except BusyError:
        raise HTTPException(status_code=409, detail="A checkout is already being created")
    except OrderNotFoundError:
        raise HTTPException(status_code=404, detail="Order not found")
    except OrderAccessError:
        raise HTTPException(status_code=403, detail="Forbidden")
    except OrderAlreadyPaidError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidQuoteError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PaymentConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except PaymentGatewayError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.post("/stripe/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    session: DbSession,
    stripe_signature: Optional[str] = Header(default=None, alias="stripe-signature"),
):
    """
    Stripe event receiver.

    The signature is verified against the raw body before anything in the
    payload is used. Duplicate deliveries are acknowledged without side effects.
    """
    payload = await request.body()
    try:
        return await handle_webhook(session, payload, stripe_signature)
    except WebhookSignatureError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PaymentConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))
