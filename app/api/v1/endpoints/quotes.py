"""
Quote API endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, status

from app.core.dependencies import CurrentUser, get_quote_engine
from app.schemas.quote import QuoteRequest, QuoteResponse
from app.services.busy import BusyError, busy_guard
from app.services.quote_engine import QuoteEngine, RouteRequiredError
from app.services.totals import compute_totals

router = APIRouter()


@router.post("", response_model=QuoteResponse)
async def create_quote(
    data: QuoteRequest,
    current_user: CurrentUser,
    engine: QuoteEngine = Depends(get_quote_engine),
):
    """
    Price a shipment form.

    An official region price always wins; otherwise the price is estimated
    from the routed distance between pickup and drop-off.

    **Error Responses:**
    - 409: A quote for this user is already being computed
    - 422: Neither a service area nor a routable address pair was given
    """
    try:
        async with busy_guard.hold(f"quote:{current_user.user_id}"):
            quote = await engine.compute_quote(data.form, data.pickup)
    except BusyError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A quote is already being computed",
        )
    except RouteRequiredError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.message,
        )

    return QuoteResponse(
        quote=quote,
        totals=compute_totals(quote.price_before_tax, quote.region, quote.currency),
    )
