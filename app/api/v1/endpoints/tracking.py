"""
Public order tracking.
"""
from fastapi import APIRouter, HTTPException, Query

from app.core.dependencies import DbSession
from app.schemas.order import OrderEventResponse, TrackedOrder, TrackingResponse
from app.services.orders import OrderLifecycleManager

router = APIRouter()


@router.get("/track", response_model=TrackingResponse)
async def track_order(
    session: DbSession,
    order_code: str = Query(..., min_length=1, max_length=32),
):
    """
    Look up an order's delivery status by its code.

    Returns the status timeline only; no customer or payment details.
    """
    manager = OrderLifecycleManager(session)
    order = await manager.get_by_code(order_code.strip().upper())
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")

    events = await manager.get_timeline(order.id)
    return TrackingResponse(
        order=TrackedOrder.model_validate(order),
        events=[OrderEventResponse.model_validate(e) for e in events],
    )
