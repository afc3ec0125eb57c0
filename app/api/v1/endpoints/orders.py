"""
Customer order endpoints.
"""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.dependencies import CurrentUser, DbSession, get_draft_repository, get_quote_engine, get_staff_profile
from app.models.order import Order
from app.models.staff import StaffProfile
from app.schemas.draft import DocumentMeta
from app.schemas.order import (
    CustomerInfo,
    OrderCreate,
    OrderDetailResponse,
    OrderEventResponse,
    OrderResponse,
)
from app.services.busy import BusyError, busy_guard
from app.services.drafts import DraftNotFoundError, DraftRepository
from app.services.orders import (
    InvalidQuoteError,
    OrderCodeConflictError,
    OrderLifecycleManager,
    OrderNotFoundError,
)
from app.services.quote_engine import QuoteEngine, RouteRequiredError
from app.services.totals import compute_totals

logger = logging.getLogger(__name__)

router = APIRouter()


def order_response(order: Order) -> OrderResponse:
    """Order summary with its totals computed the same way checkout does."""
    return OrderResponse.model_validate(order).model_copy(update={
        "totals": compute_totals(order.price_before_tax, order.route_area, order.currency),
    })


async def order_detail(manager: OrderLifecycleManager, order: Order) -> OrderDetailResponse:
    events = await manager.get_timeline(order.id)
    return OrderDetailResponse.model_validate(order).model_copy(update={
        "totals": compute_totals(order.price_before_tax, order.route_area, order.currency),
        "events": [OrderEventResponse.model_validate(e) for e in events],
    })


async def _visible_order(
    manager: OrderLifecycleManager,
    order_id: UUID,
    user_id: str,
    staff: Optional[StaffProfile],
) -> Order:
    """Owner or active staff; anyone else sees 404."""
    try:
        order = await manager.get_order(order_id)
    except OrderNotFoundError:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.user_id != user_id and staff is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.post("", response_model=OrderResponse, status_code=201)
async def create_order(
    data: OrderCreate,
    current_user: CurrentUser,
    session: DbSession,
    drafts: DraftRepository = Depends(get_draft_repository),
    engine: QuoteEngine = Depends(get_quote_engine),
):
    """
    Place an order from a saved draft or a submitted form.

    The price is recomputed here; a client-supplied quote is never trusted.
    The order row is committed before the draft is deleted.

    **Error Responses:**
    - 400: Disclosures not accepted, draft still awaiting extraction, or invalid price
    - 404: Draft not found
    - 409: An order is already being placed, or the order code collided
    - 422: Neither a service area nor a routable address pair was given
    """
    if not data.disclosures.all_accepted:
        raise HTTPException(status_code=400, detail="Please accept all disclosures to continue")

    owner = current_user.user_id
    manager = OrderLifecycleManager(session)

    try:
        async with busy_guard.hold(f"order:{owner}"):
            documents: list[DocumentMeta] = []
            if data.draft_id is not None:
                try:
                    draft = await drafts.get_draft(owner, data.draft_id)
                except DraftNotFoundError:
                    raise HTTPException(status_code=404, detail="Draft not found")
                if draft.needs_extraction:
                    raise HTTPException(
                        status_code=400,
                        detail="This draft is still waiting for document extraction",
                    )
                form = draft.form
                documents = list(draft.documents)
            else:
                form = data.form

            try:
                quote = await engine.compute_quote(form, data.pickup)
            except RouteRequiredError as e:
                raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message)

            customer = data.customer or CustomerInfo()
            if not customer.email and current_user.email:
                customer = customer.model_copy(update={"email": current_user.email})

            try:
                order = await manager.create_order(owner, form, quote, customer, documents)
            except InvalidQuoteError as e:
                raise HTTPException(status_code=400, detail=str(e))
            except OrderCodeConflictError as e:
                raise HTTPException(status_code=409, detail=str(e))

            await session.commit()

            if data.draft_id is not None:
                try:
                    await drafts.delete_draft(owner, data.draft_id)
                except DraftNotFoundError:
                    logger.info("Draft %s already gone after promotion", data.draft_id)
    except BusyError:
        raise HTTPException(status_code=409, detail="An order is already being placed")

    return order_response(order)


@router.get("", response_model=list[OrderResponse])
async def list_orders(
    current_user: CurrentUser,
    session: DbSession,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    """The caller's orders, newest first."""
    manager = OrderLifecycleManager(session)
    orders = await manager.list_for_user(current_user.user_id, limit=limit, offset=skip)
    return [order_response(o) for o in orders]


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(
    order_id: UUID,
    current_user: CurrentUser,
    session: DbSession,
    staff: Optional[StaffProfile] = Depends(get_staff_profile),
):
    """Order with its form, quote and timeline. Owner or staff only."""
    manager = OrderLifecycleManager(session)
    order = await _visible_order(manager, order_id, current_user.user_id, staff)
    return await order_detail(manager, order)


@router.get("/{order_id}/timeline", response_model=list[OrderEventResponse])
async def get_timeline(
    order_id: UUID,
    current_user: CurrentUser,
    session: DbSession,
    staff: Optional[StaffProfile] = Depends(get_staff_profile),
):
    """Status events, newest first."""
    manager = OrderLifecycleManager(session)
    order = await _visible_order(manager, order_id, current_user.user_id, staff)
    return await manager.get_timeline(order.id)
