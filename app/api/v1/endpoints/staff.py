"""
Staff console endpoints: order management and (admin only) employees.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query

from app.api.v1.endpoints.orders import order_detail, order_response
from app.core.dependencies import AdminUser, DbSession, StaffUser
from app.models.enums import OrderStatus, PaymentStatus
from app.schemas.base import PaginatedResponse
from app.schemas.order import OrderDetailResponse, OrderResponse, OrderStatusUpdate
from app.schemas.staff import EmployeeCreate, EmployeeUpdate, StaffProfileResponse
from app.services import staff as staff_service
from app.services.orders import OrderLifecycleManager, OrderNotFoundError

router = APIRouter()


@router.get("/orders", response_model=PaginatedResponse[OrderResponse])
async def list_all_orders(
    staff: StaffUser,
    session: DbSession,
    status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    """
    All orders, newest first.

    - **status**: Filter by delivery status
    - **payment_status**: Filter by payment status
    """
    manager = OrderLifecycleManager(session)
    orders, total = await manager.list_all(status, payment_status, page, page_size)
    return PaginatedResponse[OrderResponse].create(
        items=[order_response(o) for o in orders],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.patch("/orders/{order_id}/status", response_model=OrderDetailResponse)
async def update_order_status(
    order_id: UUID,
    data: OrderStatusUpdate,
    staff: StaffUser,
    session: DbSession,
):
    """
    Set an order's delivery status.

    Any status may follow any other; each change is recorded in the timeline.
    """
    manager = OrderLifecycleManager(session)
    try:
        order = await manager.advance_status(order_id, OrderStatus(data.status), data.note)
    except OrderNotFoundError:
        raise HTTPException(status_code=404, detail="Order not found")
    return await order_detail(manager, order)


@router.get("/employees", response_model=list[StaffProfileResponse])
async def list_employees(admin: AdminUser, session: DbSession):
    return await staff_service.list_employees(session)


@router.post("/employees", response_model=StaffProfileResponse, status_code=201)
async def create_employee(data: EmployeeCreate, admin: AdminUser, session: DbSession):
    """
    Grant the employee role to an identity-provider user.

    The account itself (email, password) is managed by the identity provider.
    """
    try:
        return await staff_service.create_employee(session, data.user_id, data.email, data.name)
    except staff_service.StaffConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.patch("/employees/{user_id}", response_model=StaffProfileResponse)
async def update_employee(
    user_id: str,
    data: EmployeeUpdate,
    admin: AdminUser,
    session: DbSession,
):
    """Activate or deactivate an employee."""
    try:
        return await staff_service.set_employee_active(session, user_id, data.active)
    except staff_service.StaffNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
