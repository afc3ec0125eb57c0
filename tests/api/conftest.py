"""API test fixtures -- helpers for mock session returns and seeded rows."""
from datetime import datetime
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from app.models.enums import StaffRole
from app.models.staff import StaffProfile
from app.schemas.quote import Quote
from app.services.orders import OrderLifecycleManager
from tests.conftest import ADMIN_ID, EMPLOYEE_ID, OTHER_CUSTOMER_ID, token_for


def make_mock_result(scalar_value=None, scalars_list=None):
    """Create a mock SQLAlchemy Result object."""
    result = MagicMock()
    result.scalar_one_or_none = MagicMock(return_value=scalar_value)

    scalars_mock = MagicMock()
    scalars_mock.all = MagicMock(return_value=scalars_list or [])
    scalars_mock.unique = MagicMock(return_value=scalars_mock)
    result.scalars = MagicMock(return_value=scalars_mock)
    result.first = MagicMock(return_value=None)
    result.rowcount = len(scalars_list) if scalars_list else (1 if scalar_value else 0)

    return result


def make_mock_order(order_id=None, order_code="EDC-20260101-ABC123", user_id="user-customer-1"):
    """Create a mock Order ORM object."""
    from app.models.enums import OrderStatus, PaymentStatus, ServiceType

    order = MagicMock()
    order.id = order_id or uuid4()
    order.order_code = order_code
    order.user_id = user_id
    order.customer_name = "Alex Martin"
    order.customer_email = "dealer@example.com"
    order.route_area = "Montreal"
    order.service_type = ServiceType.PICKUP
    order.vehicle_type = "standard"
    order.price_before_tax = 285
    order.currency = "CAD"
    order.status = OrderStatus.SCHEDULED
    order.payment_status = PaymentStatus.UNPAID
    order.fulfillment_days_min = 1
    order.fulfillment_days_max = 2
    order.form_data = None
    order.quote_data = None
    order.created_at = datetime.now()
    order.updated_at = datetime.now()
    return order


def make_quote(price=285, region="Montreal", status="official", **kwargs) -> Quote:
    data = {
        "price_before_tax": price,
        "pricing_status": status,
        "region": region,
        "fulfillment_days_min": 1,
        "fulfillment_days_max": 2,
    }
    data.update(kwargs)
    return Quote(**data)


async def grant_staff(session, user_id: str, role: StaffRole, active: bool = True) -> StaffProfile:
    profile = StaffProfile(user_id=user_id, role=role, active=active)
    session.add(profile)
    await session.commit()
    return profile


async def seed_order(session, owner: str, form, quote: Quote = None):
    manager = OrderLifecycleManager(session)
    order = await manager.create_order(owner, form, quote or make_quote())
    await session.commit()
    return order


def bearer(user_id: str, email: str = None) -> dict:
    return {"Authorization": f"Bearer {token_for(user_id, email)}"}


@pytest.fixture
def other_headers() -> dict:
    return bearer(OTHER_CUSTOMER_ID, "other@example.com")


@pytest.fixture
async def employee_headers(db_session) -> dict:
    await grant_staff(db_session, EMPLOYEE_ID, StaffRole.EMPLOYEE)
    return bearer(EMPLOYEE_ID, "employee@easydrive.test")


@pytest.fixture
async def admin_headers(db_session) -> dict:
    await grant_staff(db_session, ADMIN_ID, StaffRole.ADMIN)
    return bearer(ADMIN_ID, "admin@easydrive.test")
