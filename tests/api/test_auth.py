"""Tests for bearer-token authentication and staff authorization."""
import pytest

from app.models.enums import StaffRole
from tests.api.conftest import bearer, grant_staff
from tests.conftest import EMPLOYEE_ID

PROTECTED = [
    ("get", "/api/v1/drafts"),
    ("get", "/api/v1/orders"),
    ("get", "/api/v1/receipts"),
    ("post", "/api/v1/quotes"),
]


class TestAuthentication:

    @pytest.mark.parametrize("method, url", PROTECTED)
    async def test_missing_token(self, client, method, url):
        response = await getattr(client, method)(url)
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_expired_token(self, client, expired_token):
        response = await client.get(
            "/api/v1/drafts",
            headers={"Authorization": f"Bearer {expired_token}"},
        )
        assert response.status_code == 401

    async def test_garbage_token(self, client):
        response = await client.get(
            "/api/v1/drafts",
            headers={"Authorization": "Bearer not.a.jwt"},
        )
        assert response.status_code == 401

    async def test_valid_token(self, client, auth_headers):
        response = await client.get("/api/v1/drafts", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == []


class TestStaffAuthorization:

    async def test_customer_is_not_staff(self, db_client, auth_headers):
        response = await db_client.get("/api/v1/staff/orders", headers=auth_headers)
        assert response.status_code == 403

    async def test_inactive_employee(self, db_client, db_session):
        await grant_staff(db_session, EMPLOYEE_ID, StaffRole.EMPLOYEE, active=False)
        response = await db_client.get("/api/v1/staff/orders", headers=bearer(EMPLOYEE_ID))
        assert response.status_code == 403

    async def test_employee_is_not_admin(self, db_client, employee_headers):
        assert (await db_client.get("/api/v1/staff/orders", headers=employee_headers)).status_code == 200
        response = await db_client.get("/api/v1/staff/employees", headers=employee_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Admin access required"

    async def test_admin_overrides_forbidden_to_customer(self, db_client, auth_headers):
        response = await db_client.put(
            "/api/v1/pricing/overrides/Montreal",
            json={"total_price": 300},
            headers=auth_headers,
        )
        assert response.status_code == 403
