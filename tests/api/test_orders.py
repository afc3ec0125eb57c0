"""Tests for customer order endpoints (SQLite-backed)."""
import re
from decimal import Decimal
from uuid import uuid4

import pytest

from app.services.drafts import DraftRepository
from app.services.stores import get_store
from tests.api.conftest import make_quote, seed_order
from tests.conftest import CUSTOMER_ID

ACCEPTED = {"timelines": True, "payments": True, "in_transit": True}


def order_body(form, **extra) -> dict:
    body = {"form": form.model_dump(mode="json"), "disclosures": ACCEPTED}
    body.update(extra)
    return body


class TestCreateOrder:

    async def test_from_form(self, db_client, auth_headers, montreal_form):
        response = await db_client.post("/api/v1/orders", json=order_body(montreal_form), headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert re.fullmatch(r"EDC-\d{8}-[0-9A-Z]{6}", data["order_code"])
        assert data["user_id"] == CUSTOMER_ID
        assert data["status"] == "Scheduled"
        assert data["payment_status"] == "unpaid"
        assert data["price_before_tax"] == 285
        assert data["customer_email"] == "dealer@example.com"
        assert Decimal(str(data["totals"]["total"])) == Decimal("327.68")

    async def test_client_quote_ignored(self, db_client, auth_headers, montreal_form):
        body = order_body(montreal_form, quote=make_quote(price=1).model_dump(mode="json"))
        response = await db_client.post("/api/v1/orders", json=body, headers=auth_headers)
        assert response.json()["price_before_tax"] == 285

    async def test_customer_details(self, db_client, auth_headers, montreal_form):
        body = order_body(montreal_form, customer={"name": "Jordan Lee", "email": "jordan@example.com"})
        data = (await db_client.post("/api/v1/orders", json=body, headers=auth_headers)).json()
        assert data["customer_name"] == "Jordan Lee"
        assert data["customer_email"] == "jordan@example.com"

    @pytest.mark.parametrize("disclosures", [
        {},
        {"timelines": True, "payments": True},
        {"timelines": True, "in_transit": True},
    ])
    async def test_disclosures_required(self, db_client, auth_headers, montreal_form, disclosures):
        body = order_body(montreal_form, disclosures=disclosures)
        response = await db_client.post("/api/v1/orders", json=body, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Please accept all disclosures to continue"

    async def test_route_required(self, db_client, auth_headers, make_form):
        form = make_form(dropoff_address="Somewhere far away")
        response = await db_client.post("/api/v1/orders", json=order_body(form), headers=auth_headers)
        assert response.status_code == 422

    async def test_from_draft_deletes_it(self, db_client, auth_headers, montreal_form):
        drafts = DraftRepository(get_store())
        draft = await drafts.save_draft(CUSTOMER_ID, montreal_form)

        body = {"draft_id": draft.id, "disclosures": ACCEPTED}
        response = await db_client.post("/api/v1/orders", json=body, headers=auth_headers)

        assert response.status_code == 201
        assert response.json()["route_area"] == "Montreal"
        assert await drafts.list_drafts(CUSTOMER_ID) == []

    async def test_draft_awaiting_extraction(self, db_client, auth_headers, montreal_form):
        drafts = DraftRepository(get_store())
        draft = await drafts.save_draft(CUSTOMER_ID, montreal_form, needs_extraction=True)

        body = {"draft_id": draft.id, "disclosures": ACCEPTED}
        response = await db_client.post("/api/v1/orders", json=body, headers=auth_headers)

        assert response.status_code == 400
        assert len(await drafts.list_drafts(CUSTOMER_ID)) == 1

    async def test_unknown_draft(self, db_client, auth_headers):
        body = {"draft_id": "1700000000000_missing", "disclosures": ACCEPTED}
        response = await db_client.post("/api/v1/orders", json=body, headers=auth_headers)
        assert response.status_code == 404


class TestReadOrders:

    async def test_list_own_orders(self, db_client, db_session, auth_headers, other_headers, montreal_form):
        first = await seed_order(db_session, CUSTOMER_ID, montreal_form)
        second = await seed_order(db_session, CUSTOMER_ID, montreal_form)

        mine = (await db_client.get("/api/v1/orders", headers=auth_headers)).json()
        assert {o["order_code"] for o in mine} == {first.order_code, second.order_code}
        assert (await db_client.get("/api/v1/orders", headers=other_headers)).json() == []

    async def test_detail_with_timeline(self, db_client, db_session, auth_headers, montreal_form):
        order = await seed_order(db_session, CUSTOMER_ID, montreal_form)

        response = await db_client.get(f"/api/v1/orders/{order.id}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["form_data"]["dropoff_location"]["service_area"] == "Montreal"
        assert data["quote_data"]["region"] == "Montreal"
        assert [e["status"] for e in data["events"]] == ["Scheduled"]

    async def test_other_customer_sees_not_found(self, db_client, db_session, other_headers, montreal_form):
        order = await seed_order(db_session, CUSTOMER_ID, montreal_form)

        response = await db_client.get(f"/api/v1/orders/{order.id}", headers=other_headers)
        assert response.status_code == 404
        response = await db_client.get(f"/api/v1/orders/{order.id}/timeline", headers=other_headers)
        assert response.status_code == 404

    async def test_staff_can_view(self, db_client, db_session, employee_headers, montreal_form):
        order = await seed_order(db_session, CUSTOMER_ID, montreal_form)
        response = await db_client.get(f"/api/v1/orders/{order.id}", headers=employee_headers)
        assert response.status_code == 200

    async def test_timeline(self, db_client, db_session, auth_headers, montreal_form):
        order = await seed_order(db_session, CUSTOMER_ID, montreal_form)
        response = await db_client.get(f"/api/v1/orders/{order.id}/timeline", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()[0]["note"] == "Order created"

    async def test_unknown_order(self, db_client, auth_headers):
        response = await db_client.get(f"/api/v1/orders/{uuid4()}", headers=auth_headers)
        assert response.status_code == 404
