"""Tests for the quote endpoint."""
from decimal import Decimal

from app.schemas.base import Coordinates
from app.services.busy import busy_guard
from tests.conftest import CUSTOMER_ID


class TestCreateQuote:

    async def test_official_region_quote(self, client, auth_headers, montreal_form):
        response = await client.post(
            "/api/v1/quotes",
            json={"form": montreal_form.model_dump(mode="json")},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["quote"]["price_before_tax"] == 285
        assert data["quote"]["pricing_status"] == "official"
        assert data["quote"]["region"] == "Montreal"
        assert Decimal(str(data["totals"]["tax"])) == Decimal("42.68")
        assert Decimal(str(data["totals"]["total"])) == Decimal("327.68")
        assert data["totals"]["tax_note"] == "QC (GST+QST)"

    async def test_estimated_from_route(self, client, auth_headers, make_form, stub_geocoder, stub_router):
        stub_geocoder.known["100 King St W, Toronto, ON"] = Coordinates(lat=43.6532, lng=-79.3832)
        stub_geocoder.known["55 Lasalle Blvd, Sudbury, ON"] = Coordinates(lat=46.4917, lng=-80.9930)
        form = make_form(dropoff_address="55 Lasalle Blvd, Sudbury, ON")

        response = await client.post(
            "/api/v1/quotes",
            json={"form": form.model_dump(mode="json")},
            headers=auth_headers,
        )
        assert response.status_code == 200
        quote = response.json()["quote"]
        assert quote["pricing_status"] == "estimated"
        assert quote["region"] is None
        # 120 km at 2.50/km
        assert quote["price_before_tax"] == 300
        assert len(stub_router.calls) == 1

    async def test_route_required(self, client, auth_headers, make_form):
        form = make_form(dropoff_address="Somewhere far away")
        response = await client.post(
            "/api/v1/quotes",
            json={"form": form.model_dump(mode="json")},
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "Route / Service Area required"

    async def test_quote_already_running(self, client, auth_headers, montreal_form):
        busy_guard._held.add(f"quote:{CUSTOMER_ID}")
        response = await client.post(
            "/api/v1/quotes",
            json={"form": montreal_form.model_dump(mode="json")},
            headers=auth_headers,
        )
        assert response.status_code == 409

    async def test_form_required(self, client, auth_headers):
        response = await client.post("/api/v1/quotes", json={}, headers=auth_headers)
        assert response.status_code == 422
