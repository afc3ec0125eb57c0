"""
Quote Engine.

Turns a shipment form into a priced quote:

1. Resolve the drop-off region (explicit service area, else address match).
2. Take the official price for that region, overrides applied.
3. Resolve both coordinate pairs (geocoding completes before routing) and
   route between them for distance and duration.
4. Without an official price, price from distance and tag the quote
   ``estimated``. Without either, the quote cannot be produced.
"""
import logging
from typing import Mapping, Optional

from app.core.config import settings
from app.models.enums import PricingStatus
from app.schemas.base import Coordinates
from app.schemas.quote import Quote, RouteEstimate
from app.schemas.shipment_form import ShipmentForm
from app.services.geocoding import GeocodingService, geocoding_service
from app.services.pricing import (
    RegionPrice,
    fulfillment_days,
    geocode_query_for_region,
    match_region_for_address,
    price_for_region,
)
from app.services.routing import RoutingClient, estimate_cost, routing_client
from app.services.totals import round_whole

logger = logging.getLogger(__name__)

ROUTE_REQUIRED_MESSAGE = "Route / Service Area required"


class RouteRequiredError(Exception):
    """Neither a region price nor a routable coordinate pair is available."""

    def __init__(self, message: str = ROUTE_REQUIRED_MESSAGE):
        super().__init__(message)
        self.message = message


def _joined(*parts: Optional[str]) -> str:
    return " ".join(p.strip() for p in parts if p and p.strip())


class QuoteEngine:
    """Combines pricing, geocoding and routing into a Quote."""

    def __init__(
        self,
        geocoder: Optional[GeocodingService] = None,
        router: Optional[RoutingClient] = None,
        overrides: Optional[Mapping[str, int]] = None,
    ):
        self.geocoder = geocoder or geocoding_service
        self.router = router or routing_client
        self.overrides = dict(overrides or {})

    def resolve_region(self, form: ShipmentForm) -> Optional[RegionPrice]:
        """Explicit service area first, then inference from drop-off text."""
        dropoff = form.dropoff_location
        if dropoff.service_area:
            selected = price_for_region(dropoff.service_area, self.overrides)
            if selected is not None:
                return selected
        return match_region_for_address(_joined(dropoff.address, dropoff.name), self.overrides)

    async def resolve_pickup(
        self,
        form: ShipmentForm,
        pickup: Optional[Coordinates] = None,
    ) -> Optional[Coordinates]:
        if pickup is not None and Coordinates.is_valid(pickup.lat, pickup.lng):
            return pickup
        candidates = (
            form.pickup_location.address,
            form.selling_dealership.address,
            form.pickup_location.name,
            form.selling_dealership.name,
        )
        for candidate in candidates:
            if not candidate:
                continue
            coords = await self.geocoder.geocode(candidate)
            if coords is not None:
                return coords
        return None

    async def resolve_dropoff(
        self,
        form: ShipmentForm,
        region: Optional[RegionPrice],
    ) -> Optional[Coordinates]:
        dropoff = form.dropoff_location
        if dropoff.coordinates is not None:
            return dropoff.coordinates
        if dropoff.address:
            coords = await self.geocoder.geocode(_joined(dropoff.address, dropoff.name))
            if coords is not None:
                return coords
        if region is not None:
            return await self.geocoder.geocode(geocode_query_for_region(region.region))
        return None

    async def compute_quote(
        self,
        form: ShipmentForm,
        pickup: Optional[Coordinates] = None,
    ) -> Quote:
        """
        Price a shipment form.

        Raises:
            RouteRequiredError: no official price and no coordinate pair
        """
        region = self.resolve_region(form)

        origin = await self.resolve_pickup(form, pickup)
        destination = await self.resolve_dropoff(form, region)

        route: Optional[RouteEstimate] = None
        if origin is not None and destination is not None:
            route = await self.router.route(origin.lat, origin.lng, destination.lat, destination.lng)

        if region is None and route is None:
            logger.info("Quote rejected: no service area and no route")
            raise RouteRequiredError()

        if region is not None:
            price = region.total_price
            status = PricingStatus.OFFICIAL
            label: Optional[str] = region.region
        else:
            price = estimate_cost(route.distance_km)
            status = PricingStatus.ESTIMATED
            label = form.dropoff_location.service_area

        days_min, days_max = fulfillment_days(label)

        return Quote(
            price_before_tax=price,
            pricing_status=status,
            region=label,
            currency=settings.currency,
            distance_km=round_whole(route.distance_km) if route else None,
            duration_min=route.duration_min if route else None,
            provider=route.provider if route else None,
            geometry=route.geometry if route else None,
            polyline=route.polyline if route else None,
            fulfillment_days_min=days_min,
            fulfillment_days_max=days_max,
        )
