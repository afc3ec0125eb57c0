"""
Driving distance estimation with a provider fallback chain.

OSRM is tried first, then Mapbox Directions (when a token is configured),
then a great-circle estimate. The chain never raises: once both coordinate
pairs are known, some distance is always produced.
"""
import logging
from decimal import Decimal
from math import atan2, cos, isfinite, radians, sin, sqrt
from typing import Any, Optional

import httpx

from app.core.config import settings
from app.schemas.quote import RouteEstimate
from app.services.totals import round_whole

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


class RoutingError(Exception):
    """A single provider could not produce a route."""
    pass


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points in kilometers.

    Uses the Haversine formula.
    """
    lat1_rad = radians(lat1)
    lat2_rad = radians(lat2)
    delta_lat = radians(lat2 - lat1)
    delta_lon = radians(lon2 - lon1)

    a = sin(delta_lat / 2) ** 2 + cos(lat1_rad) * cos(lat2_rad) * sin(delta_lon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def encode_polyline(coordinates: list[list[float]]) -> str:
    """GeoJSON ``[lng, lat]`` pairs to a ``lat,lng|lat,lng`` string."""
    return "|".join(f"{c[1]},{c[0]}" for c in coordinates)


def estimate_cost(distance_km: float) -> int:
    """Distance-based price: per-km rate with a floor, whole currency units."""
    raw = max(Decimal(str(distance_km)) * settings.cost_per_km, settings.minimum_cost)
    return round_whole(float(raw))


class RoutingClient:
    """Routes between two points; see module docstring for the chain."""

    def __init__(
        self,
        osrm_url: Optional[str] = None,
        mapbox_url: Optional[str] = None,
        mapbox_token: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.osrm_url = (osrm_url or settings.osrm_url).rstrip("/")
        self.mapbox_url = (mapbox_url or settings.mapbox_url).rstrip("/")
        self.mapbox_token = mapbox_token if mapbox_token is not None else settings.mapbox_token
        self.timeout = timeout or settings.http_timeout_seconds

    async def route(
        self,
        origin_lat: float,
        origin_lng: float,
        dest_lat: float,
        dest_lng: float,
    ) -> RouteEstimate:
        path = f"{origin_lng},{origin_lat};{dest_lng},{dest_lat}"

        try:
            return await self._road_route(
                "osrm",
                f"{self.osrm_url}/{path}",
                {"overview": "full", "geometries": "geojson"},
            )
        except RoutingError as e:
            logger.warning("OSRM routing failed, trying alternative: %s", e)

        if self.mapbox_token:
            try:
                return await self._road_route(
                    "mapbox",
                    f"{self.mapbox_url}/{path}",
                    {"access_token": self.mapbox_token, "geometries": "geojson"},
                )
            except RoutingError as e:
                logger.warning("Mapbox routing failed, using straight-line distance: %s", e)

        return self.straight_line(origin_lat, origin_lng, dest_lat, dest_lng)

    async def _road_route(self, provider: str, url: str, params: dict[str, str]) -> RouteEstimate:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(url, params=params)
                response.raise_for_status()
                data = response.json()
            except (httpx.HTTPError, ValueError) as e:
                raise RoutingError(f"{provider} request failed: {e}")

        try:
            route = data["routes"][0]
            distance_m, duration_s = float(route["distance"]), float(route["duration"])
            if not (isfinite(distance_m) and isfinite(duration_s)) or distance_m < 0 or duration_s < 0:
                raise RoutingError(f"{provider} returned an impossible route: {distance_m} m, {duration_s} s")

            geometry: Optional[dict[str, Any]] = route.get("geometry")
            polyline = None
            if isinstance(geometry, dict) and isinstance(geometry.get("coordinates"), list):
                polyline = encode_polyline(geometry["coordinates"])
            else:
                geometry = None

            return RouteEstimate(
                distance_km=round_whole(distance_m / 1000),
                duration_min=round_whole(duration_s / 60),
                provider=provider,
                geometry=geometry,
                polyline=polyline,
            )
        except (KeyError, IndexError, TypeError, AttributeError, ValueError, ArithmeticError) as e:
            raise RoutingError(f"{provider} returned no usable route: {e}")

    @staticmethod
    def straight_line(
        origin_lat: float,
        origin_lng: float,
        dest_lat: float,
        dest_lng: float,
    ) -> RouteEstimate:
        distance = haversine_distance(origin_lat, origin_lng, dest_lat, dest_lng)
        duration = round_whole(distance / settings.fallback_speed_kmh * 60)
        return RouteEstimate(distance_km=distance, duration_min=duration, provider="haversine")


routing_client = RoutingClient()
