"""
Geocoding service using the ArcGIS World Geocoder.

Converts free-text addresses to latitude/longitude coordinates.
"""
import logging
import re
from typing import Optional

import httpx

from app.core.config import settings
from app.schemas.base import Coordinates

logger = logging.getLogger(__name__)

_HAS_DIGIT = re.compile(r"\d")


class GeocodingError(Exception):
    """Raised when geocoding fails."""
    pass


def normalize_query(address: str) -> str:
    """
    Strip a leading business name from an address.

    "Acme Motors, 123 Main St, Toronto" geocodes poorly, so when a later
    comma-separated part contains a digit, everything before it is dropped.
    """
    q = address.strip()
    parts = [p.strip() for p in q.split(",") if p.strip()]
    for idx, part in enumerate(parts):
        if _HAS_DIGIT.search(part):
            if idx > 0:
                return ", ".join(parts[idx:])
            break
    return q


class GeocodingService:
    """
    Geocoding service using ArcGIS ``findAddressCandidates``.

    Only the best candidate is requested. Failures never propagate out of
    :meth:`geocode`; callers get None and fall back to other inputs.

    API Documentation:
    https://developers.arcgis.com/rest/geocode/api-reference/geocoding-find-address-candidates.htm
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = base_url or settings.geocoder_url
        self.timeout = timeout or settings.http_timeout_seconds

    async def geocode(self, address: Optional[str]) -> Optional[Coordinates]:
        """
        Convert address to coordinates.

        Args:
            address: Free-text address (may include a business name)

        Returns:
            Coordinates of the best candidate, or None
        """
        if not address or not address.strip():
            return None
        try:
            return await self._lookup(normalize_query(address))
        except GeocodingError as e:
            logger.warning("Geocoding failed for %r: %s", address, e)
            return None

    async def _lookup(self, query: str) -> Coordinates:
        params = {
            "f": "pjson",
            "maxLocations": "1",
            "outFields": "*",
            "singleLine": query,
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(self.base_url, params=params)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise GeocodingError(f"ArcGIS request failed: {e}")

        try:
            data = response.json()
        except ValueError as e:
            raise GeocodingError(f"Undecodable ArcGIS response: {e}")

        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not candidates:
            raise GeocodingError(f"No results found for address: {query}")

        try:
            location = candidates[0]["location"]
            coords = Coordinates.from_pair(float(location["y"]), float(location["x"]))
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodingError(f"Failed to parse ArcGIS response: {e}")

        if coords is None:
            raise GeocodingError(f"Unusable coordinates for address: {query}")
        return coords


# Singleton instance
geocoding_service = GeocodingService()
