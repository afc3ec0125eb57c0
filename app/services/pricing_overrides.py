"""
Admin price overrides, persisted in the keyed store.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from app.services.pricing import REGIONS_BY_NAME
from app.services.stores import KeyValueStore

logger = logging.getLogger(__name__)

OVERRIDES_KEY = "pricing_overrides"


class InvalidOverrideError(ValueError):
    """Unknown region or non-positive price."""


def _coerce_price(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite() or number <= 0 or number != number.to_integral_value():
        return None
    return int(number)


class PricingOverrideRepository:
    """Region name -> replacement total price."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get_all(self) -> dict[str, int]:
        """Current overrides; malformed persisted entries are dropped."""
        raw = await self.store.get_json(OVERRIDES_KEY)
        if not isinstance(raw, dict):
            return {}
        out: dict[str, int] = {}
        for key, value in raw.items():
            region = str(key).strip()
            price = _coerce_price(value)
            if region not in REGIONS_BY_NAME or price is None:
                logger.warning("Ignoring invalid pricing override %r=%r", key, value)
                continue
            out[region] = price
        return out

    async def set(self, region: str, price: int) -> dict[str, int]:
        self._validate(region, price)
        current = await self.get_all()
        current[region] = price
        await self.store.put_json(OVERRIDES_KEY, current)
        logger.info("Pricing override set: %s -> %s", region, price)
        return current

    async def replace_all(self, overrides: Mapping[str, int]) -> dict[str, int]:
        for region, price in overrides.items():
            self._validate(region, price)
        await self.store.put_json(OVERRIDES_KEY, dict(overrides))
        logger.info("Pricing overrides replaced (%d regions)", len(overrides))
        return dict(overrides)

    async def clear(self, region: str) -> dict[str, int]:
        current = await self.get_all()
        current.pop(region, None)
        await self.store.put_json(OVERRIDES_KEY, current)
        return current

    async def clear_all(self) -> None:
        await self.store.delete(OVERRIDES_KEY)
        logger.info("Pricing overrides cleared")

    @staticmethod
    def _validate(region: str, price: Any) -> None:
        if region not in REGIONS_BY_NAME:
            raise InvalidOverrideError(f"Unknown region: {region}")
        if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
            raise InvalidOverrideError(f"Price for {region} must be a positive integer")
