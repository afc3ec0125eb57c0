"""
Official region price table.

Regions are matched against free-text addresses in list order and the
first match wins, so specific areas (Oshawa, Trois-Rivières) sit ahead of
the broader regions that would otherwise shadow them. Overrides replace a
region's price at read time; the static table is never mutated.
"""
import re
from dataclasses import dataclass
from typing import Mapping, Optional


@dataclass(frozen=True)
class PricingRegion:
    """A named service area with a fixed total price."""
    name: str
    total_price: int
    geocode_query: str
    patterns: tuple[re.Pattern, ...]

    def matches(self, address: str) -> bool:
        return any(p.search(address) for p in self.patterns)


@dataclass(frozen=True)
class RegionPrice:
    """Effective price for a region, after overrides."""
    region: str
    total_price: int
    base_price: int

    @property
    def overridden(self) -> bool:
        return self.total_price != self.base_price


def _words(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(rf"\b{p}\b", re.IGNORECASE) for p in patterns)


OFFICIAL_REGIONS: tuple[PricingRegion, ...] = (
    PricingRegion(
        "Toronto (Oshawa Region)", 385, "Oshawa, ON, Canada",
        _words("oshawa", "ajax", "whitby", "pickering"),
    ),
    PricingRegion(
        "Toronto (Downtown / Brampton / Mississauga)", 435, "Toronto, ON, Canada",
        _words("toronto", "downtown", "brampton", "mississauga"),
    ),
    PricingRegion("Hamilton", 535, "Hamilton, ON, Canada", _words("hamilton")),
    PricingRegion("Niagara Falls", 585, "Niagara Falls, ON, Canada", _words(r"niagara\s*falls")),
    PricingRegion("Windsor", 635, "Windsor, ON, Canada", _words("windsor")),
    PricingRegion("London, Ontario", 585, "London, ON, Canada", _words("london")),
    PricingRegion("Kingston", 235, "Kingston, ON, Canada", _words("kingston")),
    PricingRegion("Belleville", 285, "Belleville, ON, Canada", _words("belleville")),
    PricingRegion("Cornwall", 205, "Cornwall, ON, Canada", _words("cornwall")),
    PricingRegion("Peterborough", 385, "Peterborough, ON, Canada", _words("peterborough")),
    PricingRegion("Barrie", 435, "Barrie, ON, Canada", _words("barrie")),
    PricingRegion("North Bay", 435, "North Bay, ON, Canada", _words(r"north\s*bay")),
    PricingRegion("Timmins", 685, "Timmins, ON, Canada", _words("timmins")),
    PricingRegion(
        "Montreal (Trois-Rivières Region)", 335, "Trois-Rivières, QC, Canada",
        _words(r"trois[-\s]*rivi(e|è)res"),
    ),
    PricingRegion("Montreal", 285, "Montreal, QC, Canada", _words(r"montr(e|é)al")),
    PricingRegion(
        "Quebec City", 435, "Quebec City, QC, Canada",
        _words(r"qu(e|é)bec\s*city", r"ville\s*de\s*qu(e|é)bec"),
    ),
)

REGIONS_BY_NAME: dict[str, PricingRegion] = {r.name: r for r in OFFICIAL_REGIONS}

SERVICE_AREAS: tuple[str, ...] = tuple(r.name for r in OFFICIAL_REGIONS)


def _effective(region: PricingRegion, overrides: Optional[Mapping[str, int]]) -> RegionPrice:
    price = region.total_price
    if overrides:
        override = overrides.get(region.name)
        if isinstance(override, int) and override > 0:
            price = override
    return RegionPrice(region=region.name, total_price=price, base_price=region.total_price)


def match_region_for_address(
    address: Optional[str],
    overrides: Optional[Mapping[str, int]] = None,
) -> Optional[RegionPrice]:
    """
    Price for the first region whose keywords appear in ``address``.

    Returns None when nothing matches, which callers treat as "fall back to
    a distance-based estimate".
    """
    addr = (address or "").strip()
    if not addr:
        return None
    for region in OFFICIAL_REGIONS:
        if region.matches(addr):
            return _effective(region, overrides)
    return None


def price_for_region(
    name: Optional[str],
    overrides: Optional[Mapping[str, int]] = None,
) -> Optional[RegionPrice]:
    """Price for an exact region name."""
    region = REGIONS_BY_NAME.get((name or "").strip())
    if region is None:
        return None
    return _effective(region, overrides)


def geocode_query_for_region(name: str) -> str:
    region = REGIONS_BY_NAME.get(name)
    return region.geocode_query if region else f"{name}, Canada"


def fulfillment_days(region: Optional[str]) -> tuple[int, int]:
    """(min, max) business days: Montreal regions 1-2, everything else 3-8."""
    if "montreal" in (region or "").lower():
        return 1, 2
    return 3, 8


def list_regions(overrides: Optional[Mapping[str, int]] = None) -> list[RegionPrice]:
    """Every region in table order with its effective price."""
    return [_effective(region, overrides) for region in OFFICIAL_REGIONS]
