"""
Pricing table and admin override endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException

from app.core.dependencies import AdminUser, get_override_repository
from app.schemas.pricing import PricingOverrides, PricingOverrideSet, RegionPriceResponse
from app.services.pricing import fulfillment_days, list_regions
from app.services.pricing_overrides import InvalidOverrideError, PricingOverrideRepository

router = APIRouter()


@router.get("/regions", response_model=list[RegionPriceResponse])
async def list_region_prices(
    overrides: PricingOverrideRepository = Depends(get_override_repository),
):
    """All service regions, in match order, with their effective prices."""
    current = await overrides.get_all()
    result = []
    for price in list_regions(current):
        days_min, days_max = fulfillment_days(price.region)
        result.append(RegionPriceResponse(
            region=price.region,
            total_price=price.total_price,
            base_price=price.base_price,
            overridden=price.overridden,
            days_min=days_min,
            days_max=days_max,
        ))
    return result


@router.get("/overrides", response_model=PricingOverrides)
async def get_overrides(
    admin: AdminUser,
    overrides: PricingOverrideRepository = Depends(get_override_repository),
):
    return PricingOverrides(overrides=await overrides.get_all())


@router.put("/overrides", response_model=PricingOverrides)
async def replace_overrides(
    data: PricingOverrides,
    admin: AdminUser,
    overrides: PricingOverrideRepository = Depends(get_override_repository),
):
    """
    Replace every override at once.

    Keys must be known region names and prices positive integers; nothing
    is written when any entry is invalid.
    """
    try:
        current = await overrides.replace_all(data.overrides)
    except InvalidOverrideError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PricingOverrides(overrides=current)


@router.put("/overrides/{region:path}", response_model=PricingOverrides)
async def set_override(
    region: str,
    data: PricingOverrideSet,
    admin: AdminUser,
    overrides: PricingOverrideRepository = Depends(get_override_repository),
):
    try:
        current = await overrides.set(region, data.total_price)
    except InvalidOverrideError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PricingOverrides(overrides=current)


@router.delete("/overrides", status_code=204)
async def clear_overrides(
    admin: AdminUser,
    overrides: PricingOverrideRepository = Depends(get_override_repository),
):
    await overrides.clear_all()


@router.delete("/overrides/{region:path}", response_model=PricingOverrides)
async def clear_override(
    region: str,
    admin: AdminUser,
    overrides: PricingOverrideRepository = Depends(get_override_repository),
):
    """Revert one region to its official price."""
    return PricingOverrides(overrides=await overrides.clear(region))
