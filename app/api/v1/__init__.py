"""
API v1 router aggregation.
"""
from fastapi import APIRouter

from app.api.v1.endpoints import (
    checkout,
    drafts,
    extraction,
    geocoding,
    orders,
    pricing,
    quotes,
    receipts,
    staff,
    tracking,
)

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(
    quotes.router,
    prefix="/quotes",
    tags=["Quotes"],
)

api_router.include_router(
    pricing.router,
    prefix="/pricing",
    tags=["Pricing"],
)

api_router.include_router(
    geocoding.router,
    prefix="",
    tags=["Geocoding"],
)

api_router.include_router(
    extraction.router,
    prefix="/extraction",
    tags=["Extraction"],
)

api_router.include_router(
    drafts.router,
    prefix="/drafts",
    tags=["Drafts"],
)

api_router.include_router(
    orders.router,
    prefix="/orders",
    tags=["Orders"],
)

api_router.include_router(
    staff.router,
    prefix="/staff",
    tags=["Staff"],
)

api_router.include_router(
    checkout.router,
    prefix="",
    tags=["Payments"],
)

api_router.include_router(
    tracking.router,
    prefix="",
    tags=["Tracking"],
)

api_router.include_router(
    receipts.router,
    prefix="/receipts",
    tags=["Receipts"],
)
