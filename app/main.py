"""
FastAPI application entry point for the EasyDrive booking API.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.api.v1 import api_router
from app.services.stores import RedisKeyValueStore, get_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Runs startup and shutdown logic.
    """
    # Startup
    # Note: schema is managed by Alembic migrations
    logger.info("Starting %s (store backend: %s)", settings.app_name, settings.store_backend)
    yield
    # Shutdown
    store = get_store()
    if isinstance(store, RedisKeyValueStore):
        await store.close()


def create_application() -> FastAPI:
    """Create and configure FastAPI application."""

    app = FastAPI(
        title=settings.app_name,
        description="""
        ## EasyDrive Booking API

        Vehicle-transport booking for dealerships:

        - **Quotes**: official region prices, or distance-based estimates
        - **Release-form extraction**: upload a PDF or photo, review the form
        - **Drafts**: save progress, bulk-upload forms for later extraction
        - **Orders**: status timeline, public tracking by order code
        - **Payments**: Stripe hosted checkout with webhook confirmation

        ### Pricing

        Taxes follow the drop-off region: QC (GST+QST) 14.975% for Montreal
        and Quebec regions, ON (HST) 13% elsewhere.
        """,
        version=settings.app_version,
        openapi_url=f"{settings.api_v1_prefix}/openapi.json",
        docs_url=f"{settings.api_v1_prefix}/docs",
        redoc_url=f"{settings.api_v1_prefix}/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.public_base_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API router
    app.include_router(api_router, prefix=settings.api_v1_prefix)

    return app


# Create application instance
app = create_application()


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "docs": f"{settings.api_v1_prefix}/docs",
        "openapi": f"{settings.api_v1_prefix}/openapi.json",
    }
