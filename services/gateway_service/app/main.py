"""FastAPI application entrypoint for the ZoyaBites API.

Every service router is mounted under ``/api`` on this single app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.logging import get_logger
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from libs.db.config import Database
from services.access_service.routers import access_router
from services.catalog_service.routers import admin_catalog_router, catalog_router
from services.media_service.routers import media_router
from services.members_service.routers import (
    addresses_router,
    admin_router,
    auth_router,
    profile_router,
)
from services.orders_service.routers import admin_orders_router, orders_router
from services.payments_service.routers import payments_router

logger = get_logger(__name__)

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    database = Database.from_settings(settings)
    database.connect()
    await database.create_all()
    app.state.database = database
    logger.info("Database connected")
    try:
        yield
    finally:
        await database.dispose()
        logger.info("Database disposed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    settings = get_settings()
    app = FastAPI(
        title="ZoyaBites API",
        version="0.1.0",
        description="Ordering, payments and menu management for ZoyaBites.",
        lifespan=lifespan,
    )

    # Add rate limiter state to app
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    # Add global exception handlers for consistent error responses
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    @app.get(f"{API_PREFIX}/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Simple readiness endpoint."""
        return {"status": "ok"}

    # Accounts
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(profile_router, prefix=API_PREFIX)
    app.include_router(addresses_router, prefix=API_PREFIX)
    app.include_router(admin_router, prefix=API_PREFIX)

    # Menu
    app.include_router(catalog_router, prefix=API_PREFIX)
    app.include_router(admin_catalog_router, prefix=API_PREFIX)

    # Orders and payments
    app.include_router(orders_router, prefix=API_PREFIX)
    app.include_router(admin_orders_router, prefix=API_PREFIX)
    app.include_router(payments_router, prefix=API_PREFIX)

    # Operator tools
    app.include_router(access_router, prefix=API_PREFIX)
    app.include_router(media_router, prefix=API_PREFIX)

    return app


app = create_app()
