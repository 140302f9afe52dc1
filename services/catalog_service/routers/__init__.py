"""Catalog Service routers."""

from services.catalog_service.routers.admin_catalog import (
    router as admin_catalog_router,
)
from services.catalog_service.routers.catalog import router as catalog_router

__all__ = ["admin_catalog_router", "catalog_router"]
