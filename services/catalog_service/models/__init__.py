"""Catalog Service models package."""

from services.catalog_service.models.catalog import Category, Product  # noqa: F401

__all__ = ["Category", "Product"]
