"""Access Service models package."""

from services.access_service.models.access_code import AccessCode  # noqa: F401

__all__ = ["AccessCode"]
