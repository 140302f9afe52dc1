"""Members Service models package."""

from services.members_service.models.member import Address, User  # noqa: F401

__all__ = ["Address", "User"]
