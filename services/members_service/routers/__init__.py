"""Members service routers package."""

from services.members_service.routers.addresses import router as addresses_router
from services.members_service.routers.admin import router as admin_router
from services.members_service.routers.auth import router as auth_router
from services.members_service.routers.profile import router as profile_router

__all__ = [
    "addresses_router",
    "admin_router",
    "auth_router",
    "profile_router",
]
