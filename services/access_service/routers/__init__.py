"""Access Service routers."""

from services.access_service.routers.access_codes import router as access_router

__all__ = ["access_router"]
