"""Orders Service routers."""

from services.orders_service.routers.admin import router as admin_orders_router
from services.orders_service.routers.orders import router as orders_router

__all__ = ["admin_orders_router", "orders_router"]
