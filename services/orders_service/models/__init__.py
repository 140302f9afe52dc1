"""Orders Service models package."""

from services.orders_service.models.core import (  # noqa: F401
    Order,
    OrderAuditLog,
    OrderItem,
)
from services.orders_service.models.enums import (  # noqa: F401
    OrderStatus,
    PaymentStatus,
    enum_values,
)

__all__ = [
    "Order",
    "OrderAuditLog",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "enum_values",
]
