"""Background tasks for orders service."""

from __future__ import annotations

from datetime import timedelta

from libs.common.config import get_settings
from libs.db.config import Database
from services.orders_service.services.order_ops import expire_abandoned_orders
from services.payments_service.razorpay_client import get_razorpay_client


async def sweep_abandoned_orders(database: Database) -> dict[str, int]:
    """Cancel (or confirm from the gateway) orders left unpaid past the TTL."""
    settings = get_settings()
    gateway = get_razorpay_client()

    async with database.session() as db:
        return await expire_abandoned_orders(
            db,
            ttl=timedelta(minutes=settings.ORDER_PAYMENT_TTL_MINUTES),
            gateway=gateway,
            batch_size=settings.ORDER_SWEEP_BATCH_SIZE,
        )
