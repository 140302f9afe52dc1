"""Admin dashboard aliases for order management."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_operator
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.orders_service.models import OrderStatus
from services.orders_service.schemas import (
    OrderEnvelope,
    OrderListEnvelope,
    OrderStatusUpdate,
)
from services.orders_service.services import order_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin/orders", tags=["admin-orders"])


@router.get("", response_model=OrderListEnvelope)
async def admin_list_orders(
    status_filter: Optional[OrderStatus] = None,
    current_user: AuthUser = Depends(require_operator),
    db: AsyncSession = Depends(get_async_db),
):
    orders = await order_ops.list_all_orders(db, status_filter)
    return {"orders": orders}


@router.put("/{order_id}", response_model=OrderEnvelope)
async def admin_update_order(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    current_user: AuthUser = Depends(require_operator),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.set_status(
        db,
        order_id,
        payload.status,
        current_user.user_id,
        override=payload.override,
        reason=payload.reason,
    )
    return {"order": order}
