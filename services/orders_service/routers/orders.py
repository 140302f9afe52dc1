"""Customer order endpoints plus the operator status and delete routes."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from libs.auth.dependencies import get_current_user, require_operator
from libs.auth.models import AuthUser
from libs.common.rate_limit import polling_limit
from libs.db.session import get_async_db
from services.members_service.routers._helpers import account_id
from services.members_service.services import address_ops
from services.orders_service.models import OrderStatus
from services.orders_service.schemas import (
    OrderCreate,
    OrderEnvelope,
    OrderListEnvelope,
    OrderStatusUpdate,
)
from services.orders_service.services import order_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderEnvelope, status_code=status.HTTP_201_CREATED)
async def place_order(
    payload: OrderCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a pending order for the signed-in user.

    A saved ``address_id`` is copied onto the order as a text snapshot.
    """
    delivery_address = payload.delivery_address
    if payload.address_id and not delivery_address:
        address = await address_ops.get_address(
            db, account_id(current_user), payload.address_id
        )
        delivery_address = address.as_delivery_string()

    order = await order_ops.create_order(
        db,
        current_user.user_id,
        [item.model_dump() for item in payload.items],
        payload.total_amount,
        delivery_address=delivery_address,
        notes=payload.notes,
    )
    return {"order": order}


@router.get("", response_model=OrderListEnvelope)
@polling_limit
async def list_my_orders(
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List the signed-in user's orders, newest first."""
    orders = await order_ops.list_orders(db, current_user.user_id)
    return {"orders": orders}


@router.get("/all", response_model=OrderListEnvelope)
async def list_all_orders(
    status_filter: Optional[OrderStatus] = None,
    current_user: AuthUser = Depends(require_operator),
    db: AsyncSession = Depends(get_async_db),
):
    orders = await order_ops.list_all_orders(db, status_filter)
    return {"orders": orders}


@router.get("/{order_id}", response_model=OrderEnvelope)
async def get_my_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.get_order(db, order_id, owner_id=current_user.user_id)
    return {"order": order}


@router.put("/{order_id}/status", response_model=OrderEnvelope)
async def update_order_status(
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


@router.delete("/{order_id}")
async def delete_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(require_operator),
    db: AsyncSession = Depends(get_async_db),
):
    await order_ops.delete_order(db, order_id, current_user.user_id)
    return {"success": True}
