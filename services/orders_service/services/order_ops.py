"""Order store and status machine.

Orders move ``pending -> confirmed -> preparing -> out_for_delivery ->
delivered``; ``cancelled`` is reachable from every non-terminal status. The
``pending -> confirmed`` step belongs to payment verification and is never a
legal manual transition. Operators can still force any status with
``override=True``; forced moves are audited like any other.
"""

import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from fastapi import HTTPException, status
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.orders_service.models import (
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
)
from services.orders_service.routers._helpers import log_audit
from services.payments_service.razorpay_client import RazorpayClient, RazorpayError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

SWEEP_ACTOR = "system:payment-sweep"

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset(
        {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED}
    ),
    OrderStatus.OUT_FOR_DELIVERY: frozenset(
        {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
    ),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

_JOURNEY = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]


class OrderNotFound(HTTPException):
    def __init__(self, order_id: uuid.UUID):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND, detail="Order not found"
        )
        self.order_id = order_id


class InvalidStatusTransition(HTTPException):
    def __init__(self, current: OrderStatus, requested: OrderStatus):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=(
                f"Cannot change order status from {current.value} "
                f"to {requested.value}"
            ),
        )
        self.current = current
        self.requested = requested


def is_allowed_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[current]


def is_backward_move(current: OrderStatus, requested: OrderStatus) -> bool:
    """True when ``requested`` undoes progress (including reopening a cancel)."""
    if current == OrderStatus.CANCELLED:
        return True
    if requested == OrderStatus.CANCELLED:
        return False
    return _JOURNEY.index(requested) < _JOURNEY.index(current)


# ============================================================================
# ORDER STORE
# ============================================================================


async def create_order(
    db: AsyncSession,
    owner_id: str,
    items: Iterable[dict],
    total_amount: Decimal,
    delivery_address: Optional[str] = None,
    notes: Optional[str] = None,
) -> Order:
    """Persist a new pending/unpaid order.

    Item names and prices are stored as given so later menu edits never
    rewrite order history.
    """
    line_items = [
        OrderItem(
            product_id=item.get("product_id"),
            name=item["name"],
            quantity=item["quantity"],
            price=item["price"],
        )
        for item in items
    ]
    if not line_items:
        raise HTTPException(status_code=400, detail="Order must contain items")
    if total_amount < 0:
        raise HTTPException(status_code=400, detail="Total amount cannot be negative")

    order = Order(
        user_id=owner_id,
        total_amount=total_amount,
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        delivery_address=delivery_address,
        notes=notes,
        items=line_items,
    )
    db.add(order)
    await db.commit()
    await db.refresh(order)

    logger.info(
        "Order created",
        extra={
            "extra_fields": {
                "order_id": str(order.id),
                "user_id": owner_id,
                "total_amount": str(order.total_amount),
                "item_count": len(line_items),
            }
        },
    )
    return order


async def list_orders(db: AsyncSession, owner_id: str) -> list[Order]:
    """Return the owner's orders, newest first."""
    result = await db.execute(
        select(Order)
        .where(Order.user_id == owner_id)
        .order_by(Order.created_at.desc())
    )
    return list(result.scalars().all())


async def list_all_orders(
    db: AsyncSession, status_filter: Optional[OrderStatus] = None
) -> list[Order]:
    query = select(Order)
    if status_filter:
        query = query.where(Order.status == status_filter)
    result = await db.execute(query.order_by(Order.created_at.desc()))
    return list(result.scalars().all())


async def get_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    owner_id: Optional[str] = None,
    for_update: bool = False,
) -> Order:
    """Load an order or raise ``OrderNotFound``.

    When ``owner_id`` is given, orders belonging to someone else are reported
    as missing.
    """
    query = select(Order).where(Order.id == order_id)
    if owner_id is not None:
        query = query.where(Order.user_id == owner_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)

    result = await db.execute(query)
    order = result.scalar_one_or_none()
    if not order:
        raise OrderNotFound(order_id)
    return order


async def set_status(
    db: AsyncSession,
    order_id: uuid.UUID,
    new_status: OrderStatus,
    actor: str,
    override: bool = False,
    reason: Optional[str] = None,
    expected_status: Optional[OrderStatus] = None,
) -> Order:
    """Move an order to ``new_status``.

    With ``expected_status`` the change only applies if the locked row is still
    in that status; otherwise ``InvalidStatusTransition`` is raised. Payment
    status is never touched here.
    """
    order = await get_order(db, order_id, for_update=True)
    current = order.status

    if expected_status is not None and current != expected_status:
        raise InvalidStatusTransition(current, new_status)

    if new_status == current:
        return order

    legal = is_allowed_transition(current, new_status)
    if not legal and not override:
        raise InvalidStatusTransition(current, new_status)

    log_fields = {
        "order_id": str(order.id),
        "old_status": current.value,
        "new_status": new_status.value,
        "performed_by": actor,
        "override": not legal,
    }
    if not legal and is_backward_move(current, new_status):
        logger.warning(
            "Order status moved backwards by override",
            extra={"extra_fields": {**log_fields, "reason": reason}},
        )

    order.status = new_status
    await log_audit(
        db,
        order.id,
        "status_changed" if legal else "status_overridden",
        actor,
        old_value={"status": current.value},
        new_value={"status": new_status.value},
        notes=reason,
    )
    await db.commit()
    await db.refresh(order)

    logger.info("Order status changed", extra={"extra_fields": log_fields})
    return order


async def delete_order(db: AsyncSession, order_id: uuid.UUID, actor: str) -> None:
    order = await get_order(db, order_id)
    snapshot = {
        "order_id": str(order.id),
        "user_id": order.user_id,
        "status": order.status.value,
        "payment_status": order.payment_status.value,
        "total_amount": str(order.total_amount),
        "performed_by": actor,
    }
    await db.delete(order)
    await db.commit()
    logger.warning("Order deleted", extra={"extra_fields": snapshot})


# ============================================================================
# ABANDONED PAYMENT SWEEP
# ============================================================================


async def _captured_payment_id(
    gateway: RazorpayClient, gateway_order_id: str
) -> Optional[str]:
    payments = await gateway.fetch_order_payments(gateway_order_id)
    for payment in payments:
        if payment.get("status") == "captured":
            return payment.get("id")
    return None


async def expire_abandoned_orders(
    db: AsyncSession,
    ttl: timedelta,
    now: Optional[datetime] = None,
    gateway: Optional[RazorpayClient] = None,
    batch_size: int = 200,
) -> dict[str, int]:
    """Cancel unpaid pending orders older than ``ttl``.

    Orders that reached the gateway are checked there first; a paid gateway
    order is confirmed through payment verification instead of cancelled.
    Gateway failures leave the order for the next run.
    """
    from services.payments_service.services.verification import (
        confirm_from_gateway,
    )

    now = now or utc_now()
    cutoff = now - ttl
    ttl_minutes = int(ttl.total_seconds() // 60)
    counts = {"cancelled": 0, "confirmed": 0, "skipped": 0}

    result = await db.execute(
        select(Order)
        .where(
            Order.status == OrderStatus.PENDING,
            Order.payment_status == PaymentStatus.PENDING,
            Order.created_at <= cutoff,
        )
        .order_by(Order.created_at.asc())
        .limit(batch_size)
    )
    stale = list(result.scalars().all())

    for order in stale:
        paid_at_gateway = False
        payment_id = None
        if order.razorpay_order_id and gateway is not None:
            try:
                gateway_order = await gateway.fetch_order(order.razorpay_order_id)
                paid_at_gateway = gateway_order.status == "paid"
                if paid_at_gateway:
                    payment_id = await _captured_payment_id(
                        gateway, order.razorpay_order_id
                    )
            except RazorpayError as exc:
                logger.warning(
                    "Gateway lookup failed during sweep for order %s: %s",
                    order.id,
                    exc,
                )
                counts["skipped"] += 1
                continue

        # The batch was read unlocked; a verification may have landed since.
        try:
            order = await get_order(db, order.id, for_update=True)
        except OrderNotFound:
            counts["skipped"] += 1
            continue

        if order.payment_status == PaymentStatus.PAID:
            await db.commit()
            counts["skipped"] += 1
            continue

        if paid_at_gateway:
            await confirm_from_gateway(db, order, payment_id)
            counts["confirmed"] += 1
            continue

        if order.status != OrderStatus.PENDING:
            await db.commit()
            counts["skipped"] += 1
            continue

        await set_status(
            db,
            order.id,
            OrderStatus.CANCELLED,
            SWEEP_ACTOR,
            reason=f"payment not completed within {ttl_minutes} minutes",
            expected_status=OrderStatus.PENDING,
        )
        counts["cancelled"] += 1

    if stale:
        logger.info(
            "Abandoned payment sweep finished",
            extra={"extra_fields": {**counts, "examined": len(stale)}},
        )
    return counts
