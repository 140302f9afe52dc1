"""Checkout session initiator.

Turns an existing unpaid order into a Razorpay gateway order the checkout
widget can collect payment for. No local order is ever created here.
"""

import uuid
from decimal import Decimal
from typing import Awaitable, Optional, TypeVar

from fastapi import HTTPException, status
from libs.common.currency import to_minor_units
from libs.common.logging import get_logger
from services.orders_service.models import Order, OrderStatus, PaymentStatus
from services.orders_service.services.order_ops import get_order
from services.payments_service.razorpay_client import (
    GatewayOrder,
    RazorpayClient,
    RazorpayError,
    RazorpayTimeoutError,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

T = TypeVar("T")


def _parse_order_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise HTTPException(status_code=404, detail="Order not found")


def _ensure_payable(order: Order) -> None:
    if order.payment_status == PaymentStatus.PAID:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="order already paid"
        )
    if order.status == OrderStatus.CANCELLED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="order was cancelled"
        )


def _session(
    gateway: RazorpayClient,
    order: Order,
    gateway_order_id: str,
    amount_minor: int,
    currency: str,
) -> dict:
    return {
        "razorpay_order_id": gateway_order_id,
        "razorpay_key_id": gateway.key_id,
        "amount": amount_minor,
        "currency": currency,
        "order_id": str(order.id),
    }


async def _call_gateway(order: Order, action: str, call: Awaitable[T]) -> T:
    """Await a gateway call, mapping its failures to 504/502."""
    try:
        return await call
    except RazorpayTimeoutError:
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="payment gateway timed out, please retry",
        )
    except RazorpayError as exc:
        logger.error(
            f"Gateway rejected {action}",
            extra={
                "extra_fields": {
                    "order_id": str(order.id),
                    "status_code": exc.status_code,
                    "response": exc.response_data,
                }
            },
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="failed to create payment",
        )


async def _fetch_unless_gone(
    gateway: RazorpayClient, gateway_order_id: str
) -> Optional[GatewayOrder]:
    try:
        return await gateway.fetch_order(gateway_order_id)
    except RazorpayTimeoutError:
        raise
    except RazorpayError as exc:
        if exc.status_code == 404:
            return None
        raise


async def _reusable_gateway_order(
    gateway: RazorpayClient, order: Order, amount_minor: int
) -> Optional[GatewayOrder]:
    """The order's current gateway order, if checkout can continue on it.

    Reusing it keeps a payment made in an earlier checkout window verifiable.
    Raises 409 when the gateway already holds a payment for it.
    """
    if not order.razorpay_order_id:
        return None
    existing = await _call_gateway(
        order, "order lookup", _fetch_unless_gone(gateway, order.razorpay_order_id)
    )
    if existing is None:
        return None
    if existing.status == "paid":
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="order already paid"
        )
    if existing.amount != amount_minor:
        return None
    return existing


async def create_checkout_session(
    db: AsyncSession,
    gateway: Optional[RazorpayClient],
    *,
    owner_id: str,
    order_id: Optional[str],
    amount: Optional[Decimal],
    currency: str = "INR",
) -> dict:
    """Start or resume checkout for an unpaid order.

    The order row is only locked around the write of the gateway reference,
    never across a gateway call.
    """
    if amount is None or not order_id:
        raise HTTPException(status_code=400, detail="Missing amount or order_id")
    if gateway is None:
        raise HTTPException(status_code=500, detail="gateway not configured")

    local_id = _parse_order_id(order_id)
    order = await get_order(db, local_id, owner_id=owner_id)
    _ensure_payable(order)

    amount_minor = to_minor_units(amount)
    if amount_minor != to_minor_units(order.total_amount):
        logger.warning(
            "Checkout amount does not match order total",
            extra={
                "extra_fields": {
                    "order_id": str(order.id),
                    "requested_minor": amount_minor,
                    "expected_minor": to_minor_units(order.total_amount),
                }
            },
        )
        raise HTTPException(
            status_code=400, detail="amount does not match order total"
        )

    existing = await _reusable_gateway_order(gateway, order, amount_minor)
    if existing is not None:
        logger.info(
            "Checkout session resumed",
            extra={
                "extra_fields": {
                    "order_id": str(order.id),
                    "razorpay_order_id": existing.id,
                }
            },
        )
        return _session(
            gateway, order, existing.id, amount_minor, existing.currency or currency
        )

    seen_reference = order.razorpay_order_id
    gateway_order = await _call_gateway(
        order,
        "order creation",
        gateway.create_order(
            amount_minor,
            currency=currency,
            receipt=str(order.id),
            notes={"order_id": str(order.id)},
        ),
    )

    order = await get_order(db, local_id, owner_id=owner_id, for_update=True)
    _ensure_payable(order)
    if order.razorpay_order_id and order.razorpay_order_id != seen_reference:
        # A concurrent checkout stored its reference first; keep that one
        await db.commit()
        return _session(gateway, order, order.razorpay_order_id, amount_minor, currency)

    order.razorpay_order_id = gateway_order.id
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(
            "Could not store gateway order reference",
            extra={
                "extra_fields": {
                    "order_id": str(order.id),
                    "razorpay_order_id": gateway_order.id,
                }
            },
        )
        raise HTTPException(status_code=500, detail="failed to create payment")

    logger.info(
        "Checkout session created",
        extra={
            "extra_fields": {
                "order_id": str(order.id),
                "razorpay_order_id": gateway_order.id,
                "amount_minor": amount_minor,
            }
        },
    )
    currency = gateway_order.currency or currency
    return _session(gateway, order, gateway_order.id, amount_minor, currency)
