"""Payment verifier.

The only code path that marks an order paid. A checkout callback is trusted
only when its signature, ``HMAC_SHA256(secret, "<order_ref>|<payment_ref>")``,
matches; the sweep may also confirm an order the gateway itself reports paid.
"""

import hashlib
import hmac
import uuid
from typing import Optional

from fastapi import HTTPException, status
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.orders_service.models import Order, OrderStatus, PaymentStatus
from services.orders_service.routers._helpers import log_audit
from services.orders_service.services.order_ops import SWEEP_ACTOR, get_order
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

VERIFICATION_FAILED = "payment verification failed"


def compute_signature(secret: str, order_ref: str, payment_ref: str) -> str:
    message = f"{order_ref}|{payment_ref}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def signature_matches(
    secret: str, order_ref: str, payment_ref: str, signature: str
) -> bool:
    expected = compute_signature(secret, order_ref, payment_ref)
    # Bytes, so non-ASCII input is a mismatch rather than a TypeError
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))


def _reject(order_id: str, razorpay_order_id: str, reason: str):
    logger.warning(
        "Payment verification rejected",
        extra={
            "extra_fields": {
                "security_event": True,
                "reason": reason,
                "order_id": order_id,
                "razorpay_order_id": razorpay_order_id,
            }
        },
    )
    raise HTTPException(status_code=400, detail=VERIFICATION_FAILED)


async def _record_payment(
    db: AsyncSession,
    order: Order,
    payment_id: Optional[str],
    actor: str,
    source: str,
) -> bool:
    """Mark ``order`` paid. Returns False when the order had been cancelled."""
    old_status = order.status
    cancelled = old_status == OrderStatus.CANCELLED

    order.payment_status = PaymentStatus.PAID
    if payment_id:
        order.razorpay_payment_id = payment_id
    order.paid_at = utc_now()
    if old_status == OrderStatus.PENDING:
        order.status = OrderStatus.CONFIRMED

    await log_audit(
        db,
        order.id,
        "payment_verified",
        actor,
        old_value={"status": old_status.value, "payment_status": "pending"},
        new_value={
            "status": order.status.value,
            "payment_status": "paid",
            "razorpay_payment_id": order.razorpay_payment_id,
        },
        notes=source,
    )
    await db.commit()
    await db.refresh(order)

    log_fields = {
        "order_id": str(order.id),
        "razorpay_order_id": order.razorpay_order_id,
        "razorpay_payment_id": order.razorpay_payment_id,
        "source": source,
    }
    if cancelled:
        logger.error(
            "Payment captured for a cancelled order; refund required",
            extra={"extra_fields": log_fields},
        )
        return False

    logger.info("Order payment verified", extra={"extra_fields": log_fields})
    return True


async def verify_payment(
    db: AsyncSession,
    *,
    key_secret: Optional[str],
    owner_id: str,
    order_id: Optional[str],
    razorpay_order_id: Optional[str],
    razorpay_payment_id: Optional[str],
    razorpay_signature: Optional[str],
) -> Order:
    if not all(
        (order_id, razorpay_order_id, razorpay_payment_id, razorpay_signature)
    ):
        raise HTTPException(status_code=400, detail="Missing parameters")
    if not key_secret:
        raise HTTPException(status_code=500, detail="gateway not configured")

    if not signature_matches(
        key_secret, razorpay_order_id, razorpay_payment_id, razorpay_signature
    ):
        _reject(order_id, razorpay_order_id, "signature_mismatch")

    try:
        local_id = uuid.UUID(order_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="Order not found")

    order = await get_order(db, local_id, owner_id=owner_id, for_update=True)

    if order.razorpay_order_id != razorpay_order_id:
        _reject(order_id, razorpay_order_id, "gateway_order_mismatch")

    if order.payment_status == PaymentStatus.PAID:
        if order.razorpay_payment_id == razorpay_payment_id:
            # Client retry of an already applied verification
            return order
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="order already paid"
        )

    applied = await _record_payment(
        db, order, razorpay_payment_id, actor=owner_id, source="checkout_callback"
    )
    if not applied:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="order was cancelled"
        )
    return order


async def confirm_from_gateway(
    db: AsyncSession,
    order: Order,
    payment_id: Optional[str],
    actor: str = SWEEP_ACTOR,
) -> Order:
    """Mark an order paid after the gateway itself reported it paid."""
    order = await get_order(db, order.id, for_update=True)
    if order.payment_status == PaymentStatus.PAID:
        return order
    await _record_payment(db, order, payment_id, actor=actor, source="gateway_lookup")
    return order
