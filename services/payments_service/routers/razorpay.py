"""Razorpay checkout and verification endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.rate_limit import payment_limit
from libs.db.session import get_async_db
from services.payments_service.razorpay_client import (
    RazorpayClient,
    get_razorpay_client,
)
from services.payments_service.schemas import (
    CheckoutRequest,
    CheckoutResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from services.payments_service.services.checkout import create_checkout_session
from services.payments_service.services.verification import verify_payment
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["payments"])


@router.post("/create-razorpay-order", response_model=CheckoutResponse)
@payment_limit
async def create_razorpay_order(
    request: Request,
    payload: CheckoutRequest,
    current_user: AuthUser = Depends(get_current_user),
    gateway: Optional[RazorpayClient] = Depends(get_razorpay_client),
    db: AsyncSession = Depends(get_async_db),
):
    """Open a gateway checkout session for one of the caller's orders."""
    settings = get_settings()
    return await create_checkout_session(
        db,
        gateway,
        owner_id=current_user.user_id,
        order_id=payload.order_id,
        amount=payload.amount,
        currency=settings.PAYMENT_CURRENCY,
    )


@router.post("/verify-razorpay-payment", response_model=VerifyPaymentResponse)
@payment_limit
async def verify_razorpay_payment(
    request: Request,
    payload: VerifyPaymentRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Verify the checkout callback signature and mark the order paid."""
    settings = get_settings()
    order = await verify_payment(
        db,
        key_secret=settings.RAZORPAY_KEY_SECRET,
        owner_id=current_user.user_id,
        order_id=payload.order_id,
        razorpay_order_id=payload.razorpay_order_id,
        razorpay_payment_id=payload.razorpay_payment_id,
        razorpay_signature=payload.razorpay_signature,
    )
    return {"success": True, "order": order}
