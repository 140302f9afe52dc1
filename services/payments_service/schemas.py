"""Pydantic schemas for payments service."""

from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field
from services.orders_service.schemas import OrderResponse


class CheckoutRequest(BaseModel):
    # Optional so a missing field yields the checkout error message, not a
    # generic validation error.
    amount: Optional[Decimal] = None
    order_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("order_id", "orderId")
    )


class CheckoutResponse(BaseModel):
    razorpay_order_id: str
    razorpay_key_id: str
    amount: int  # in paise
    currency: str
    order_id: str


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    order_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("order_id", "orderId")
    )


class VerifyPaymentResponse(BaseModel):
    success: bool
    order: OrderResponse
