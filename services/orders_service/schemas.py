"""Pydantic schemas for orders service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from services.orders_service.models import OrderStatus, PaymentStatus

# ============================================================================
# ORDER ITEM SCHEMAS
# ============================================================================


class OrderItemIn(BaseModel):
    product_id: Optional[uuid.UUID] = Field(
        None, validation_alias=AliasChoices("product_id", "productId")
    )
    name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(..., ge=1, validation_alias=AliasChoices("quantity", "qty"))
    price: Decimal = Field(..., ge=0)


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: Optional[uuid.UUID] = None
    name: str
    quantity: int
    price: Decimal


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class OrderCreate(BaseModel):
    items: list[OrderItemIn] = Field(..., min_length=1)
    total_amount: Decimal = Field(
        ..., ge=0, validation_alias=AliasChoices("total_amount", "totalAmount")
    )
    delivery_address: Optional[str] = Field(
        None, validation_alias=AliasChoices("delivery_address", "deliveryAddress")
    )
    address_id: Optional[uuid.UUID] = Field(
        None, validation_alias=AliasChoices("address_id", "addressId")
    )
    notes: Optional[str] = None


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: str
    items: list[OrderItemResponse] = []
    total_amount: Decimal
    status: OrderStatus
    payment_status: PaymentStatus
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    delivery_address: Optional[str] = None
    notes: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class OrderEnvelope(BaseModel):
    order: OrderResponse


class OrderListEnvelope(BaseModel):
    orders: list[OrderResponse]


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    override: bool = False
    reason: Optional[str] = Field(None, max_length=500)
