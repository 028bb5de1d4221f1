from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from storefront.domain.orders.status import OrderStatus, PaymentMethod

PHONE_PATTERN = r"^[0-9\-+().\s]+$"


class ShippingInfo(BaseModel):
    recipient_name: str = Field(min_length=1, max_length=100)
    phone: str = Field(pattern=PHONE_PATTERN, max_length=32)
    zip_code: str = Field(min_length=1, max_length=16)
    address: str = Field(min_length=1, max_length=255)
    detail_address: str = Field(min_length=1, max_length=255)
    instructions: str = Field(default="", max_length=500)

    @field_validator("recipient_name", "zip_code", "address", "detail_address")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class PaymentSelection(BaseModel):
    method: PaymentMethod


class TrackingInfo(BaseModel):
    carrier: str | None = Field(default=None, max_length=64)
    tracking_number: str | None = Field(default=None, max_length=64)
    estimated_delivery: datetime | None = None


class CreateOrderRequest(BaseModel):
    shipping: ShippingInfo
    payment: PaymentSelection
    discount: int = Field(default=0, ge=0)


class VerifiedCheckoutRequest(CreateOrderRequest):
    gateway_payment_id: str = Field(min_length=1)
    merchant_uid: str = Field(min_length=1)
    amount: int = Field(gt=0)


class CancelOrderRequest(BaseModel):
    reason: str = Field(default="", max_length=400)


class StatusChangeRequest(BaseModel):
    status: OrderStatus
    admin_notes: str | None = Field(default=None, max_length=500)
    tracking: TrackingInfo | None = None


class VerifyPaymentRequest(BaseModel):
    gateway_payment_id: str = Field(min_length=1)
