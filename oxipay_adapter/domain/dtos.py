from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict
from uuid import UUID

from pydantic import BaseModel, Field

from .statuses import OrderStatus, PaymentStatus


class CheckoutRequest(BaseModel):
    """Request body for building the hosted checkout redirect."""

    order_guid: UUID
    repost: bool = Field(
        default=False, description="Customer is re-trying the redirect for an existing order"
    )


class RedirectInfo(BaseModel):
    """Information needed to send the shopper to the Oxipay hosted checkout."""

    url: str
    method: str = "POST"
    form_fields: Dict[str, str]


class RefundCreateRequest(BaseModel):
    order_guid: UUID
    amount: Decimal | None = Field(
        default=None, description="Amount to refund; defaults to the remaining order total"
    )


class RefundResponse(BaseModel):
    ok: bool
    payment_status: PaymentStatus
    amount: Decimal
    error: str | None = None


class AvailabilityResponse(BaseModel):
    hidden: bool


class OrderNoteSummary(BaseModel):
    note: str
    created_at: datetime


class OrderSummary(BaseModel):
    id: int | None = None
    order_guid: UUID
    total: Decimal
    order_status: OrderStatus
    payment_status: PaymentStatus
    refunded_amount: Decimal
    notes: list[OrderNoteSummary]
