from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from .enums import Channel, GatewayResult
from .statuses import OrderStatus, PaymentStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Address:
    """Shipping address captured on the order."""

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    state_abbreviation: str | None = None
    country_code: str | None = None
    postcode: str | None = None


@dataclass
class OrderNote:
    """Internal audit note attached to an order."""

    note: str
    display_to_customer: bool = False
    created_at: datetime = field(default_factory=_utcnow)
    id: int | None = None


@dataclass
class Order:
    """Storefront order as seen by the payment adapter."""

    order_guid: UUID
    total: Decimal
    id: int | None = None
    customer_id: int | None = None
    currency_code: str | None = None
    order_status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    refunded_amount: Decimal = Decimal("0")
    # refunds sent to the gateway but not yet settled
    pending_refund_amount: Decimal = Decimal("0")
    shipping_address: Address | None = None
    notes: list[OrderNote] = field(default_factory=list)
    attributes: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    paid_at: datetime | None = None


@dataclass
class PaymentEvent:
    """One gateway notification, consumed immediately by the reconciler."""

    channel: Channel
    order_reference: str
    result: GatewayResult
    gateway_reference: str = ""
    params: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_params(cls, channel: Channel, params: dict[str, str]) -> "PaymentEvent":
        return cls(
            channel=channel,
            order_reference=params.get("x_reference", "") or "",
            result=GatewayResult.parse(params.get("x_result")),
            gateway_reference=params.get("x_gateway_reference", "") or "",
            params=dict(params),
        )


@dataclass
class RefundRequest:
    """Signed refund request for the Oxipay refund endpoint."""

    merchant_id: str
    purchase_number: str
    amount: Decimal
    reason: str

    def to_params(self) -> dict[str, str]:
        amount = format(self.amount, ".2f")
        return {
            "x_merchant_number": self.merchant_id,
            "x_purchase_number": self.purchase_number,
            "x_amount": amount,
            "x_reason": self.reason,
        }
