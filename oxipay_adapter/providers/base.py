from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from oxipay_adapter.domain.statuses import PaymentStatus


@dataclass
class CheckoutPayload:
    """Signed form the shopper's browser posts to the hosted checkout."""

    url: str
    fields: dict[str, str]
    method: str = "POST"

    @property
    def signature(self) -> str:
        return self.fields.get("x_signature", "")


@dataclass
class CallbackVerification:
    """Outcome of re-verifying an inbound notification with Oxipay."""

    accepted: bool
    fields: dict[str, str] = field(default_factory=dict)
    error: str | None = None


@dataclass
class RefundResult:
    """Normalized result for Oxipay refund attempts."""

    ok: bool
    amount: Decimal | None = None
    purchase_number: str | None = None
    status: PaymentStatus | None = None
    response_status: int | None = None
    payload: dict[str, Any] | None = None
    error: str | None = None
