from __future__ import annotations

import json
import logging
import time
from decimal import Decimal
from typing import Iterable

import httpx

from oxipay_adapter.config import Settings
from oxipay_adapter.domain.errors import ConfigurationError, RefundReferenceError
from oxipay_adapter.domain.models import Order, OrderNote, RefundRequest
from oxipay_adapter.domain.statuses import PaymentStatus
from oxipay_adapter.utils.money import format_money, round_money

from .base import RefundResult
from .signing import sign
from .urls import refund_url

logger = logging.getLogger(__name__)

# Browser-return notes look like "Oxipay order ID: <purchase number>"
GATEWAY_NOTE_PREFIX = "Oxipay order ID: "
GATEWAY_NOTE_MARKER = GATEWAY_NOTE_PREFIX.strip()

# Refund requests sign into a bare "signature" field, unlike checkout
REFUND_SIGNATURE_FIELD = "signature"


def extract_purchase_number(notes: Iterable[OrderNote]) -> str:
    """Recover the Oxipay purchase number from an order's audit notes.

    Repeated notes carrying the same reference count once. No reference, or
    more than one distinct reference, raises :class:`RefundReferenceError`.
    """
    references: list[str] = []
    for item in notes:
        if GATEWAY_NOTE_MARKER not in item.note:
            continue
        reference = item.note.replace(GATEWAY_NOTE_PREFIX, "").strip()
        if reference and reference not in references:
            references.append(reference)
    if not references:
        raise RefundReferenceError("No Oxipay order ID recorded for this order")
    if len(references) > 1:
        raise RefundReferenceError(
            f"Ambiguous Oxipay order ID: {', '.join(references)}"
        )
    return references[0]


class RefundRequestBuilder:
    """Builds, signs and submits Oxipay refund requests."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def build(self, order: Order, amount: Decimal) -> RefundRequest:
        if not self.settings.oxipay_merchant_id:
            raise ConfigurationError("Oxipay merchant id is not configured")
        purchase_number = extract_purchase_number(order.notes)
        rounded = round_money(amount)
        return RefundRequest(
            merchant_id=self.settings.oxipay_merchant_id,
            purchase_number=purchase_number,
            amount=rounded,
            reason=f"Refund {purchase_number}:{format_money(rounded)}",
        )

    def body(self, request: RefundRequest) -> dict[str, str]:
        params = request.to_params()
        params[REFUND_SIGNATURE_FIELD] = sign(params, self.settings.oxipay_encryption_key)
        return params

    async def send(self, order: Order, amount: Decimal) -> RefundResult:
        """Submit a refund and interpret the response.

        HTTP 204 is the only success answer. Transport errors propagate.
        """
        request = self.build(order, amount)
        payload = self.body(request)
        url = refund_url(self.settings)
        started = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.settings.oxipay_http_timeout_seconds) as client:
                resp = await client.post(
                    url,
                    headers={"Accept": "*/*", "Content-Type": "application/json"},
                    content=json.dumps(payload, indent=2).encode("utf-8"),
                )
        except httpx.HTTPError as exc:
            latency_ms = int((time.monotonic() - started) * 1000)
            logger.error(
                "oxipay refund request failed",
                extra={
                    "order_guid": order.order_guid,
                    "gateway_reference": request.purchase_number,
                    "amount": request.amount,
                    "event": str(exc),
                    "latency_ms": latency_ms,
                },
            )
            raise

        latency_ms = int((time.monotonic() - started) * 1000)
        ok = resp.status_code == 204
        status: PaymentStatus | None = None
        if ok:
            remaining = round_money(order.total) - round_money(order.refunded_amount)
            status = (
                PaymentStatus.REFUNDED
                if request.amount >= remaining
                else PaymentStatus.PARTIALLY_REFUNDED
            )
        logger.info(
            "oxipay refund executed",
            extra={
                "order_guid": order.order_guid,
                "gateway_reference": request.purchase_number,
                "amount": request.amount,
                "response_code": resp.status_code,
                "payment_status": status.value if status else "",
                "latency_ms": latency_ms,
            },
        )
        return RefundResult(
            ok=ok,
            amount=request.amount,
            purchase_number=request.purchase_number,
            status=status,
            response_status=resp.status_code,
            payload={k: v for k, v in payload.items() if k != REFUND_SIGNATURE_FIELD},
            error=None if ok else "Refund error",
        )
