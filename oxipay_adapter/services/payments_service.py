from __future__ import annotations

import logging
from decimal import Decimal
from typing import Mapping
from uuid import UUID

from oxipay_adapter.config import Settings
from oxipay_adapter.domain.enums import Channel
from oxipay_adapter.domain.errors import ConfigurationError, OrderNotFoundError
from oxipay_adapter.domain.models import Order, PaymentEvent
from oxipay_adapter.domain.statuses import OrderStatus, PaymentStatus
from oxipay_adapter.providers.base import CheckoutPayload, RefundResult
from oxipay_adapter.providers.checkout import ORDER_TOTAL_SENT_ATTRIBUTE
from oxipay_adapter.providers.oxipay import OxipayPaymentMethod
from oxipay_adapter.providers.signing import SIGNATURE_FIELD, verify
from oxipay_adapter.utils.money import format_money, round_money

from .order_processing import OrderProcessor
from .reconciler import StatusReconciler, parse_order_guid


class PaymentsService:
    """Business logic for Oxipay payments."""

    def __init__(self, store, cfg: Settings, processor: OrderProcessor | None = None):
        self.store = store
        self.settings = cfg
        self.method = OxipayPaymentMethod(cfg)
        self.processor = processor or OrderProcessor()
        self.reconciler = StatusReconciler(store, self.processor)
        self.logger = logging.getLogger(__name__)

    def get_order(self, order_guid: UUID) -> Order:
        order = self.store.get_by_guid(order_guid)
        if order is None:
            raise OrderNotFoundError("Unknown order")
        return order

    def start_checkout(self, order_guid: UUID, repost: bool = False) -> CheckoutPayload:
        order = self.get_order(order_guid)
        if order.order_status == OrderStatus.CANCELLED or order.payment_status != PaymentStatus.PENDING:
            raise ValueError("Order is not awaiting payment")
        if repost and not self.method.can_repost_payment(order):
            raise ValueError("Order was placed too recently to repost the payment")
        payload = self.method.checkout(order)
        self.store.save_attribute(order.order_guid, ORDER_TOTAL_SENT_ATTRIBUTE, payload.fields["x_amount"])
        self.logger.info(
            "checkout started",
            extra={
                "order_guid": order.order_guid,
                "order_id": order.id,
                "amount": payload.fields["x_amount"],
                "redirect_to": payload.url,
            },
        )
        return payload

    def _return_signature_ok(self, params: Mapping[str, str]) -> bool:
        claimed = params.get(SIGNATURE_FIELD)
        if not claimed:
            return True
        try:
            return verify(params, self.settings.oxipay_encryption_key, claimed)
        except ConfigurationError as exc:
            self.logger.error(
                "browser return signature not checked",
                extra={"channel": Channel.BROWSER_RETURN.value, "event": str(exc)},
            )
            return False

    def handle_return(self, params: Mapping[str, str]) -> Order | None:
        """Apply a browser return. Returns the resolved order, if any."""
        event = PaymentEvent.from_params(Channel.BROWSER_RETURN, dict(params))
        if not self._return_signature_ok(params):
            self.logger.warning(
                "browser return dropped: bad signature",
                extra={"channel": event.channel.value, "order_guid": event.order_reference},
            )
            guid = parse_order_guid(event.order_reference)
            return self.store.get_by_guid(guid) if guid else None
        return self.reconciler.reconcile(event)

    async def handle_callback(self, raw_body: bytes, user_agent: str | None = None) -> Order | None:
        """Verify a server notification with Oxipay, then apply it."""
        verification = await self.method.verify_callback(raw_body, user_agent)
        if not verification.accepted:
            self.logger.warning(
                "callback dropped: verification failed",
                extra={
                    "channel": Channel.TRUSTED_CALLBACK.value,
                    "order_guid": verification.fields.get("x_reference", ""),
                    "event": verification.error or "",
                },
            )
            return None
        event = PaymentEvent.from_params(Channel.TRUSTED_CALLBACK, verification.fields)
        return self.reconciler.reconcile(event)

    def cancel_latest_order(self, customer_id: int) -> Order | None:
        """Cancel the customer's most recent order if its payment never went through."""
        order = self.store.latest_for_customer(customer_id)
        if order is None:
            return None
        with self.store.locked(order.order_guid) as locked:
            if (
                locked is not None
                and locked.payment_status == PaymentStatus.PENDING
                and self.processor.can_cancel(locked)
            ):
                self.processor.cancel(locked)
        return order

    def _release_refund(self, order_guid: UUID, amount: Decimal) -> None:
        with self.store.locked(order_guid) as locked:
            if locked is not None:
                self.processor.release_refund(locked, amount)

    async def refund(self, order_guid: UUID, amount: Decimal | None = None) -> RefundResult:
        if not self.method.supports_refund:
            raise ValueError("Online refunds are disabled")
        # Reserve the amount under the order lock so concurrent requests
        # cannot both send it; the gateway call itself runs unlocked.
        with self.store.locked(order_guid) as order:
            if order is None:
                raise OrderNotFoundError("Unknown order")
            raw_amount = (
                amount
                if amount is not None
                else order.total - order.refunded_amount - order.pending_refund_amount
            )
            refund_amount = round_money(raw_amount)
            if not self.processor.can_refund(order, refund_amount):
                raise ValueError("Order cannot be refunded for this amount")
            self.processor.reserve_refund(order, refund_amount)

        try:
            result = await self.method.refund(order, refund_amount)
        except Exception:
            self._release_refund(order_guid, refund_amount)
            raise
        if not result.ok:
            self._release_refund(order_guid, refund_amount)
            self.logger.info(
                "refund failed",
                extra={"order_guid": order_guid, "response_code": result.response_status},
            )
            return result

        settled = False
        with self.store.locked(order_guid) as locked:
            if locked is not None:
                self.processor.release_refund(locked, refund_amount)
                if self.processor.can_refund(locked, refund_amount):
                    result.status = self.processor.apply_refund(locked, refund_amount)
                    self.processor.add_note(
                        locked,
                        f"Refunded {format_money(refund_amount)} via Oxipay ({result.purchase_number})",
                    )
                    settled = True
        if not settled:
            self.logger.error(
                "refund accepted by gateway but not recorded",
                extra={"order_guid": order_guid, "amount": refund_amount},
            )
            result.ok = False
            result.status = None
            result.error = "Refund accepted by Oxipay but the order could not be updated"
            return result
        self.logger.info(
            "refund completed",
            extra={
                "order_guid": order.order_guid,
                "amount": refund_amount,
                "payment_status": result.status.value if result.status else "",
            },
        )
        return result
