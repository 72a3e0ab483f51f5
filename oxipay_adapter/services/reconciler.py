from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from uuid import UUID

from oxipay_adapter.domain.enums import Channel
from oxipay_adapter.domain.models import Order, PaymentEvent
from oxipay_adapter.domain.statuses import PaymentStatus
from oxipay_adapter.providers.checkout import ORDER_TOTAL_SENT_ATTRIBUTE
from oxipay_adapter.providers.refund import GATEWAY_NOTE_PREFIX

from .order_processing import OrderProcessor

logger = logging.getLogger(__name__)


def parse_order_guid(value: str | None) -> UUID | None:
    """Parse an ``x_reference`` into an order guid, or ``None`` if malformed."""
    if not value:
        return None
    try:
        return UUID(value.strip())
    except (ValueError, AttributeError, TypeError):
        return None


class StatusReconciler:
    """Applies gateway notifications to orders.

    Both the browser return and the verified callback land here and may
    arrive in any order, or more than once. Every transition is gated by the
    order processor's precondition, evaluated under the order's lock, so a
    repeated event is a no-op.

    Notes differ per channel: the browser return always records
    ``"Oxipay order ID: <ref>"`` once the order is resolved, while the
    callback records the bare gateway reference and only when it actually
    marks the order as paid.
    """

    def __init__(self, store, processor: OrderProcessor | None = None):
        self.store = store
        self.processor = processor or OrderProcessor()

    def reconcile(self, event: PaymentEvent) -> Order | None:
        log_extra = {
            "channel": event.channel.value,
            "order_guid": event.order_reference,
            "result": event.result.value,
            "gateway_reference": event.gateway_reference,
        }
        order_guid = parse_order_guid(event.order_reference)
        if order_guid is None:
            logger.warning("notification dropped: malformed order reference", extra=log_extra)
            return None

        with self.store.locked(order_guid) as order:
            if order is None:
                logger.warning("notification dropped: unknown order", extra=log_extra)
                return None

            if event.channel is Channel.BROWSER_RETURN:
                self.processor.add_note(order, f"{GATEWAY_NOTE_PREFIX}{event.gateway_reference}")

            self._check_total(order, event)
            target = event.result.target_status
            if target is PaymentStatus.PAID:
                self._apply_paid(order, event, log_extra)
            elif target is PaymentStatus.VOIDED:
                self._apply_voided(order, log_extra)
            elif target is PaymentStatus.REFUNDED:
                # Refunds move state through the refund flow only
                logger.info("refund notification ignored", extra=log_extra)
            else:
                logger.info("notification without state change", extra=log_extra)
            return order

    def _apply_paid(self, order: Order, event: PaymentEvent, log_extra: dict) -> None:
        if not self.processor.can_mark_paid(order):
            logger.info(
                "mark as paid skipped",
                extra={**log_extra, "payment_status": order.payment_status.value},
            )
            return
        self.processor.mark_paid(order)
        if event.channel is Channel.TRUSTED_CALLBACK and event.gateway_reference:
            self.processor.add_note(order, event.gateway_reference)

    def _apply_voided(self, order: Order, log_extra: dict) -> None:
        if not self.processor.can_void_offline(order):
            logger.info(
                "offline void skipped",
                extra={**log_extra, "payment_status": order.payment_status.value},
            )
            return
        self.processor.void_offline(order)

    def _check_total(self, order: Order, event: PaymentEvent) -> None:
        """Log when the reported amount differs from the total sent at checkout."""
        reported = event.params.get("x_amount")
        expected = order.attributes.get(ORDER_TOTAL_SENT_ATTRIBUTE)
        if not reported or expected is None:
            return
        try:
            matches = Decimal(str(reported)) == Decimal(str(expected))
        except InvalidOperation:
            matches = False
        if not matches:
            logger.warning(
                "order total mismatch",
                extra={
                    "order_guid": order.order_guid,
                    "channel": event.channel.value,
                    "amount": reported,
                    "expected_amount": str(expected),
                },
            )
