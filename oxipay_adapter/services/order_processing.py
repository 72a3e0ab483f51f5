from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from oxipay_adapter.domain.models import Order, OrderNote
from oxipay_adapter.domain.statuses import OrderStatus, PaymentStatus
from oxipay_adapter.utils.money import round_money

logger = logging.getLogger(__name__)

_FINAL_PAYMENT_STATUSES = {
    PaymentStatus.PAID,
    PaymentStatus.REFUNDED,
    PaymentStatus.PARTIALLY_REFUNDED,
    PaymentStatus.VOIDED,
}


class OrderProcessor:
    """Order state preconditions and transitions used by the payment flows.

    Callers hold the order's lock (see the stores' ``locked``) while
    checking a precondition and applying its transition.
    """

    def add_note(self, order: Order, text: str) -> OrderNote:
        note = OrderNote(note=text, display_to_customer=False)
        order.notes.append(note)
        return note

    def can_mark_paid(self, order: Order) -> bool:
        if order.order_status == OrderStatus.CANCELLED:
            return False
        return order.payment_status not in _FINAL_PAYMENT_STATUSES

    def mark_paid(self, order: Order) -> None:
        if not self.can_mark_paid(order):
            raise ValueError("You can't mark this order as paid")
        order.payment_status = PaymentStatus.PAID
        order.paid_at = datetime.now(timezone.utc)
        if order.order_status == OrderStatus.PENDING:
            order.order_status = OrderStatus.PROCESSING
        logger.info(
            "order marked as paid",
            extra={"order_guid": order.order_guid, "payment_status": order.payment_status.value},
        )

    def can_void_offline(self, order: Order) -> bool:
        if order.order_status == OrderStatus.CANCELLED:
            return False
        return order.payment_status == PaymentStatus.PENDING

    def void_offline(self, order: Order) -> None:
        if not self.can_void_offline(order):
            raise ValueError("You can't void this order")
        order.payment_status = PaymentStatus.VOIDED
        logger.info(
            "order voided offline",
            extra={"order_guid": order.order_guid, "payment_status": order.payment_status.value},
        )

    def can_cancel(self, order: Order) -> bool:
        return order.order_status != OrderStatus.CANCELLED

    def cancel(self, order: Order) -> None:
        if not self.can_cancel(order):
            raise ValueError("Cannot do cancel for order.")
        order.order_status = OrderStatus.CANCELLED
        logger.info("order cancelled", extra={"order_guid": order.order_guid})

    def can_refund(self, order: Order, amount: Decimal) -> bool:
        """Whether ``amount`` still fits, counting refunds already in flight."""
        if order.payment_status not in {PaymentStatus.PAID, PaymentStatus.PARTIALLY_REFUNDED}:
            return False
        if amount <= Decimal("0"):
            return False
        committed = round_money(order.refunded_amount) + round_money(order.pending_refund_amount)
        return committed + round_money(amount) <= round_money(order.total)

    def reserve_refund(self, order: Order, amount: Decimal) -> None:
        if not self.can_refund(order, amount):
            raise ValueError("Cannot do refund for order.")
        order.pending_refund_amount = round_money(order.pending_refund_amount) + round_money(amount)

    def release_refund(self, order: Order, amount: Decimal) -> None:
        remaining = round_money(order.pending_refund_amount) - round_money(amount)
        order.pending_refund_amount = max(remaining, Decimal("0.00"))

    def apply_refund(self, order: Order, amount: Decimal) -> PaymentStatus:
        if not self.can_refund(order, amount):
            raise ValueError("Cannot do refund for order.")
        order.refunded_amount = round_money(order.refunded_amount) + round_money(amount)
        if order.refunded_amount >= round_money(order.total):
            order.payment_status = PaymentStatus.REFUNDED
        else:
            order.payment_status = PaymentStatus.PARTIALLY_REFUNDED
        return order.payment_status
