from __future__ import annotations

from decimal import Decimal

import pytest

from oxipay_adapter.domain.statuses import OrderStatus, PaymentStatus
from oxipay_adapter.services.order_processing import OrderProcessor


@pytest.fixture
def processor() -> OrderProcessor:
    return OrderProcessor()


def test_mark_paid_moves_pending_order_to_processing(processor, order_factory) -> None:
    order = order_factory()
    processor.mark_paid(order)
    assert order.payment_status == PaymentStatus.PAID
    assert order.order_status == OrderStatus.PROCESSING
    assert order.paid_at is not None


def test_mark_paid_twice_raises(processor, order_factory) -> None:
    order = order_factory()
    processor.mark_paid(order)
    assert not processor.can_mark_paid(order)
    with pytest.raises(ValueError):
        processor.mark_paid(order)


def test_void_only_from_pending(processor, order_factory) -> None:
    assert processor.can_void_offline(order_factory())
    assert not processor.can_void_offline(order_factory(payment_status=PaymentStatus.PAID))
    assert not processor.can_void_offline(order_factory(order_status=OrderStatus.CANCELLED))


def test_refund_tracks_running_total(processor, order_factory) -> None:
    order = order_factory(payment_status=PaymentStatus.PAID)
    assert processor.apply_refund(order, Decimal("20")) is PaymentStatus.PARTIALLY_REFUNDED
    assert not processor.can_refund(order, Decimal("100.01"))
    assert processor.apply_refund(order, Decimal("100")) is PaymentStatus.REFUNDED
    assert order.refunded_amount == Decimal("120.00")
    assert not processor.can_refund(order, Decimal("0.01"))


def test_refund_requires_positive_amount(processor, order_factory) -> None:
    order = order_factory(payment_status=PaymentStatus.PAID)
    assert not processor.can_refund(order, Decimal("0"))
    assert not processor.can_refund(order_factory(), Decimal("10"))
