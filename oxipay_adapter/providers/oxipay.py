from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from oxipay_adapter.config import Settings
from oxipay_adapter.domain.models import Order

from .base import CallbackVerification, CheckoutPayload, RefundResult
from .callback import CallbackVerifier
from .checkout import CheckoutRequestBuilder
from .refund import RefundRequestBuilder

# Customers must wait this long after placing an order before re-posting it
REPOST_DELAY_SECONDS = 5


class OxipayPaymentMethod:
    """Oxipay redirection payment method.

    - checkout(): signed form for the hosted checkout page
    - verify_callback(): echo-back verification of server notifications
    - refund(): synchronous refund through the merchant portal API
    """

    supports_capture = False
    supports_void = False
    supports_recurring = False

    def __init__(self, settings: Settings):
        self.settings = settings
        self.checkout_builder = CheckoutRequestBuilder(settings)
        self.callback_verifier = CallbackVerifier(settings)
        self.refund_builder = RefundRequestBuilder(settings)

    @property
    def supports_refund(self) -> bool:
        return bool(self.settings.oxipay_online_refunds)

    @property
    def supports_partial_refund(self) -> bool:
        return bool(self.settings.oxipay_online_refunds)

    def hide_payment_method(self, cart_total: Decimal) -> bool:
        """Whether to hide Oxipay for a cart of ``cart_total``.

        A zero threshold is unset. The bounds are inclusive, so a total equal
        to either limit hides the method.
        """
        minimum = self.settings.oxipay_minimum_order_total
        maximum = self.settings.oxipay_maximum_order_total
        if minimum == 0 and maximum == 0:
            return False
        if maximum == 0:
            return minimum >= cart_total
        if minimum == 0:
            return maximum <= cart_total
        return minimum >= cart_total or maximum <= cart_total

    def can_repost_payment(self, order: Order, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return (now - order.created_at).total_seconds() >= REPOST_DELAY_SECONDS

    def checkout(self, order: Order) -> CheckoutPayload:
        return self.checkout_builder.build(order)

    async def verify_callback(self, raw_body: bytes, user_agent: str | None = None) -> CallbackVerification:
        return await self.callback_verifier.verify(raw_body, user_agent)

    async def refund(self, order: Order, amount: Decimal) -> RefundResult:
        return await self.refund_builder.send(order, amount)
