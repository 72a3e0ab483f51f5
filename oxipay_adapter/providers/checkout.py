from __future__ import annotations

import logging
from decimal import Decimal

from oxipay_adapter.config import Settings
from oxipay_adapter.domain.errors import ConfigurationError
from oxipay_adapter.domain.models import Order
from oxipay_adapter.utils.money import format_money, round_money

from .base import CheckoutPayload
from .signing import SIGNATURE_FIELD, sign
from .urls import checkout_url

logger = logging.getLogger(__name__)

# Order attribute holding the total actually sent to Oxipay
ORDER_TOTAL_SENT_ATTRIBUTE = "OrderTotalSentToOxipay"

CALLBACK_PATH = "Plugins/PaymentOxipay/Callback"
COMPLETE_PATH = "Plugins/PaymentOxipay/Success"
CANCEL_PATH = "Plugins/PaymentOxipay/CancelOrder"


class CheckoutRequestBuilder:
    """Builds the signed payment-initiation form for an order."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _require_credentials(self) -> None:
        if not self.settings.oxipay_merchant_id:
            raise ConfigurationError("Oxipay merchant id is not configured")
        if not self.settings.oxipay_encryption_key:
            raise ConfigurationError("Oxipay encryption key is not configured")

    @staticmethod
    def rounded_total(order: Order) -> Decimal:
        return round_money(order.total)

    def build_params(self, order: Order) -> dict[str, str]:
        store_url = self.settings.store_url
        address = order.shipping_address

        def addr(attr: str) -> str:
            if address is None:
                return ""
            return getattr(address, attr) or ""

        return {
            "x_account_id": self.settings.oxipay_merchant_id,
            "x_currency": order.currency_code or self.settings.store_currency_code or "",
            # Order guid, never the sequential id
            "x_reference": str(order.order_guid),
            "x_shop_country": addr("country_code"),
            "x_shop_name": self.settings.store_name or "",
            "x_url_callback": f"{store_url}{CALLBACK_PATH}",
            "x_url_complete": f"{store_url}{COMPLETE_PATH}",
            "x_url_cancel": f"{store_url}{CANCEL_PATH}",
            "x_test": "true" if self.settings.oxipay_use_sandbox else "false",
            "x_customer_email": addr("email"),
            "x_customer_first_name": addr("first_name"),
            "x_customer_last_name": addr("last_name"),
            "x_customer_shipping_address1": addr("address1"),
            "x_customer_shipping_address2": addr("address2"),
            "x_customer_shipping_city": addr("city"),
            "x_customer_shipping_state": addr("state_abbreviation"),
            "x_customer_shipping_country": addr("country_code"),
            "x_customer_shipping_postcode": addr("postcode"),
            "x_amount": format_money(order.total),
        }

    def build(self, order: Order) -> CheckoutPayload:
        """Return the hosted checkout URL and the signed form fields."""
        self._require_credentials()
        params = self.build_params(order)
        signature = sign(params, self.settings.oxipay_encryption_key)
        fields = dict(params)
        fields[SIGNATURE_FIELD] = signature
        url = checkout_url(self.settings)
        logger.info(
            "checkout payload built",
            extra={
                "order_guid": order.order_guid,
                "amount": params["x_amount"],
                "currency": params["x_currency"],
                "url": url,
            },
        )
        return CheckoutPayload(url=url, fields=fields)
