from __future__ import annotations

from oxipay_adapter.config import Settings
from oxipay_adapter.domain.enums import Region


def checkout_url(settings: Settings) -> str:
    """Hosted checkout URL for the configured environment and region."""
    domain = Region.from_setting(settings.oxipay_region).domain
    host = "securesandbox" if settings.oxipay_use_sandbox else "secure"
    return f"https://{host}{domain}/Checkout?platform=Default"


def refund_url(settings: Settings) -> str:
    """Merchant portal refund endpoint for the configured environment and region."""
    domain = Region.from_setting(settings.oxipay_region).domain
    host = "portalssandbox" if settings.oxipay_use_sandbox else "portals"
    return f"https://{host}{domain}/api/ExternalRefund/processrefund"
