from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when merchant credentials required for signing are missing."""


class RefundReferenceError(ValueError):
    """Raised when the Oxipay purchase number cannot be recovered from order notes."""


class OrderNotFoundError(ValueError):
    """Raised when an order guid does not resolve to a stored order."""
