from __future__ import annotations

from enum import Enum

from .statuses import PaymentStatus


class Channel(str, Enum):
    """Channel a gateway notification arrived on."""

    BROWSER_RETURN = "browser_return"
    TRUSTED_CALLBACK = "trusted_callback"


class Region(str, Enum):
    """Oxipay regions, each served from its own domain."""

    AUSTRALIA = "Australia"
    NEW_ZEALAND = "New Zealand"

    @property
    def domain(self) -> str:
        if self is Region.NEW_ZEALAND:
            return ".oxipay.co.nz"
        return ".oxipay.com.au"

    @classmethod
    def from_setting(cls, value: str | None) -> "Region":
        """Resolve a configured region; unset or unknown values fall back to Australia."""
        normalized = (value or "").strip().lower()
        if normalized in {"new zealand", "nz"}:
            return cls.NEW_ZEALAND
        return cls.AUSTRALIA


class GatewayResult(str, Enum):
    """Result codes reported by Oxipay in ``x_result``."""

    PENDING = "pending"
    COMPLETED = "completed"
    DECLINED = "declined"
    FAILED = "failed"
    REFUNDED = "refunded"
    REVERSED = "reversed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> "GatewayResult":
        normalized = (value or "").strip().lower()
        try:
            result = cls(normalized)
        except ValueError:
            return cls.UNKNOWN
        return result

    @property
    def target_status(self) -> PaymentStatus:
        return RESULT_TO_STATUS[self]


RESULT_TO_STATUS: dict[GatewayResult, PaymentStatus] = {
    GatewayResult.PENDING: PaymentStatus.PENDING,
    GatewayResult.COMPLETED: PaymentStatus.PAID,
    GatewayResult.DECLINED: PaymentStatus.VOIDED,
    GatewayResult.FAILED: PaymentStatus.VOIDED,
    GatewayResult.REFUNDED: PaymentStatus.REFUNDED,
    GatewayResult.REVERSED: PaymentStatus.REFUNDED,
    # Unrecognized codes never advance state
    GatewayResult.UNKNOWN: PaymentStatus.PENDING,
}
