from __future__ import annotations

from enum import Enum


class PaymentStatus(str, Enum):
    """Payment status of an order."""

    PENDING = "pending"
    PAID = "paid"
    VOIDED = "voided"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"

    @property
    def display_name(self) -> str:
        """Human-friendly label for order notes and summaries."""

        mapping = {
            self.PENDING: "Pending",
            self.PAID: "Paid",
            self.VOIDED: "Voided",
            self.REFUNDED: "Refunded",
            self.PARTIALLY_REFUNDED: "Partially refunded",
        }
        return mapping.get(self, self.value)


class OrderStatus(str, Enum):
    """Fulfilment status of an order."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
