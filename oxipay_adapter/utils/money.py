from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

MONEY_QUANT = Decimal("0.01")


def round_money(value: Any) -> Decimal:
    """Round to two decimals, half away from zero."""
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise ValueError("Invalid monetary amount") from exc
    return amount.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def format_money(value: Any) -> str:
    """Fixed two-decimal rendering used on the wire, e.g. ``"50.00"``."""
    return format(round_money(value), "f")
