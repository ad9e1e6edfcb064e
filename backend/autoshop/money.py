# Overview: Cent-based money helpers shared by models and request parsing.

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

CENT = Decimal("0.01")


def cents_to_decimal(cents: Optional[int]) -> Optional[Decimal]:
    if cents is None:
        return None
    return (Decimal(cents) / 100).quantize(CENT)


def format_cents(cents: Optional[int]) -> Optional[str]:
    """Render cents as a plain decimal string ("150.00") for JSON responses."""
    value = cents_to_decimal(cents)
    return None if value is None else str(value)


def decimal_to_cents(value: Decimal) -> int:
    # nearest-cent rounding (half-up)
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
