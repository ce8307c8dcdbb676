"""Peso amounts: rounding and display."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENTAVO = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value, default: str = "0") -> Decimal:
    """Parse ``value``; anything unparseable or non-finite (inf, nan) gives ``default``."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            return Decimal(default)
    return result if result.is_finite() else Decimal(default)


def money(value) -> Decimal:
    """Round to centavos, half-up. Unparseable input becomes ``0.00``."""
    return to_decimal(value).quantize(CENTAVO, rounding=ROUND_HALF_UP)


def rate(value, places: str = "0.0001") -> Decimal:
    return to_decimal(value).quantize(Decimal(places), rounding=ROUND_HALF_UP)


def format_peso(amount) -> str:
    value = money(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}₱{abs(value):,.2f}"
