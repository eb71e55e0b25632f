"""Utilities for working with monetary values in GiftBudget."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

CENT = Decimal("0.01")
ZERO = Decimal("0")

AmountLike = Union[Decimal, int, float, str, None]


def parse_amount(value: AmountLike) -> Decimal:
    """Return ``value`` as a :class:`~decimal.Decimal`, treating anything unparsable as zero.

    Form inputs arrive as free text; empty strings, ``None``, garbage and
    non-finite numbers all count as ``0`` rather than raising.
    """

    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        raw = value.strip().replace(",", "")
        if not raw:
            return ZERO
        try:
            result = Decimal(raw)
        except InvalidOperation:
            return ZERO
    else:
        return ZERO
    if not result.is_finite():
        return ZERO
    return result


def parse_int(value: object, default: Optional[int] = None) -> Optional[int]:
    """Parse a whole number from form input, returning ``default`` when impossible."""

    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    raw = str(value if value is not None else "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        amount = parse_amount(raw)
        if amount == ZERO or amount != amount.to_integral_value():
            return default
        return int(amount)


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(amount: Decimal, symbol: str = "£") -> str:
    """Return ``amount`` as a currency formatted string (e.g. ``£12.34``)."""

    value = quantize(parse_amount(amount))
    if value < ZERO:
        return f"-{symbol}{-value:,.2f}"
    return f"{symbol}{value:,.2f}"


def format_percent(value: Decimal) -> str:
    """Render a percentage with one decimal place (``12.5%``)."""

    return f"{parse_amount(value).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}%"


def plain_amount(amount: Decimal) -> str:
    """Render ``amount`` for an input box; zero renders as an empty string."""

    value = parse_amount(amount)
    if value == ZERO:
        return ""
    return format(value.normalize(), "f")


__all__ = [
    "AmountLike",
    "CENT",
    "ZERO",
    "format_currency",
    "format_percent",
    "parse_amount",
    "parse_int",
    "plain_amount",
    "quantize",
]
