"""
Integer-cents money arithmetic.

Every stored or compared amount is an int in minor currency units. Decimal
input is converted once, here, rounding half away from zero. Tax for a line
is derived from integers only so that the same inputs always give the same
cents, wherever the calculation runs.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

# Tax rates are expressed in basis points (1500 = 15%)
BPS_DENOMINATOR = 10_000

# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

# Largest quantity on a single line
MAX_QTY = 999_999

# Ceiling for a sale total and for any single tender
MAX_SALE_CENTS = MAX_PRICE_CENTS * 1000

_CENT = Decimal("0.01")


class InvalidAmountError(ValueError):
    """Raised when a value cannot be read as a money amount."""


def to_minor_units(amount) -> int:
    """
    Convert a decimal amount in major units to integer cents.

    Accepts Decimal, int, str and float (floats go through their shortest
    repr so 0.1 stays 0.1). Ties round away from zero: 0.005 -> 1, -0.005 -> -1.
    """
    if isinstance(amount, bool):
        raise InvalidAmountError("Amount must be a number")
    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, (int, float, str)):
        try:
            value = Decimal(str(amount).strip())
        except InvalidOperation:
            raise InvalidAmountError(f"Invalid amount: {amount!r}")
    else:
        raise InvalidAmountError(f"Invalid amount: {amount!r}")

    if not value.is_finite():
        raise InvalidAmountError(f"Invalid amount: {amount!r}")

    # ROUND_HALF_UP in decimal rounds ties away from zero for both signs
    try:
        cents = value.quantize(_CENT, rounding=ROUND_HALF_UP) * 100
    except InvalidOperation:
        raise InvalidAmountError(f"Amount out of range: {amount!r}")
    return int(cents)


def format_cents(cents: int) -> str:
    """Render cents as a plain major-unit string, e.g. 18800 -> '188.00'."""
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    return f"{sign}{whole}.{frac:02d}"


def sum_cents(amounts: Iterable[int]) -> int:
    """Exact integer sum, no intermediate rounding."""
    total = 0
    for amount in amounts:
        total += amount
    return total


def round_half_away(numerator: int, denominator: int) -> int:
    """Integer division rounded to nearest, ties away from zero."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    quotient, remainder = divmod(abs(numerator), denominator)
    if remainder * 2 >= denominator:
        quotient += 1
    return -quotient if numerator < 0 else quotient


def line_tax_cents(subtotal_cents: int, rate_bps: int | None) -> int:
    """tax = round(subtotal * rate_bps / 10000); a missing rate is 0."""
    if not rate_bps:
        return 0
    return round_half_away(subtotal_cents * rate_bps, BPS_DENOMINATOR)
