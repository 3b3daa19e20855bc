"""
Tax calculation for sales.

All amounts are integer minor units. Arithmetic runs on Decimal and rounds
half-up to whole units once, so subtotal + tax == total holds exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from ..validation import ValidationError

BPS_PER_UNIT = Decimal(10000)


@dataclass(frozen=True)
class TaxBreakdown:
    subtotal: int
    tax: int
    total: int


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def parse_rate(value) -> Decimal:
    """
    Accept a tax rate as Decimal, int or numeric string (0.19 = 19%).

    Floats go through str() so 0.19 stays 0.19. Rates that cannot be stored
    in basis points (more than four decimal places) are rejected.
    """
    if isinstance(value, bool):
        raise ValidationError("tax_rate must be a number")
    if isinstance(value, float):
        value = str(value)
    try:
        rate = Decimal(value).normalize() if isinstance(value, (str, int, Decimal)) else None
    except (InvalidOperation, ValueError):
        rate = None
    if rate is None or not rate.is_finite():
        raise ValidationError("tax_rate must be a number")
    if rate < 0:
        raise ValidationError("tax_rate cannot be negative")
    if rate.as_tuple().exponent < -4:
        raise ValidationError("tax_rate supports at most 4 decimal places")
    return rate


def rate_to_bps(rate: Decimal) -> int:
    return int(rate * BPS_PER_UNIT)


def compute_tax(amount_cents: int, tax_included: bool, tax_rate) -> TaxBreakdown:
    """
    Split an amount into subtotal / tax / total.

    tax_included=True: amount is the tax-inclusive total T,
        tax = round(T - T / (1 + rate)), subtotal = T - tax.
    tax_included=False: amount is the pre-tax subtotal S,
        tax = round(S * rate), total = S + tax.
    """
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise ValidationError("amount must be an integer number of minor units")
    if amount_cents < 0:
        raise ValidationError("amount cannot be negative")

    rate = parse_rate(tax_rate)
    amount = Decimal(amount_cents)

    if tax_included:
        tax = round_half_up(amount - amount / (Decimal(1) + rate))
        return TaxBreakdown(subtotal=amount_cents - tax, tax=tax, total=amount_cents)

    tax = round_half_up(amount * rate)
    return TaxBreakdown(subtotal=amount_cents, tax=tax, total=amount_cents + tax)
