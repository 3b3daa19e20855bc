"""
Tax calculator tests.

Verifies:
- Exclusive tax: tax = round(S * rate), total = S + tax
- Inclusive tax: subtotal + tax == total, always exactly
- Half-up rounding to whole minor units
- Rejection of negative or over-precise rates and negative amounts
"""

from decimal import Decimal

import pytest

from retailpos.services.tax_service import (
    TaxBreakdown,
    compute_tax,
    parse_rate,
    rate_to_bps,
)
from retailpos.validation import ValidationError


class TestExclusiveTax:
    def test_standard_rate(self):
        assert compute_tax(3000, False, Decimal("0.19")) == TaxBreakdown(subtotal=3000, tax=570, total=3570)

    def test_rounds_half_up(self):
        # 1050 * 0.19 = 199.5 -> 200
        assert compute_tax(1050, False, "0.19").tax == 200
        # 1049 * 0.19 = 199.31 -> 199
        assert compute_tax(1049, False, "0.19").tax == 199

    def test_zero_rate(self):
        assert compute_tax(1234, False, 0) == TaxBreakdown(subtotal=1234, tax=0, total=1234)

    def test_zero_amount(self):
        assert compute_tax(0, False, "0.19") == TaxBreakdown(subtotal=0, tax=0, total=0)


class TestInclusiveTax:
    def test_standard_rate(self):
        result = compute_tax(3570, True, "0.19")
        assert result == TaxBreakdown(subtotal=3000, tax=570, total=3570)

    def test_total_is_preserved(self):
        result = compute_tax(1000, True, "0.19")
        # 1000 - 1000/1.19 = 159.66 -> 160
        assert result.tax == 160
        assert result.subtotal == 840
        assert result.total == 1000

    @pytest.mark.parametrize("amount", [1, 7, 99, 101, 999, 12345, 1000001])
    @pytest.mark.parametrize("rate", ["0.19", "0.05", "0.1234", "1"])
    def test_parts_always_sum_to_total(self, amount, rate):
        result = compute_tax(amount, True, rate)
        assert result.total == amount
        assert result.subtotal + result.tax == result.total
        assert result.tax >= 0


class TestRateParsing:
    def test_float_keeps_its_decimal_meaning(self):
        assert parse_rate(0.19) == Decimal("0.19")
        assert rate_to_bps(parse_rate(0.19)) == 1900

    def test_string_and_int(self):
        assert rate_to_bps(parse_rate("0.0825")) == 825
        assert rate_to_bps(parse_rate(1)) == 10000

    @pytest.mark.parametrize("bad", ["-0.01", -1, "abc", "NaN", True, None, "0.12345"])
    def test_rejects_invalid_rates(self, bad):
        with pytest.raises(ValidationError):
            parse_rate(bad)


class TestAmountValidation:
    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            compute_tax(-1, False, "0.19")

    def test_non_integer_amount_rejected(self):
        with pytest.raises(ValidationError):
            compute_tax(10.5, False, "0.19")

    def test_negative_rate_rejected(self):
        with pytest.raises(ValidationError):
            compute_tax(1000, True, "-0.19")
