"""
Tests for utils/amounts.py: precision guard, fixed-point formatting, base units.
"""

from decimal import Decimal

import pytest

from dex_autotrader.enums.error_kind import ErrorKind
from dex_autotrader.errors import TradingError
from dex_autotrader.utils.amounts import (
    ensure_safe_amount, format_fixed, from_base_units, is_scientific, to_base_units, to_decimal,
)


class TestPrecisionGuard:

    @pytest.mark.parametrize("amount", [Decimal("0.00009"), "0.00005", 0.00001, 1e-7, "1e-7"])
    def test_too_small_is_rejected(self, amount):
        with pytest.raises(TradingError) as exc:
            ensure_safe_amount(amount)
        assert exc.value.kind == ErrorKind.AMOUNT_TOO_SMALL

    @pytest.mark.parametrize("amount", [Decimal("0.0001"), "0.005", 5, 12.5])
    def test_safe_amounts_pass(self, amount):
        assert ensure_safe_amount(amount) == Decimal(str(amount))

    def test_scientific_notation(self):
        assert is_scientific(1e-7)
        assert is_scientific("2.5E-5")
        assert not is_scientific("0.005")
        assert not is_scientific(Decimal("5"))

    def test_garbage_is_invalid_amount(self):
        with pytest.raises(TradingError) as exc:
            to_decimal("five")
        assert exc.value.kind == ErrorKind.INVALID_AMOUNT


class TestFormatting:

    def test_truncates_to_token_decimals(self):
        assert format_fixed(Decimal("0.123456789"), 6) == "0.123456"
        assert format_fixed(Decimal("5"), 6) == "5.000000"

    def test_zero_decimals(self):
        assert format_fixed(Decimal("7.9"), 0) == "7"

    def test_output_matches_plain_decimal_pattern(self):
        text = format_fixed(Decimal("0.0001"), 18)
        assert "e" not in text.lower()
        assert text == "0.000100000000000000"

    def test_base_units(self):
        assert to_base_units("5.000000", 6) == 5_000_000
        assert to_base_units("0.00500000", 8) == 500_000
        assert from_base_units(500_000, 8) == Decimal("0.005")

    def test_base_units_rejects_excess_precision(self):
        with pytest.raises(TradingError):
            to_base_units("0.1234567", 6)

    @pytest.mark.parametrize("text", ["1e-5", "-1", ".5", "1,000"])
    def test_base_units_rejects_bad_format(self, text):
        with pytest.raises(TradingError) as exc:
            to_base_units(text, 6)
        assert exc.value.kind == ErrorKind.INVALID_AMOUNT


class TestWideAmounts:
    """Values whose integer and fractional digits together exceed the default 28-digit context."""

    def test_large_amount_at_18_decimals(self):
        assert format_fixed(Decimal("100000000000"), 18) == "100000000000." + "0" * 18

    def test_base_units_keep_every_digit(self):
        assert to_base_units("123456789012.123456789012345678", 18) == 123456789012123456789012345678

    def test_from_base_units_keeps_every_digit(self):
        assert from_base_units(123456789012123456789012345678, 18) == Decimal("123456789012.123456789012345678")

    def test_truncation_still_applies(self):
        assert format_fixed(Decimal("98765432109876.1234567890123456789"), 18) == "98765432109876.123456789012345678"
