"""Tests for amount and date display helpers."""

import pytest
from datetime import date
from decimal import Decimal

from debt_ledger.dashboard import format_day, format_money, format_signed


class TestFormatMoney:
    """vi-VN style amounts."""

    def test_thousands_use_dots(self):
        """Thousands are grouped with dots."""
        assert format_money(Decimal("1234567")) == "1.234.567₫"

    def test_decimals_use_comma(self):
        """The decimal separator is a comma; trailing zeros are dropped."""
        assert format_money(Decimal("1500.50")) == "1.500,5₫"

    def test_whole_amount_has_no_decimals(self):
        """85000.00 prints as 85.000."""
        assert format_money(Decimal("85000.00")) == "85.000₫"

    def test_negative(self):
        """An overpaid balance keeps its sign."""
        assert format_money(Decimal("-1500.5")) == "-1.500,5₫"

    def test_zero(self):
        assert format_money(Decimal("0")) == "0₫"

    def test_custom_symbol(self):
        """The currency symbol is configurable."""
        assert format_money(Decimal("1000"), symbol=" VND") == "1.000 VND"


class TestFormatSigned:
    def test_debt_is_minus_payment_is_plus(self):
        """History rows show debts as '-' and payments as '+'."""
        assert format_signed(Decimal("20000"), is_debt=True) == "-20.000₫"
        assert format_signed(Decimal("20000"), is_debt=False) == "+20.000₫"


class TestFormatDay:
    def test_day_month_year(self):
        assert format_day(date(2024, 3, 9)) == "09/03/2024"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
