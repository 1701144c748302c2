"""Display helpers for amounts and dates (vi-VN conventions)."""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal


def format_money(amount: Decimal, symbol: str = "₫") -> str:
    """
    Format an amount the way vi-VN locale does: dot thousands
    separator, comma decimal separator, no decimals for whole amounts.

    >>> format_money(Decimal("1234567"))
    '1.234.567₫'
    >>> format_money(Decimal("-1500.5"))
    '-1.500,5₫'
    """
    amount = Decimal(amount)
    sign = "-" if amount < 0 else ""
    amount = abs(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    whole, _, fraction = f"{amount:f}".partition(".")
    grouped = f"{int(whole):,}".replace(",", ".")
    fraction = fraction.rstrip("0")
    text = f"{grouped},{fraction}" if fraction else grouped
    return f"{sign}{text}{symbol}"


def format_signed(amount: Decimal, is_debt: bool, symbol: str = "₫") -> str:
    """History rows show debts as '-' and payments as '+'."""
    return f"{'-' if is_debt else '+'}{format_money(abs(amount), symbol)}"


def format_day(value: date) -> str:
    """dd/mm/yyyy."""
    return value.strftime("%d/%m/%Y")
