"""
Output formatting helpers for JSON payloads and quote PDFs.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date, datetime
from typing import Union, Optional

CENTS = Decimal('0.01')
QUANTITY_STEP = Decimal('0.001')


def money(value: Union[int, float, Decimal, str, None]) -> Optional[str]:
    """
    Serialize a monetary amount as a string with exactly two decimals.

    Examples:
        money(Decimal('12.5')) -> "12.50"
        money(0) -> "0.00"
        money(None) -> None
    """
    if value is None:
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return str(amount.quantize(CENTS, rounding=ROUND_HALF_UP))


def quantity(value: Union[int, float, Decimal, str, None]) -> Optional[str]:
    """Serialize a line quantity as a string with three decimals, e.g. "1.500"."""
    if value is None:
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return str(amount.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP))


def money_display(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Human formatting for documents: thousands separator and two decimals.

    Examples:
        money_display(1500) -> "$1,500.00"
        money_display(None) -> "-"
    """
    if value is None or value == "":
        return "-"
    try:
        amount = Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return "-"
    return f"${amount:,.2f}"


def iso(value: Union[date, datetime, None]) -> Optional[str]:
    """ISO 8601 string for a date/datetime, None passes through."""
    if value is None:
        return None
    return value.isoformat()


def date_display(value: Union[date, datetime, None]) -> str:
    """Format as YYYY-MM-DD for documents."""
    if value is None:
        return "-"
    return value.strftime('%Y-%m-%d')
