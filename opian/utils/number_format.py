"""Parsing utilities for values coming from JSON request bodies."""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


def parse_decimal(value: Any, field: str, minimum: Optional[Decimal] = Decimal('0')) -> Decimal:
    """
    Parse a JSON number or numeric string into a Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.

    Raises:
        ValueError: if the value is empty, not numeric, or below minimum.
    """
    if value is None or isinstance(value, bool) or (isinstance(value, str) and not value.strip()):
        raise ValueError(f'{field} is required')
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f'{field} must be a number')
    if not number.is_finite():
        raise ValueError(f'{field} must be a number')
    if minimum is not None and number < minimum:
        raise ValueError(f'{field} must be greater than or equal to {minimum}')
    return number


def parse_datetime(value: Any, field: str) -> Optional[datetime]:
    """
    Parse an ISO 8601 string into a naive UTC datetime.

    Accepts dates ("2025-03-01"), naive datetimes (taken as UTC) and
    offset-aware datetimes including the "Z" suffix. Empty values give None.

    Raises:
        ValueError: if the value is not ISO 8601.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if not isinstance(value, str):
        raise ValueError(f'{field} must be an ISO 8601 date')
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f'{field} must be an ISO 8601 date')
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_positive_int(value: Any, field: str) -> int:
    """Parse a strictly positive integer (e.g. a duration in minutes)."""
    if isinstance(value, bool):
        raise ValueError(f'{field} must be a positive integer')
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f'{field} must be a positive integer')
    if number <= 0 or (isinstance(value, float) and value != number):
        raise ValueError(f'{field} must be a positive integer')
    return number


def parse_text(value: Any, field: str, strip: bool = True) -> Optional[str]:
    """
    Read a JSON string field. Missing, null and blank values give None.

    Raises:
        ValueError: if the value is present but not a string.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f'{field} must be a string')
    if strip:
        value = value.strip()
    return value or None
