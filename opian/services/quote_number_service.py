"""
Quote number allocation.

Quote numbers look like "Q2025-001": a literal prefix, the calendar year,
a dash and a sequence zero-padded to at least three digits. Sequences
restart every year and grow past three digits instead of wrapping
(Q2025-999 is followed by Q2025-1000).

The highest existing number is the only state: it is read from the quote
table on every allocation, so any number of app instances can allocate.
Read-then-insert is not atomic; two requests may compute the same number.
The unique constraint on quote.quote_number rejects the loser, and
quote_service.create_quote retries the allocation with a fresh read.
"""
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opian.database import utcnow
from opian.exceptions import QuoteNumberReadError, MalformedQuoteNumberError
from opian.models import Quote

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = 'Q'
SEQUENCE_WIDTH = 3


def quote_number_prefix(year: int, literal: str = DEFAULT_PREFIX) -> str:
    """Prefix shared by every quote number of a year, e.g. 'Q2025-'."""
    return f"{literal}{year}-"


def format_quote_number(prefix: str, sequence: int) -> str:
    """Join prefix and sequence, padding to at least SEQUENCE_WIDTH digits."""
    return f"{prefix}{str(sequence).zfill(SEQUENCE_WIDTH)}"


def parse_sequence(quote_number: str, prefix: str) -> int:
    """
    Extract the numeric sequence from a quote number.

    Raises:
        MalformedQuoteNumberError: if the number does not start with prefix
            or the remainder is not made only of ASCII digits.
    """
    if not quote_number.startswith(prefix):
        raise MalformedQuoteNumberError(quote_number, prefix)
    suffix = quote_number[len(prefix):]
    if not suffix or not (suffix.isascii() and suffix.isdigit()):
        raise MalformedQuoteNumberError(quote_number, prefix)
    return int(suffix)


def get_last_quote_number(session: Session, prefix: str) -> Optional[str]:
    """
    Highest quote number starting with prefix, or None.

    Sequences are zero-padded to a minimum width only, so string order is
    not numeric order ('Q2025-999' > 'Q2025-1000'). Ordering by length
    first, then by value, gives numeric order without parsing in SQL.

    Raises:
        QuoteNumberReadError: if the query fails.
    """
    escaped = prefix.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    try:
        row = session.query(Quote.quote_number).filter(
            Quote.quote_number.like(f'{escaped}%', escape='\\')
        ).order_by(
            func.length(Quote.quote_number).desc(),
            Quote.quote_number.desc()
        ).first()
    except SQLAlchemyError as e:
        logger.error(f"[QUOTE_NUMBER] Failed to read last number for {prefix}: {e}")
        raise QuoteNumberReadError(prefix) from e

    return row[0] if row else None


def next_quote_number(session: Session, year: Optional[int] = None, literal: str = DEFAULT_PREFIX) -> str:
    """
    Compute the next quote number for a year (current UTC year by default).

    The result is a candidate: it is only reserved once the quote row
    carrying it is committed.

    Raises:
        QuoteNumberReadError: if existing numbers cannot be read.
        MalformedQuoteNumberError: if the highest stored number for the
            year has a non-numeric suffix.
    """
    if year is None:
        year = utcnow().year
    prefix = quote_number_prefix(year, literal)

    last_number = get_last_quote_number(session, prefix)
    if last_number is None:
        return format_quote_number(prefix, 1)

    return format_quote_number(prefix, parse_sequence(last_number, prefix) + 1)
