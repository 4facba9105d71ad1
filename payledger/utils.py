"""Conversion helpers shared by the entities, services and reports."""
import uuid
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from dateutil import parser as date_parser

from payledger.config import (
    CURRENCY_QUANTUM,
    CURRENCY_SYMBOL,
    DATE_FORMAT_STORAGE,
    TIMESTAMP_FORMAT,
)

ZERO = Decimal("0")
CENT = Decimal(CURRENCY_QUANTUM)


def to_decimal(value, default=ZERO):
    """Convert a number, numeric string or Decimal to Decimal.

    Blank values (None, "") give ``default``. Floats go through ``str`` so
    0.1 becomes Decimal("0.1") rather than its binary expansion.

    Raises:
        ValueError: If the value is not numeric.
    """
    if value is None:
        return default
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return default
        if text.startswith(CURRENCY_SYMBOL):
            text = text[len(CURRENCY_SYMBOL):]
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def quantize_money(value) -> Decimal:
    """Round to the cent, half up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_date(value):
    """Parse a date from a date, datetime or string. Blank gives None.

    Raises:
        ValueError: If the string is not a recognizable date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Not a date: {value!r}") from e


def format_date(value):
    """Format as YYYY-MM-DD for storage. None stays None."""
    parsed = parse_date(value)
    return parsed.strftime(DATE_FORMAT_STORAGE) if parsed else None


def format_timestamp(value: datetime):
    return value.strftime(TIMESTAMP_FORMAT) if value else None


def parse_timestamp(value):
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.strptime(str(value), TIMESTAMP_FORMAT)
    except ValueError:
        return date_parser.parse(str(value))


def format_currency(amount) -> str:
    """Format an amount as South African Rand, e.g. R1234.50."""
    return f"{CURRENCY_SYMBOL}{quantize_money(amount):.2f}"


def generate_id() -> str:
    return uuid.uuid4().hex
