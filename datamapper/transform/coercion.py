"""
Value coercion by target column.

Every function here returns None for values it cannot interpret; none of them
raise on bad input.
"""

import hashlib
import re
from datetime import date, datetime
from typing import Any, Optional

import pandas as pd

from datamapper.analysis.patterns import CURRENCY_PATTERN, EMAIL_PATTERN
from datamapper.schema.columns import column_kind

INT32_MAX = 2 ** 31 - 1
INT32_MIN = -(2 ** 31)

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_NON_PHONE = re.compile(r"[^\d+]")


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:  # NaN
        return True
    return isinstance(value, str) and not value.strip()


def parse_currency(value: Any) -> Optional[float]:
    """'1,299.50 ৳' -> 1299.5; unparseable -> None."""
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = CURRENCY_PATTERN.sub("", str(value))
    text = _NON_NUMERIC.sub("", text)
    if not text or text in ("-", ".", "-."):
        return None
    try:
        return float(text)
    except ValueError:
        return None


def parse_date(value: Any) -> Optional[str]:
    """Parse common date spellings to an ISO-8601 timestamp string."""
    if is_blank(value) or isinstance(value, (bool, int, float)):
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day).isoformat()
    try:
        parsed = pd.to_datetime(str(value).strip(), errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.isoformat()


def normalize_email(value: Any) -> Optional[str]:
    if is_blank(value):
        return None
    text = str(value).strip()
    return text.lower() if EMAIL_PATTERN.match(text) else None


def clean_phone(value: Any) -> Optional[str]:
    """Keep digits and a leading '+'."""
    if is_blank(value):
        return None
    text = str(value).strip()
    digits = _NON_PHONE.sub("", text).replace("+", "")
    if not digits:
        return None
    return f"+{digits}" if text.startswith("+") else digits


def parse_quantity(value: Any) -> Optional[int]:
    number = parse_currency(value)
    return int(number) if number is not None else None


def stable_hash(text: str) -> int:
    """Positive 31-bit hash, identical across processes and runs."""
    digest = hashlib.sha1(text.encode("utf-8")).hexdigest()
    return int(digest[:8], 16) & INT32_MAX


def generate_id(value: Any) -> Optional[int]:
    """
    Deterministic integer id from a source value.

    Integers (or integer strings) within the 32-bit signed range are kept;
    anything else becomes a stable positive 31-bit hash.
    """
    if is_blank(value):
        return None
    if isinstance(value, bool):
        return stable_hash(str(value))
    if isinstance(value, int) and INT32_MIN <= value <= INT32_MAX:
        return value
    if isinstance(value, float) and value.is_integer() and INT32_MIN <= value <= INT32_MAX:
        return int(value)
    text = str(value).strip()
    if re.fullmatch(r"-?\d+", text):
        number = int(text)
        if INT32_MIN <= number <= INT32_MAX:
            return number
    return stable_hash(text)


def coerce_value(column: str, value: Any) -> Any:
    """Coerce one source value for a target column."""
    kind = column_kind(column)
    if kind == "id":
        return generate_id(value)
    if kind == "key":
        return None if is_blank(value) else str(value).strip()[:100]
    if kind == "currency":
        return parse_currency(value)
    if kind == "date":
        return parse_date(value)
    if kind == "email":
        return normalize_email(value)
    if kind == "phone":
        return clean_phone(value)
    if kind == "quantity":
        return parse_quantity(value)
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value
