# watercan/utils/validation_functions.py
import re
from datetime import datetime, timezone


def validate_email(email: str) -> bool:
    pattern = r'^[\w\.-]+@[\w\.-]+\.\w+$'
    return re.match(pattern, email) is not None


def _as_int(value):
    # bool is an int subclass but never a valid amount or quantity
    if value is None or isinstance(value, bool):
        raise ValueError("missing")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("fractional")
        return int(value)
    if isinstance(value, str):
        value = value.strip()
        if not re.fullmatch(r"[+-]?\d+", value):
            raise ValueError("not an integer")
        return int(value)
    raise ValueError("unsupported type")


def parse_positive_int(value, error: Exception) -> int:
    """
    Return ``value`` as an int >= 1.
    Accepts ints, integral floats and digit strings; raises ``error`` otherwise.
    """
    try:
        number = _as_int(value)
    except ValueError:
        raise error
    if number < 1:
        raise error
    return number


def parse_non_negative_int(value, error: Exception) -> int:
    try:
        number = _as_int(value)
    except ValueError:
        raise error
    if number < 0:
        raise error
    return number


def parse_datetime(value, error: Exception):
    """Parse an ISO date or datetime string; ``None`` and datetimes pass through."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise error
    # Stored timestamps are naive UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
