# pyright: reportAny=false, reportExplicitAny=false
"""Value checks shared by field, form and rule validation."""

import math
import re
from datetime import UTC, date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Final
from urllib.parse import urlparse

import pendulum
from pendulum.parsing.exceptions import ParserError

__all__ = [
    "EMAIL_PATTERN",
    "PHONE_PATTERN",
    "is_blank",
    "is_valid_email",
    "is_valid_phone",
    "is_valid_url",
    "matches_pattern",
    "parse_datetime",
    "passes_field_rule",
    "to_number",
    "value_length",
]

EMAIL_PATTERN: Final = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN: Final = re.compile(r"^\+?[0-9\s\-()]{8,20}$")


def is_blank(value: Any) -> bool:
    """Return True for None, empty strings and empty lists."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def to_number(value: Any) -> float | int | None:
    """Interpret a value as a number.

    Booleans map to 0/1, numeric strings are parsed, blank strings are 0.

    Returns:
        The number, or None if the value is not numeric.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return None if math.isnan(value) or math.isinf(value) else value
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return None
        if not parsed.is_finite():
            return None
        return int(parsed) if parsed == parsed.to_integral_value() and "." not in text else float(parsed)
    return None


def parse_datetime(value: Any) -> datetime | None:
    """Interpret a value as a timezone-aware datetime.

    Accepts datetimes, dates, epoch milliseconds and date strings (ISO 8601
    first, then the formats pendulum understands). Naive values are taken
    as UTC.

    Returns:
        The datetime, or None if the value is not a date.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed_any = pendulum.parse(text, strict=False)
        except (ValueError, OverflowError, ParserError):
            return None
        if isinstance(parsed_any, datetime):
            parsed = parsed_any
        elif isinstance(parsed_any, date):
            parsed = datetime(parsed_any.year, parsed_any.month, parsed_any.day, tzinfo=UTC)
        else:
            return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def value_length(value: Any) -> int:
    """Return the length of a value's text form (lists count items)."""
    if isinstance(value, (list, tuple)):
        return len(value)
    return len(str(value))


def matches_pattern(value: Any, pattern: str) -> bool:
    """Search `pattern` in the value's text form.

    An invalid pattern never fails the value.
    """
    try:
        return re.search(pattern, str(value)) is not None
    except re.error:
        return True


def is_valid_email(value: Any) -> bool:
    return EMAIL_PATTERN.match(str(value)) is not None


def is_valid_phone(value: Any) -> bool:
    return PHONE_PATTERN.match(str(value)) is not None


def is_valid_url(value: Any) -> bool:
    """Return True for absolute URLs with a scheme and a host."""
    try:
        parsed = urlparse(str(value))
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def _bound(operand: Any) -> float | int | None:
    return None if operand is None else to_number(operand)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def passes_field_rule(rule_type: str, operand: Any, value: Any) -> bool:  # noqa: PLR0911
    """Check a value against a declarative field rule.

    Length, pattern and format rules only constrain strings; bound rules only
    constrain numbers. Custom and unknown rule types pass, they are evaluated
    by the caller.

    Args:
        rule_type: A FieldValidationType value.
        operand: The rule operand (length, bound or pattern).
        value: The value to check.

    Returns:
        True if the value satisfies the rule.
    """
    match rule_type:
        case "required":
            return value is not None and value != ""
        case "minLength":
            bound = _bound(operand)
            return not isinstance(value, str) or bound is None or len(value) >= bound
        case "maxLength":
            bound = _bound(operand)
            return not isinstance(value, str) or bound is None or len(value) <= bound
        case "minValue":
            bound = _bound(operand)
            return not _is_number(value) or bound is None or value >= bound
        case "maxValue":
            bound = _bound(operand)
            return not _is_number(value) or bound is None or value <= bound
        case "pattern":
            return not isinstance(value, str) or matches_pattern(value, str(operand or ""))
        case "email":
            return not isinstance(value, str) or is_valid_email(value)
        case "url":
            return not isinstance(value, str) or is_valid_url(value)
        case _:
            return True
