"""Relative review dates ("3 weeks ago", "a month ago") to absolute instants.

Text that does not match the grammar normalizes to the reference instant
itself. So does an amount too large to subtract from the reference
("9999 years ago"). That fallback silently fabricates a timestamp of "now";
callers that care about date precision should keep the raw text alongside the
result.
"""

import re
from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

RELATIVE_TIME_UNITS = ("second", "minute", "hour", "day", "week", "month", "year")

_UNIT_PATTERN = "|".join(RELATIVE_TIME_UNITS)
NUMERIC_RELATIVE_TIME_REGEX = re.compile(rf"\b([1-9]\d*)\s+({_UNIT_PATTERN})s?\s+ago\b", re.IGNORECASE)
ARTICLE_RELATIVE_TIME_REGEX = re.compile(rf"\ban?\s+({_UNIT_PATTERN})\s+ago\b", re.IGNORECASE)

_FIXED_UNITS = {
    "second": "seconds",
    "minute": "minutes",
    "hour": "hours",
    "day": "days",
    "week": "weeks",
}
_CALENDAR_UNITS = {
    "month": "months",
    "year": "years",
}


def parse_relative_time(text: str | None) -> tuple[int, str] | None:
    """Return ``(amount, unit)`` for a recognized expression, else None."""
    value = re.sub(r"\s+", " ", text or "").strip().lower()
    if not value:
        return None

    match = NUMERIC_RELATIVE_TIME_REGEX.search(value)
    if match:
        return int(match.group(1)), match.group(2)

    match = ARTICLE_RELATIVE_TIME_REGEX.search(value)
    if match:
        return 1, match.group(1)

    return None


def looks_like_relative_time(text: str | None) -> bool:
    return parse_relative_time(text) is not None


def normalize_relative_time(text: str | None, reference: datetime) -> datetime:
    parsed = parse_relative_time(text)
    if parsed is None:
        return reference

    amount, unit = parsed
    try:
        if unit in _CALENDAR_UNITS:
            # Calendar arithmetic: "1 month ago" from Mar 31 lands on Feb 28/29.
            return reference - relativedelta(**{_CALENDAR_UNITS[unit]: amount})
        return reference - timedelta(**{_FIXED_UNITS[unit]: amount})
    except (OverflowError, ValueError):
        return reference
