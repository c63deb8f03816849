"""Calendar-day helpers: day keys, weekday codes, and month/week boundaries.

Every ledger and day lookup is keyed by a plain ``datetime.date``. Timestamps
and strings are converted here, at the boundary.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta
from typing import Iterator, Optional, Tuple

from flask import current_app, has_app_context

from habitflow.core.errors import field_error

# Index matches date.weekday(): Monday == 0.
WEEKDAY_CODES = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

_DAY_KEY_RE = re.compile(r"\d{4}-\d{2}-\d{2}")
_TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}.*")


def parse_day_key(value, field: str = "date") -> date:
    """Coerce a date, datetime, ISO day key or ISO timestamp into a day key.

    Strings must be a whole ``YYYY-MM-DD`` key or a full ISO timestamp; a
    timestamp is cut to its calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if _DAY_KEY_RE.fullmatch(text):
                return date.fromisoformat(text)
            if _TIMESTAMP_RE.fullmatch(text):
                return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    raise field_error(field, "invalid date")


def format_day_key(day: date) -> str:
    return day.isoformat()


def parse_month(value, field: str = "month") -> date:
    """Parse ``YYYY-MM`` (or any day inside the month) into the month's first day."""
    if isinstance(value, str) and len(value.strip()) == 7:
        value = f"{value.strip()}-01"
    return parse_day_key(value, field).replace(day=1)


def today() -> date:
    """Current day key; ``HABITS_TODAY_OVERRIDE`` pins it for reporting runs."""
    if has_app_context():
        override = current_app.config.get("HABITS_TODAY_OVERRIDE")
        if override:
            return parse_day_key(override, "HABITS_TODAY_OVERRIDE")
    return date.today()


def weekday_code(day: date) -> str:
    return WEEKDAY_CODES[day.weekday()]


def week_start(day: date) -> date:
    """Sunday on or before ``day``."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def month_bounds(month_start: date) -> Tuple[date, date]:
    last = calendar.monthrange(month_start.year, month_start.month)[1]
    return month_start.replace(day=1), month_start.replace(day=last)


def shift_month(month_start: date, offset: int) -> date:
    index = month_start.year * 12 + (month_start.month - 1) + offset
    return date(index // 12, index % 12 + 1, 1)


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def days_in_month(month_start: date) -> int:
    return calendar.monthrange(month_start.year, month_start.month)[1]


def optional_day_key(value, field: str = "date") -> Optional[date]:
    if value in (None, ""):
        return None
    return parse_day_key(value, field)
