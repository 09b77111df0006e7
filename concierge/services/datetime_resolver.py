"""Turn the loose date/time strings of a job draft into a start timestamp."""

import re
from datetime import date, datetime, time

from dateutil.parser import parse as parse_date

TIME_PATTERN = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?\s*(AM|PM)?\s*$", re.IGNORECASE)


def _parse_time(time_string: str) -> tuple[int, int] | None:
    """Return (hour, minute) in 24-hour time, or None when the string is not a clock time."""
    match = TIME_PATTERN.match(time_string)
    if not match:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2) or 0)
    meridiem = (match.group(3) or "").upper()

    if minutes > 59:
        return None
    if meridiem:
        if not 1 <= hours <= 12:
            return None
        if meridiem == "PM" and hours != 12:
            hours += 12
        elif meridiem == "AM" and hours == 12:
            hours = 0
    elif hours > 23:
        return None

    return hours, minutes


def resolve_datetime(date_string: str | None, time_string: str | None = None) -> datetime | None:
    """Resolve a draft's scheduled date and time.

    Returns None when there is no date or it cannot be parsed. A time string that
    is not an ``H``, ``H:MM``, ``H AM`` or ``H:MM PM`` clock time is ignored and
    the date resolves to midnight.
    """
    if not date_string or not str(date_string).strip():
        return None

    try:
        resolved = parse_date(str(date_string), default=datetime.combine(date.today(), time.min))
    except (ValueError, OverflowError):
        return None

    if resolved.tzinfo is not None:
        resolved = resolved.replace(tzinfo=None)

    if time_string:
        parsed_time = _parse_time(time_string)
        if parsed_time:
            hours, minutes = parsed_time
            resolved = resolved.replace(hour=hours, minute=minutes, second=0, microsecond=0)

    return resolved
