"""Date parsing shared by the concepts that accept time inputs.

Request payloads carry ISO-8601 strings while direct callers pass datetime
objects. Everything is normalised to naive UTC, the way the models store it.
"""

from datetime import date, datetime, time, timezone
from typing import Any


def parse_datetime(value: Any, end_of_day: bool = False) -> datetime | None:
    """Parse a datetime, date or ISO string; None when it is not one.

    A bare date means the start of that day, or its last instant when
    ``end_of_day`` is set, so date-only ranges are inclusive.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.max if end_of_day else time.min)
    elif isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                day = date.fromisoformat(text)
                parsed = datetime.combine(day, time.max if end_of_day else time.min)
            else:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
