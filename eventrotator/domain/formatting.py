"""Display helpers for occurrence cards and the ticker."""

import re
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

_TAG_RE = re.compile(r"<[^>]+>")


def _date_label(dt: datetime) -> str:
    return f"{dt:%a}, {dt:%b} {dt.day}"


def _time_label(dt: datetime) -> str:
    hour = dt.hour % 12 or 12
    return f"{hour}:{dt.minute:02d} {'AM' if dt.hour < 12 else 'PM'}"


def format_range(
    start: Optional[datetime],
    end: Optional[datetime],
    tz: str = "America/Phoenix",
    *,
    all_day: bool = False,
) -> str:
    """Human-readable range in the display zone.

    Examples:
        ``Wed, Jan 15 · All day``
        ``Wed, Jan 15 · 6:00 PM – 7:00 PM``
        ``Wed, Jan 15 6:00 PM – Thu, Jan 16 9:00 AM``
    """
    if start is None:
        return ""
    zone = ZoneInfo(tz)
    s = start.astimezone(zone)
    if all_day:
        return f"{_date_label(s)} · All day"

    e = (end or start).astimezone(zone)
    if s.date() == e.date():
        return f"{_date_label(s)} · {_time_label(s)} – {_time_label(e)}"
    return f"{_date_label(s)} {_time_label(s)} – {_date_label(e)} {_time_label(e)}"


def plain_description(description: Optional[str]) -> str:
    """Strip HTML tags from a description for card display."""
    return _TAG_RE.sub("", description or "").strip()
