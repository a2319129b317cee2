"""Date/time resolution for raw iCalendar values.

Every resolved value is a timezone-aware ``datetime`` so occurrences from
different feeds compare as instants. Floating and TZID-qualified wall-clock
values are read in the local zone: the runtime's zone, or ``local_tz`` when
given. The TZID parameter itself is carried on the record but not applied,
which is only correct when the local zone matches the feed's civil zone.
"""

import logging
import re
from datetime import datetime, timezone, tzinfo
from typing import Optional

from dateutil import parser as date_parser

from .models import Occurrence, RawEventRecord

logger = logging.getLogger(__name__)

DATE_ONLY_RE = re.compile(r"^\d{8}$")
UTC_DATETIME_RE = re.compile(r"^\d{8}T\d{6}Z$")
LOCAL_DATETIME_RE = re.compile(r"^\d{8}T\d{6}$")

# Two defaults with no date field in common. A value that parses differently
# under each one is missing a date field and would borrow it from the default.
_FILL_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def _localize(naive: datetime, local_tz: Optional[tzinfo]) -> datetime:
    """Attach the local zone to a wall-clock datetime."""
    if local_tz is not None:
        return naive.replace(tzinfo=local_tz)
    return naive.astimezone()


def _split_fields(value: str) -> tuple[int, int, int, int, int, int]:
    year, month, day = int(value[0:4]), int(value[4:6]), int(value[6:8])
    if len(value) < 15:
        return year, month, day, 0, 0, 0
    return year, month, day, int(value[9:11]), int(value[11:13]), int(value[13:15])


def is_date_only(value: Optional[str]) -> bool:
    return bool(value) and DATE_ONLY_RE.match(value) is not None


def parse_ics_date(
    value: Optional[str],
    tzid: Optional[str] = None,
    *,
    is_end: bool = False,
    local_tz: Optional[tzinfo] = None,
) -> Optional[datetime]:
    """Resolve a raw DTSTART/DTEND value to an aware instant.

    Args:
        value: Raw property value, e.g. ``20250115``, ``20250115T180000Z``
        tzid: TZID parameter, accepted but not applied
        is_end: Resolve a date-only value to the last second of that day
        local_tz: Zone for wall-clock values (None = runtime local zone)

    Returns:
        Aware datetime, or None when the value cannot be resolved. Never
        substitutes the current time.
    """
    if not value:
        return None

    try:
        if DATE_ONLY_RE.match(value):
            year, month, day, _, _, _ = _split_fields(value)
            if is_end:
                # No true end timestamp for all-day items: close out the same day.
                return _localize(datetime(year, month, day, 23, 59, 59), local_tz)
            return _localize(datetime(year, month, day), local_tz)

        if UTC_DATETIME_RE.match(value):
            return datetime(*_split_fields(value), tzinfo=timezone.utc)

        if LOCAL_DATETIME_RE.match(value):
            if tzid:
                logger.debug("Reading %s as local wall clock (TZID=%s not applied)", value, tzid)
            return _localize(datetime(*_split_fields(value)), local_tz)
    except ValueError:
        logger.debug("Out-of-range calendar value %r", value)
        return None

    try:
        parsed, alternate = (date_parser.parse(value, default=d) for d in _FILL_DEFAULTS)
    except (ValueError, OverflowError):
        logger.debug("Unparseable date value %r", value)
        return None
    if parsed != alternate:
        logger.debug("Incomplete date value %r", value)
        return None
    if parsed.tzinfo is None:
        return _localize(parsed, local_tz)
    return parsed


def is_all_day(dtstart: Optional[str], dtend: Optional[str]) -> bool:
    """True when the start is date-only and the end is absent or date-only."""
    return is_date_only(dtstart) and (not dtend or is_date_only(dtend))


def normalize_record(
    record: RawEventRecord, source_id: str, local_tz: Optional[tzinfo] = None
) -> Occurrence:
    """Resolve a record's dates and tag it with its source.

    The end falls back to the start value (resolved as an end) when DTEND is
    missing.
    """
    start = parse_ics_date(record.dtstart, record.dtstart_tzid, is_end=False, local_tz=local_tz)
    end = parse_ics_date(
        record.dtend or record.dtstart,
        record.dtend_tzid if record.dtend else record.dtstart_tzid,
        is_end=True,
        local_tz=local_tz,
    )
    return Occurrence(
        **record.model_dump(),
        start=start,
        end=end,
        all_day=is_all_day(record.dtstart, record.dtend),
        source_id=source_id,
    )
