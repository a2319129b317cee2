"""iCalendar document parsing and occurrence normalization."""

from .datetime_utils import is_all_day, normalize_record, parse_ics_date
from .ics_parser import parse_ics
from .models import Occurrence, RawEventRecord

__all__ = [
    "Occurrence",
    "RawEventRecord",
    "is_all_day",
    "normalize_record",
    "parse_ics",
    "parse_ics_date",
]
