"""Minimal iCalendar document parser.

Turns feed text into flat VEVENT property records. Only the properties the
timeline needs are kept; everything else in the document is ignored. No date
interpretation happens here (see ``datetime_utils``).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .models import RawEventRecord

logger = logging.getLogger(__name__)

BEGIN_EVENT = "BEGIN:VEVENT"
END_EVENT = "END:VEVENT"

_TEXT_PROPERTIES = {"SUMMARY": "summary", "LOCATION": "location", "DESCRIPTION": "description"}


def coerce_text(raw: Any) -> str:
    """Coerce arbitrary feed payloads to text; anything unusable becomes ''."""
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw).decode("utf-8", errors="replace")
    return str(raw)


def unfold_lines(text: str) -> list[str]:
    """Normalize line endings and join folded continuation lines.

    A physical line starting with one space or tab continues the previous
    logical line; its first character is dropped.
    """
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    lines: list[str] = []
    for line in normalized.split("\n"):
        if line.startswith((" ", "\t")) and lines:
            lines[-1] += line[1:]
        elif line.startswith((" ", "\t")):
            lines.append(line[1:])
        else:
            lines.append(line)
    return lines


def split_property(line: str) -> tuple[str, dict[str, str], str]:
    """Split ``NAME;PARAM=VALUE:value`` on the first colon.

    Returns:
        (property name, parameters, value). The value keeps any further colons.
    """
    key_spec, _, value = line.partition(":")
    name, *param_parts = key_spec.split(";")
    params: dict[str, str] = {}
    for part in param_parts:
        param_name, sep, param_value = part.partition("=")
        if sep:
            params[param_name] = param_value
    return name, params, value


def _decode_text(value: str) -> str:
    return value.replace("\\n", "\n")


def parse_ics(raw: Any) -> list[RawEventRecord]:
    """Parse iCalendar text into one RawEventRecord per complete VEVENT block.

    Args:
        raw: Feed payload; non-string input is coerced (None → empty)

    Returns:
        Records in document order. Unterminated blocks are dropped.
    """
    text = coerce_text(raw)
    records: list[RawEventRecord] = []
    current: Optional[dict[str, str]] = None

    for logical in unfold_lines(text):
        line = logical.strip()
        if line == BEGIN_EVENT:
            current = {}
            continue
        if line == END_EVENT:
            if current is not None:
                records.append(RawEventRecord(**current))
            current = None
            continue
        if current is None:
            continue

        name, params, value = split_property(line)
        tzid = params.get("TZID")

        if name == "UID":
            current["uid"] = value
        elif name in _TEXT_PROPERTIES:
            current[_TEXT_PROPERTIES[name]] = _decode_text(value)
        elif name == "URL":
            if "url" not in current and value.startswith("http"):
                current["url"] = value
        elif name.startswith("DTSTART"):
            current["dtstart"] = value
            if tzid:
                current["dtstart_tzid"] = tzid
        elif name.startswith("DTEND"):
            current["dtend"] = value
            if tzid:
                current["dtend_tzid"] = tzid

    if current is not None:
        logger.debug("Dropping unterminated VEVENT block at end of document")
    logger.debug("Parsed %d VEVENT records", len(records))
    return records
