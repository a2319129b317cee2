"""Shared fixtures for eventrotator tests."""

from collections.abc import AsyncIterator, Callable
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from eventrotator.calendar.models import SourceResult
from eventrotator.core.http_client import close_all_clients


@pytest.fixture
def phoenix_tz() -> ZoneInfo:
    """Deterministic local zone for wall-clock values (no DST in Arizona)."""
    return ZoneInfo("America/Phoenix")


@pytest.fixture
def fixed_now() -> datetime:
    """Reference "now" used by time-filter tests: 2025-01-15 12:00 UTC."""
    return datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear EVENTROTATOR_* variables so host settings never leak into tests."""
    for key in (
        "EVENTROTATOR_ICS_URLS",
        "EVENTROTATOR_MAX_EVENTS",
        "EVENTROTATOR_REFRESH_INTERVAL",
        "EVENTROTATOR_WEB_HOST",
        "EVENTROTATOR_WEB_PORT",
        "EVENTROTATOR_LOCAL_TIMEZONE",
        "EVENTROTATOR_LOG_LEVEL",
        "EVENTROTATOR_DEBUG",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close shared httpx clients after every test to avoid leaking connections."""
    yield
    await close_all_clients()


def vevent(
    uid: str = "evt-1",
    dtstart: str = "20250115T180000Z",
    dtend: str | None = "20250115T190000Z",
    summary: str = "Club Meeting",
    extra: str = "",
) -> str:
    """Build one VEVENT block (CRLF line endings, like real feeds)."""
    lines = ["BEGIN:VEVENT", f"UID:{uid}", f"DTSTART:{dtstart}"]
    if dtend is not None:
        lines.append(f"DTEND:{dtend}")
    lines.append(f"SUMMARY:{summary}")
    if extra:
        lines.extend(extra.splitlines())
    lines.append("END:VEVENT")
    return "\r\n".join(lines)


def calendar(*events: str) -> str:
    """Wrap VEVENT blocks in a VCALENDAR document."""
    body = "\r\n".join(events)
    return (
        "BEGIN:VCALENDAR\r\nVERSION:2.0\r\nPRODID:-//eventrotator test//EN\r\n"
        f"{body}\r\nEND:VCALENDAR\r\n"
    )


@pytest.fixture
def ics_event() -> Callable[..., str]:
    return vevent


@pytest.fixture
def ics_calendar() -> Callable[..., str]:
    return calendar


@pytest.fixture
def sample_ics_simple() -> str:
    """A calendar with one timed UTC event, one all-day event and one floating event."""
    return calendar(
        vevent(
            uid="meet-001@test",
            dtstart="20250115T180000Z",
            dtend="20250115T190000Z",
            summary="Team Meeting",
            extra="LOCATION:Conference Room A\nDESCRIPTION:Weekly sync\\nBring notes",
        ),
        vevent(uid="fair-002@test", dtstart="20250116", dtend=None, summary="Career Fair"),
        vevent(
            uid="talk-003@test",
            dtstart="20250117T090000",
            dtend="20250117T100000",
            summary="Guest Talk",
        ),
    )


@pytest.fixture
def make_source_result() -> Callable[[str, str], SourceResult]:
    def _make(source_id: str, text: str) -> SourceResult:
        return SourceResult(source_id=source_id, text=text, ok_url=f"https://feeds.test/{source_id}.ics")

    return _make
