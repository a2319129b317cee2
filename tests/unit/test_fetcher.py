"""Unit tests for eventrotator.sources.fetcher using httpx.MockTransport."""

import httpx
import pytest

from eventrotator.calendar.models import AttemptReason, FeedSource
from eventrotator.core.http_client import build_client
from eventrotator.sources.fetcher import (
    MAX_DETAIL_CHARS,
    CandidateFetcher,
    FeedNetworkError,
    FeedTimeoutError,
)

pytestmark = [pytest.mark.unit, pytest.mark.fast]

ICS_BODY = "BEGIN:VCALENDAR\r\nBEGIN:VEVENT\r\nUID:1\r\nEND:VEVENT\r\nEND:VCALENDAR\r\n"


def make_fetcher(routes: dict[str, object]) -> tuple[CandidateFetcher, list[str]]:
    """Build a fetcher whose transport answers from ``routes`` and records requested URLs.

    A route value is an ``httpx.Response`` or an exception instance to raise.
    """
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        requested.append(url)
        outcome = routes.get(url, httpx.Response(404, text="not found"))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    client = build_client(transport=httpx.MockTransport(handler))
    return CandidateFetcher(client=client), requested


class TestFetchCandidate:
    async def test_calendar_body_is_ok(self) -> None:
        fetcher, _ = make_fetcher({"https://feeds.test/a.ics": httpx.Response(200, text=ICS_BODY)})

        attempt = await fetcher.fetch_candidate("a", "https://feeds.test/a.ics")

        assert attempt.ok is True
        assert attempt.reason == AttemptReason.OK
        assert attempt.status_code == 200
        assert attempt.text == ICS_BODY

    async def test_error_status_is_reported(self) -> None:
        fetcher, _ = make_fetcher({"https://feeds.test/a.ics": httpx.Response(503, text="x" * 500)})

        attempt = await fetcher.fetch_candidate("a", "https://feeds.test/a.ics")

        assert attempt.ok is False
        assert attempt.reason == AttemptReason.HTTP_STATUS
        assert attempt.status_code == 503
        assert len(attempt.detail) == MAX_DETAIL_CHARS

    async def test_html_page_is_rejected(self) -> None:
        html = "<!DOCTYPE html><html><body>Please sign in</body></html>"
        fetcher, _ = make_fetcher({"https://feeds.test/a.ics": httpx.Response(200, text=html)})

        attempt = await fetcher.fetch_candidate("a", "https://feeds.test/a.ics")

        assert attempt.ok is False
        assert attempt.reason == AttemptReason.NON_CALENDAR
        assert attempt.detail.startswith("<!DOCTYPE html>")

    async def test_transport_error_becomes_failed_attempt(self) -> None:
        fetcher, _ = make_fetcher({"https://feeds.test/a.ics": httpx.ConnectError("refused")})

        attempt = await fetcher.fetch_candidate("a", "https://feeds.test/a.ics")

        assert attempt.ok is False
        assert attempt.reason == AttemptReason.TRANSPORT_ERROR
        assert "refused" in attempt.detail

    async def test_failed_attempt_text_is_not_serialized(self) -> None:
        fetcher, _ = make_fetcher({"https://feeds.test/a.ics": httpx.Response(200, text=ICS_BODY)})

        attempt = await fetcher.fetch_candidate("a", "https://feeds.test/a.ics")

        assert "text" not in attempt.model_dump()


class TestGetErrorMapping:
    async def test_timeout_maps_to_feed_timeout_error(self) -> None:
        fetcher, _ = make_fetcher({"https://feeds.test/a.ics": httpx.ReadTimeout("slow")})

        with pytest.raises(FeedTimeoutError):
            await fetcher._get("https://feeds.test/a.ics")

    async def test_network_error_maps_to_feed_network_error(self) -> None:
        fetcher, _ = make_fetcher({"https://feeds.test/a.ics": httpx.ConnectError("down")})

        with pytest.raises(FeedNetworkError):
            await fetcher._get("https://feeds.test/a.ics")


class TestFetchSource:
    async def test_first_success_stops_the_chain(self) -> None:
        source = FeedSource(
            id="club",
            url="https://feeds.test/club.ics",
            candidates=(
                "https://relay.test/club.ics",
                "https://mirror.test/club.ics",
                "https://feeds.test/club.ics",
            ),
        )
        fetcher, requested = make_fetcher(
            {
                "https://relay.test/club.ics": httpx.Response(502, text="Proxy error"),
                "https://mirror.test/club.ics": httpx.Response(200, text=ICS_BODY),
                "https://feeds.test/club.ics": httpx.Response(200, text=ICS_BODY),
            }
        )

        result = await fetcher.fetch_source(source)

        assert result.succeeded
        assert result.ok_url == "https://mirror.test/club.ics"
        assert requested == ["https://relay.test/club.ics", "https://mirror.test/club.ics"]
        assert [a.reason for a in result.attempts] == [AttemptReason.HTTP_STATUS, AttemptReason.OK]

    async def test_all_candidates_failing_gives_empty_text(self) -> None:
        source = FeedSource(
            id="club",
            url="https://feeds.test/club.ics",
            candidates=("https://relay.test/club.ics", "https://feeds.test/club.ics"),
        )
        fetcher, requested = make_fetcher(
            {
                "https://relay.test/club.ics": httpx.ConnectError("down"),
                "https://feeds.test/club.ics": httpx.Response(200, text="<html>login</html>"),
            }
        )

        result = await fetcher.fetch_source(source)

        assert not result.succeeded
        assert result.text == ""
        assert result.ok_url == ""
        assert len(requested) == 2
        assert len(result.attempts) == 2
