"""Candidate retrieval for calendar feeds.

Each candidate URL is one retrieval strategy. Strategies are tried in order
and each one reports a ``RetrievalAttempt`` instead of raising, so a source's
fallback chain is a plain early-exit loop.
"""

import logging
from typing import Optional

import httpx

from ..calendar.models import AttemptReason, FeedSource, RetrievalAttempt, SourceResult
from ..core.http_client import get_shared_client
from .candidates import looks_like_calendar

logger = logging.getLogger(__name__)

# Upper bound on diagnostic text kept from failed attempts
MAX_DETAIL_CHARS = 200


class FeedFetchError(Exception):
    """Base exception for feed retrieval errors."""


class FeedNetworkError(FeedFetchError):
    """Network error while retrieving a feed candidate."""


class FeedTimeoutError(FeedFetchError):
    """Timeout while retrieving a feed candidate."""


class CandidateFetcher:
    """Fetches one source's document by walking its candidate chain."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, client_id: str = "feeds") -> None:
        """Initialize candidate fetcher.

        Args:
            client: Optional client to use; the shared pooled client is used otherwise
            client_id: Shared client identifier
        """
        self._client = client
        self._client_id = client_id

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await get_shared_client(self._client_id)

    async def _get(self, url: str) -> httpx.Response:
        """GET a candidate URL, mapping httpx failures onto FeedFetchError."""
        client = await self._get_client()
        try:
            return await client.get(url)
        except httpx.TimeoutException as e:
            raise FeedTimeoutError(f"Timeout fetching {url}: {e}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FeedNetworkError(f"Network error fetching {url}: {e}") from e

    async def fetch_candidate(self, source_id: str, url: str) -> RetrievalAttempt:
        """Try one candidate and describe the outcome.

        Args:
            source_id: Source identifier (for logging)
            url: Candidate URL

        Returns:
            RetrievalAttempt; ``ok`` only when the body looks like calendar data
        """
        try:
            response = await self._get(url)
        except FeedFetchError as e:
            logger.warning("FEED ERROR %s %s: %s", source_id, url, e)
            return RetrievalAttempt(
                url=url, ok=False, reason=AttemptReason.TRANSPORT_ERROR, detail=str(e)
            )

        if not response.is_success:
            logger.warning("FEED FAIL %s %s %s", source_id, response.status_code, url)
            return RetrievalAttempt(
                url=url,
                ok=False,
                reason=AttemptReason.HTTP_STATUS,
                status_code=response.status_code,
                detail=response.text[:MAX_DETAIL_CHARS],
            )

        text = response.text
        if not looks_like_calendar(text):
            logger.warning("FEED NON-ICS %s %s", source_id, url)
            return RetrievalAttempt(
                url=url,
                ok=False,
                reason=AttemptReason.NON_CALENDAR,
                status_code=response.status_code,
                detail=text[:MAX_DETAIL_CHARS],
            )

        logger.info("FEED OK %s %s", source_id, url)
        return RetrievalAttempt(
            url=url, ok=True, reason=AttemptReason.OK, status_code=response.status_code, text=text
        )

    async def fetch_source(self, source: FeedSource) -> SourceResult:
        """Walk the source's candidates in order, stopping at the first success.

        Returns:
            SourceResult; ``text`` is empty when every candidate failed
        """
        attempts: list[RetrievalAttempt] = []
        for url in source.candidates:
            attempt = await self.fetch_candidate(source.id, url)
            attempts.append(attempt)
            if attempt.ok:
                return SourceResult(
                    source_id=source.id, text=attempt.text, ok_url=url, attempts=attempts
                )

        logger.warning("All %d candidates failed for source %s", len(attempts), source.id)
        return SourceResult(source_id=source.id, attempts=attempts)
