"""Concurrent retrieval across all configured sources."""

from __future__ import annotations

import asyncio
import logging
from datetime import tzinfo
from typing import Optional

from ..calendar.datetime_utils import normalize_record
from ..calendar.ics_parser import parse_ics
from ..calendar.models import FeedSource, FeedStatus, Occurrence, SourceResult
from .fetcher import CandidateFetcher

logger = logging.getLogger(__name__)


class SourceAggregator:
    """Fetches every source concurrently and tolerates per-source failure."""

    def __init__(self, fetcher: Optional[CandidateFetcher] = None) -> None:
        """Initialize source aggregator.

        Args:
            fetcher: Candidate fetcher (defaults to one using the shared HTTP client)
        """
        self.fetcher = fetcher or CandidateFetcher()

    async def fetch_all(self, sources: list[FeedSource]) -> list[SourceResult]:
        """Fetch all sources at once and wait for every one to settle.

        Args:
            sources: Configured feed sources

        Returns:
            One SourceResult per source, in configuration order. A source whose
            task raised is reported with empty text.
        """
        if not sources:
            logger.error("No sources configured, skipping fetch")
            return []

        tasks = [asyncio.create_task(self.fetcher.fetch_source(src)) for src in sources]
        settled = await asyncio.gather(*tasks, return_exceptions=True)

        results: list[SourceResult] = []
        for source, outcome in zip(sources, settled):
            if isinstance(outcome, BaseException):
                logger.error("Source %s failed: %s", source.id, outcome)
                results.append(SourceResult(source_id=source.id))
                continue
            results.append(outcome)

        ok_count = sum(1 for r in results if r.succeeded)
        logger.debug("Fetched %d/%d sources successfully", ok_count, len(results))
        return results


def feed_status(results: list[SourceResult]) -> FeedStatus:
    """Summarize which sources produced text and via which candidate."""
    status = FeedStatus()
    for result in results:
        if result.succeeded:
            status.ok.append(result.source_id)
            status.ok_urls[result.source_id] = result.ok_url
        else:
            status.fail.append(result.source_id)
    return status


def collect_occurrences(
    results: list[SourceResult], local_tz: Optional[tzinfo] = None
) -> list[Occurrence]:
    """Parse and normalize every successful source, tagging each occurrence."""
    occurrences: list[Occurrence] = []
    for result in results:
        if not result.succeeded:
            continue
        records = parse_ics(result.text)
        occurrences.extend(normalize_record(r, result.source_id, local_tz) for r in records)
        logger.debug("Source %s yielded %d records", result.source_id, len(records))
    return occurrences
