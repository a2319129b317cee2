"""One refresh cycle: source results in, bounded ordered timeline out.

Both entry points are free of hidden state: the reference time is passed in,
and the only I/O happens inside the injected aggregator.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta, tzinfo
from typing import Optional

from eventrotator.calendar.models import FeedSource, SourceResult, TimelineResult, TimelineStats
from eventrotator.domain.pipeline import DEFAULT_GRACE, DEFAULT_MAX_EVENTS, ProcessingContext
from eventrotator.domain.pipeline_stages import create_timeline_pipeline
from eventrotator.sources.aggregator import SourceAggregator, collect_occurrences, feed_status

logger = logging.getLogger(__name__)

NO_SOURCES_ERROR = "No feed URLs configured"
NO_FEEDS_ERROR = "No feeds loaded"


async def build_timeline(
    results: list[SourceResult],
    now: datetime,
    *,
    grace: timedelta = DEFAULT_GRACE,
    keywords: Optional[list[str]] = None,
    max_events: int = DEFAULT_MAX_EVENTS,
    local_tz: Optional[tzinfo] = None,
) -> TimelineResult:
    """Merge, filter, dedupe, order and cap the occurrences of all sources.

    Args:
        results: Per-source fetch outcomes
        now: Aware reference time for the stale filter
        grace: How long after its end an occurrence stays eligible
        keywords: Optional keyword filter (None/empty disables it)
        max_events: Cap on the returned occurrences
        local_tz: Zone for wall-clock feed values (None = runtime zone)

    Returns:
        TimelineResult with occurrences, feed status and per-step counts
    """
    status = feed_status(results)
    parsed = collect_occurrences(results, local_tz)

    context = ProcessingContext(
        max_events=max_events,
        grace=grace,
        keywords=list(keywords or []),
        now=now,
        events=parsed,
    )
    pipeline_result = await create_timeline_pipeline().process(context)
    if not pipeline_result.success:
        return TimelineResult(
            status=status,
            stats=TimelineStats(parsed=len(parsed)),
            error="; ".join(pipeline_result.errors) or "Timeline processing failed",
            generated_at=now,
        )

    counts = pipeline_result.metadata.get("stage_counts", {})
    occurrences = pipeline_result.events
    status.counts = dict(Counter(o.source_id for o in occurrences))
    stats = TimelineStats(
        parsed=len(parsed),
        valid=counts.get("ValidDates", 0),
        after_time_filter=counts.get("StaleEventFilter", 0),
        final=len(occurrences),
    )
    logger.info(
        "Parsed total: %d, Valid: %d, After time filter: %d, Final: %d",
        stats.parsed,
        stats.valid,
        stats.after_time_filter,
        stats.final,
    )
    return TimelineResult(occurrences=occurrences, status=status, stats=stats, generated_at=now)


async def refresh_timeline(
    sources: list[FeedSource],
    aggregator: SourceAggregator,
    now: datetime,
    **options,
) -> TimelineResult:
    """Fetch every source and build the timeline.

    Args:
        sources: Configured feed sources
        aggregator: Aggregator performing the concurrent fetch
        now: Aware reference time
        **options: Forwarded to build_timeline (grace, keywords, max_events, local_tz)

    Returns:
        TimelineResult; ``error`` is set when nothing is configured or no
        source produced any text
    """
    if not sources:
        logger.error(NO_SOURCES_ERROR)
        return TimelineResult(error=NO_SOURCES_ERROR, generated_at=now)

    results = await aggregator.fetch_all(sources)
    if not any(r.succeeded for r in results):
        logger.error("%s (%d sources tried)", NO_FEEDS_ERROR, len(sources))
        return TimelineResult(status=feed_status(results), error=NO_FEEDS_ERROR, generated_at=now)

    return await build_timeline(results, now, **options)
