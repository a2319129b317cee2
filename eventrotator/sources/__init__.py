"""Feed sources: candidate construction, retrieval and aggregation."""

from .aggregator import SourceAggregator, collect_occurrences, feed_status
from .candidates import build_sources, looks_like_calendar, source_id_for, sources_from_config
from .fetcher import CandidateFetcher, FeedFetchError, FeedNetworkError, FeedTimeoutError

__all__ = [
    "CandidateFetcher",
    "FeedFetchError",
    "FeedNetworkError",
    "FeedTimeoutError",
    "SourceAggregator",
    "build_sources",
    "collect_occurrences",
    "feed_status",
    "looks_like_calendar",
    "source_id_for",
    "sources_from_config",
]
