"""Concrete stages of the merge-filter-dedupe pipeline.

Stages never modify an Occurrence; they only drop or reorder them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from eventrotator.calendar.models import Occurrence
from eventrotator.domain.pipeline import (
    EventProcessingPipeline,
    ProcessingContext,
    ProcessingResult,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


class ValidDatesStage:
    """Drop occurrences whose start or end could not be resolved."""

    def __init__(self) -> None:
        self._name = "ValidDates"

    @property
    def name(self) -> str:
        """Stage name for logging."""
        return self._name

    async def process(self, context: ProcessingContext) -> ProcessingResult:
        result = ProcessingResult(stage_name=self.name, events_in=len(context.events))
        valid = [e for e in context.events if e.start is not None and e.end is not None]
        if len(valid) < result.events_in:
            logger.debug("Dropped %d occurrences with unresolved dates", result.events_in - len(valid))
        return result.record(context, valid)


class StaleEventFilterStage:
    """Drop occurrences that ended before ``now - grace``.

    In-progress occurrences and ones that ended within the grace window stay.
    """

    def __init__(self) -> None:
        self._name = "StaleEventFilter"

    @property
    def name(self) -> str:
        """Stage name for logging."""
        return self._name

    async def process(self, context: ProcessingContext) -> ProcessingResult:
        """Filter by effective end against the context's reference time.

        Args:
            context: Processing context; ``now`` must be set

        Returns:
            Result with current occurrences
        """
        result = ProcessingResult(stage_name=self.name, events_in=len(context.events))
        if context.now is None:
            result.add_error("No reference time provided for stale filtering")
            return result

        cutoff = context.now - context.grace
        current = [e for e in context.events if e.effective_end is not None and e.effective_end >= cutoff]
        logger.debug(
            "Stale filter: %d → %d occurrences (cutoff %s)",
            result.events_in,
            len(current),
            cutoff.isoformat(),
        )
        return result.record(context, current)


def matches_keywords(occurrence: Occurrence, keywords: Iterable[str]) -> bool:
    """Case-insensitive substring match over summary, location and description."""
    haystack = "\n".join(
        [occurrence.summary or "", occurrence.location or "", occurrence.description or ""]
    ).lower()
    return any(keyword.lower() in haystack for keyword in keywords)


class KeywordFilterStage:
    """Keep occurrences mentioning any configured keyword.

    With no keywords configured the stage passes everything through.
    """

    def __init__(self, keywords: Optional[list[str]] = None) -> None:
        """Initialize keyword filter stage.

        Args:
            keywords: Default keywords, used when the context carries none
        """
        self._name = "KeywordFilter"
        self.keywords = keywords or []

    @property
    def name(self) -> str:
        """Stage name for logging."""
        return self._name

    async def process(self, context: ProcessingContext) -> ProcessingResult:
        result = ProcessingResult(stage_name=self.name, events_in=len(context.events))
        keywords = [k for k in (context.keywords or self.keywords) if k]
        if not keywords:
            return result.record(context, context.events)

        kept = [e for e in context.events if matches_keywords(e, keywords)]
        if len(kept) < result.events_in:
            logger.info("Keyword filter removed %d occurrences", result.events_in - len(kept))
        return result.record(context, kept)


class SourceOrderingStage:
    """Order occurrences by start instant.

    Occurrences are grouped by source (in first-seen order) and each group is
    sorted, then the flattened sequence is sorted again. Both sorts are stable
    and use no secondary key, so equal starts keep their input order.
    """

    def __init__(self) -> None:
        self._name = "SourceOrdering"

    @property
    def name(self) -> str:
        """Stage name for logging."""
        return self._name

    async def process(self, context: ProcessingContext) -> ProcessingResult:
        result = ProcessingResult(stage_name=self.name, events_in=len(context.events))

        by_source: dict[str, list[Occurrence]] = {}
        for occurrence in context.events:
            by_source.setdefault(occurrence.source_id, []).append(occurrence)
        for group in by_source.values():
            group.sort(key=_start_key)

        flattened = [e for group in by_source.values() for e in group]
        flattened.sort(key=_start_key)
        return result.record(context, flattened)


def _start_key(occurrence: Occurrence) -> float:
    return occurrence.start.timestamp() if occurrence.start else float("-inf")


def dedupe_key(occurrence: Occurrence) -> str:
    """Composite identity: source, uid (or summary), start in epoch milliseconds."""
    start_ms = round(occurrence.start.timestamp() * 1000) if occurrence.start else "NaN"
    ident = occurrence.uid or occurrence.summary or "noid"
    return f"{occurrence.source_id}|{ident}|{start_ms}"


class DeduplicationStage:
    """Keep the first occurrence seen for each dedupe key.

    O(n) set-based lookup; relies on the ordering stage having run first so
    that "first" means earliest in timeline order.
    """

    def __init__(self) -> None:
        self._name = "Deduplication"

    @property
    def name(self) -> str:
        """Stage name for logging."""
        return self._name

    async def process(self, context: ProcessingContext) -> ProcessingResult:
        result = ProcessingResult(stage_name=self.name, events_in=len(context.events))

        seen: set[str] = set()
        unique: list[Occurrence] = []
        for occurrence in context.events:
            key = dedupe_key(occurrence)
            if key in seen:
                continue
            seen.add(key)
            unique.append(occurrence)

        result.record(context, unique)
        if result.events_filtered > 0:
            logger.debug(
                "Deduplication: %s → %s occurrences (%s duplicates removed)",
                result.events_in,
                result.events_out,
                result.events_filtered,
            )
        return result


class EventLimitStage:
    """Keep the earliest N occurrences (input is already in timeline order)."""

    def __init__(self, max_events: Optional[int] = None) -> None:
        """Initialize event limit stage.

        Args:
            max_events: Maximum number to keep when the context sets none
        """
        self._name = "EventLimit"
        self.max_events = max_events

    @property
    def name(self) -> str:
        """Stage name for logging."""
        return self._name

    async def process(self, context: ProcessingContext) -> ProcessingResult:
        result = ProcessingResult(stage_name=self.name, events_in=len(context.events))
        limit = context.max_events or self.max_events
        if not limit or len(context.events) <= limit:
            return result.record(context, context.events)

        logger.debug("Event limit: %d → %d occurrences", result.events_in, limit)
        return result.record(context, context.events[:limit])


def create_timeline_pipeline(keywords: Optional[list[str]] = None) -> EventProcessingPipeline:
    """Build the standard stage sequence for one refresh cycle."""
    return (
        EventProcessingPipeline()
        .add_stage(ValidDatesStage())
        .add_stage(StaleEventFilterStage())
        .add_stage(KeywordFilterStage(keywords))
        .add_stage(SourceOrderingStage())
        .add_stage(DeduplicationStage())
        .add_stage(EventLimitStage())
    )
