"""Occurrence processing pipeline for eventrotator.

The merge-filter-dedupe step of a refresh cycle is a sequence of stages run
over a shared ProcessingContext. Each stage is independently testable and
reports in/out counts for diagnostics.

Usage:
    pipeline = EventProcessingPipeline()
    pipeline.add_stage(ValidDatesStage()).add_stage(DeduplicationStage())

    context = ProcessingContext(now=now, events=occurrences)
    result = await pipeline.process(context)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional, Protocol

from eventrotator.calendar.models import Occurrence

logger = logging.getLogger(__name__)

DEFAULT_GRACE = timedelta(hours=1)
DEFAULT_MAX_EVENTS = 25


@dataclass
class ProcessingContext:
    """Context passed between pipeline stages.

    Stages read configuration from the context and replace ``events`` with
    their output.
    """

    # Configuration
    max_events: int = DEFAULT_MAX_EVENTS
    grace: timedelta = DEFAULT_GRACE
    keywords: list[str] = field(default_factory=list)

    # Injected clock
    now: Optional[datetime] = None

    # Processing state (modified by stages)
    events: list[Occurrence] = field(default_factory=list)

    # Stage-specific data (extensible)
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProcessingResult:
    """Result from a pipeline stage or complete pipeline execution."""

    success: bool = True
    events: list[Occurrence] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    # Statistics
    events_in: int = 0
    events_out: int = 0
    events_filtered: int = 0
    stage_name: str = ""

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)
        logger.warning("[%s] %s", self.stage_name, message)

    def add_error(self, message: str) -> None:
        """Add an error message and mark as failed."""
        self.errors.append(message)
        self.success = False
        logger.error("[%s] %s", self.stage_name, message)

    def record(self, context: ProcessingContext, kept: list[Occurrence]) -> ProcessingResult:
        """Store a stage's output on both the context and this result."""
        context.events = kept
        self.events = kept
        self.events_out = len(kept)
        self.events_filtered = self.events_in - self.events_out
        self.success = True
        return self


class EventProcessor(Protocol):
    """Protocol for a single stage in the occurrence pipeline."""

    async def process(self, context: ProcessingContext) -> ProcessingResult:
        """Process occurrences according to this stage's responsibility."""
        ...

    @property
    def name(self) -> str:
        """Name of this processing stage for logging."""
        ...


class EventProcessingPipeline:
    """Runs stages in sequence over one ProcessingContext.

    A stage that fails (or raises) stops the pipeline; the aggregated result
    then carries the error and ``success=False``.
    """

    def __init__(self) -> None:
        """Initialize empty pipeline."""
        self.stages: list[EventProcessor] = []

    def add_stage(self, stage: EventProcessor) -> EventProcessingPipeline:
        """Add a processing stage to the pipeline (builder pattern).

        Returns:
            Self for method chaining
        """
        self.stages.append(stage)
        logger.debug("Added stage to pipeline: %s", stage.name)
        return self

    async def process(self, context: ProcessingContext) -> ProcessingResult:
        """Execute all pipeline stages in sequence.

        Args:
            context: Processing context with initial state

        Returns:
            Aggregated result; ``metadata["stage_counts"]`` maps stage name to
            its output count
        """
        aggregated = ProcessingResult(stage_name="Pipeline", events_in=len(context.events))
        stage_counts: dict[str, int] = {}

        for i, stage in enumerate(self.stages, start=1):
            try:
                stage_result = await stage.process(context)
            except Exception as e:
                aggregated.add_error(f"Stage {stage.name} raised exception: {e}")
                logger.exception("Stage %s failed with exception", stage.name)
                return aggregated

            logger.debug(
                "Stage %d/%d (%s): success=%s, in=%d, out=%d",
                i,
                len(self.stages),
                stage.name,
                stage_result.success,
                stage_result.events_in,
                stage_result.events_out,
            )
            aggregated.warnings.extend(stage_result.warnings)
            aggregated.errors.extend(stage_result.errors)

            if not stage_result.success:
                aggregated.success = False
                logger.error("Pipeline stopped at stage %d (%s) due to failure", i, stage.name)
                return aggregated

            aggregated.metadata.update(stage_result.metadata)
            stage_counts[stage.name] = stage_result.events_out

        aggregated.metadata["stage_counts"] = stage_counts
        aggregated.success = True
        aggregated.events = context.events
        aggregated.events_out = len(context.events)
        aggregated.events_filtered = aggregated.events_in - aggregated.events_out
        return aggregated

    def __repr__(self) -> str:
        """String representation of pipeline."""
        return f"EventProcessingPipeline(stages={[stage.name for stage in self.stages]})"
