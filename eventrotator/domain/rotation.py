"""Rotating-display state and the periodic rotation task."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from eventrotator.calendar.models import Occurrence, TimelineResult

logger = logging.getLogger(__name__)


@dataclass
class RotationState:
    """State owned by the presentation layer: what is shown and whether it advances."""

    occurrences: list[Occurrence] = field(default_factory=list)
    index: int = 0
    playing: bool = True
    error: Optional[str] = None

    @property
    def total(self) -> int:
        return len(self.occurrences)

    @property
    def current(self) -> Optional[Occurrence]:
        if not self.occurrences:
            return None
        return self.occurrences[self.index]

    def apply(self, result: TimelineResult) -> None:
        """Replace the displayed timeline and restart from the first card."""
        self.occurrences = list(result.occurrences)
        self.error = result.error
        self.index = 0

    def advance(self) -> bool:
        """Move to the next card, wrapping around.

        Returns:
            True if the index changed (only while playing with >1 card)
        """
        if not self.playing or self.total <= 1:
            return False
        self.index = (self.index + 1) % self.total
        return True

    def toggle(self) -> bool:
        """Flip play/pause and return the new playing flag."""
        self.playing = not self.playing
        return self.playing

    def select(self, index: int) -> None:
        """Jump to a specific card.

        Raises:
            IndexError: If index is outside the current timeline
        """
        if not 0 <= index < self.total:
            raise IndexError(f"Rotation index {index} out of range (total={self.total})")
        self.index = index


class Rotator:
    """Advances a RotationState every ``interval`` seconds until stopped."""

    def __init__(self, state: RotationState, interval: float = 6.0) -> None:
        self.state = state
        self.interval = interval
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None

    async def run(self) -> None:
        """Rotation loop; returns once ``stop()`` is called."""
        logger.debug("Rotation loop starting with interval %.1f seconds", self.interval)
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                self.state.advance()

    def start(self) -> asyncio.Task[None]:
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
