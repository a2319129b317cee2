"""Data models for feed ingestion and the merged occurrence timeline."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class RawEventRecord(BaseModel):
    """Flat property mapping of one VEVENT block, before any date handling."""

    model_config = ConfigDict(frozen=True)

    uid: Optional[str] = None
    dtstart: Optional[str] = None
    dtstart_tzid: Optional[str] = None
    dtend: Optional[str] = None
    dtend_tzid: Optional[str] = None
    summary: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = Field(default=None, description="First http(s) URL property")


class Occurrence(RawEventRecord):
    """Normalized, display-ready event tagged with the feed that produced it.

    ``start``/``end`` are None when the raw values could not be resolved; such
    occurrences never survive the timeline pipeline.
    """

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    all_day: bool = False
    source_id: str

    @property
    def effective_end(self) -> Optional[datetime]:
        """End instant, or start when no end was resolved."""
        return self.end or self.start

    @field_serializer("start", "end", when_used="unless-none")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime fields to ISO format."""
        return dt.isoformat()


class FeedSource(BaseModel):
    """One configured upstream feed and its ordered retrieval candidates."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable source identifier")
    url: str = Field(..., description="Original feed locator")
    candidates: tuple[str, ...] = Field(default=(), description="Retrieval URLs in priority order")


class AttemptReason(str, Enum):
    """Outcome of a single candidate retrieval."""

    OK = "ok"
    HTTP_STATUS = "http_status"
    NON_CALENDAR = "non_calendar"
    TRANSPORT_ERROR = "transport_error"


class RetrievalAttempt(BaseModel):
    """Result of trying one candidate URL for a source."""

    model_config = ConfigDict(use_enum_values=True)

    url: str
    ok: bool
    reason: AttemptReason
    status_code: Optional[int] = None
    detail: Optional[str] = None
    text: str = Field(default="", exclude=True)


class SourceResult(BaseModel):
    """Per-source outcome of one refresh cycle.

    An empty ``text`` means every candidate failed.
    """

    source_id: str
    text: str = ""
    ok_url: str = ""
    attempts: list[RetrievalAttempt] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return bool(self.text and self.text.strip())


class FeedStatus(BaseModel):
    """Which sources loaded, which failed, and what each contributed."""

    ok: list[str] = Field(default_factory=list)
    fail: list[str] = Field(default_factory=list)
    ok_urls: dict[str, str] = Field(default_factory=dict)
    counts: dict[str, int] = Field(default_factory=dict)


class TimelineStats(BaseModel):
    """Occurrence counts after each pipeline step, for diagnostics."""

    parsed: int = 0
    valid: int = 0
    after_time_filter: int = 0
    final: int = 0


class TimelineResult(BaseModel):
    """Output of one refresh cycle handed to the presentation layer."""

    occurrences: list[Occurrence] = Field(default_factory=list)
    status: FeedStatus = Field(default_factory=FeedStatus)
    stats: TimelineStats = Field(default_factory=TimelineStats)
    error: Optional[str] = None
    generated_at: datetime = Field(default_factory=_now_utc)

    @field_serializer("generated_at")
    def serialize_generated_at(self, dt: datetime) -> str:
        return dt.isoformat()
