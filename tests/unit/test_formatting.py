"""Unit tests for eventrotator.domain.formatting."""

from datetime import datetime, timezone

import pytest

from eventrotator.domain.formatting import format_range, plain_description

pytestmark = [pytest.mark.unit, pytest.mark.fast]


class TestFormatRange:
    def test_same_day_range(self) -> None:
        start = datetime(2025, 1, 16, 1, 0, tzinfo=timezone.utc)
        end = datetime(2025, 1, 16, 2, 0, tzinfo=timezone.utc)

        # 01:00 UTC on the 16th is 6 PM on the 15th in Phoenix
        assert format_range(start, end) == "Wed, Jan 15 · 6:00 PM – 7:00 PM"

    def test_all_day(self) -> None:
        start = datetime(2025, 1, 15, 7, 0, tzinfo=timezone.utc)
        assert format_range(start, None, all_day=True) == "Wed, Jan 15 · All day"

    def test_multi_day_range(self) -> None:
        start = datetime(2025, 1, 16, 1, 0, tzinfo=timezone.utc)
        end = datetime(2025, 1, 16, 16, 0, tzinfo=timezone.utc)

        assert format_range(start, end) == "Wed, Jan 15 6:00 PM – Thu, Jan 16 9:00 AM"

    def test_noon_and_midnight_labels(self) -> None:
        start = datetime(2025, 1, 15, 19, 0, tzinfo=timezone.utc)
        end = datetime(2025, 1, 15, 19, 30, tzinfo=timezone.utc)
        assert format_range(start, end) == "Wed, Jan 15 · 12:00 PM – 12:30 PM"

        start = datetime(2025, 1, 15, 7, 5, tzinfo=timezone.utc)
        assert format_range(start, None) == "Wed, Jan 15 · 12:05 AM – 12:05 AM"

    def test_other_display_zone(self) -> None:
        start = datetime(2025, 1, 15, 18, 0, tzinfo=timezone.utc)
        end = datetime(2025, 1, 15, 19, 0, tzinfo=timezone.utc)
        assert format_range(start, end, "UTC") == "Wed, Jan 15 · 6:00 PM – 7:00 PM"

    def test_missing_start(self) -> None:
        assert format_range(None, None) == ""


def test_plain_description_strips_tags() -> None:
    assert plain_description("<p>Free <b>pizza</b></p>") == "Free pizza"
    assert plain_description(None) == ""
