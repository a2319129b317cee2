"""Unit tests for eventrotator.calendar.ics_parser."""

import pytest

from eventrotator.calendar.ics_parser import coerce_text, parse_ics, split_property, unfold_lines

pytestmark = [pytest.mark.unit, pytest.mark.fast]


class TestUnfoldLines:
    def test_unfold_when_space_continuation_then_joined(self) -> None:
        lines = unfold_lines("SUMMARY:Hello\r\n  World\r\nUID:1")
        assert lines == ["SUMMARY:Hello World", "UID:1"]

    def test_unfold_when_tab_continuation_then_joined(self) -> None:
        assert unfold_lines("DESCRIPTION:abc\n\tdef") == ["DESCRIPTION:abcdef"]

    def test_unfold_normalizes_bare_carriage_returns(self) -> None:
        assert unfold_lines("A:1\rB:2\r\nC:3") == ["A:1", "B:2", "C:3"]


class TestSplitProperty:
    def test_split_uses_first_colon_only(self) -> None:
        name, params, value = split_property("DESCRIPTION:See https://example.com:8443/x")
        assert name == "DESCRIPTION"
        assert params == {}
        assert value == "See https://example.com:8443/x"

    def test_split_extracts_parameters(self) -> None:
        name, params, value = split_property("DTSTART;TZID=America/Phoenix;VALUE=DATE-TIME:20250115T090000")
        assert name == "DTSTART"
        assert params == {"TZID": "America/Phoenix", "VALUE": "DATE-TIME"}
        assert value == "20250115T090000"


class TestParseIcs:
    def test_parse_sample_document(self, sample_ics_simple: str) -> None:
        records = parse_ics(sample_ics_simple)

        assert [r.uid for r in records] == ["meet-001@test", "fair-002@test", "talk-003@test"]
        first = records[0]
        assert first.dtstart == "20250115T180000Z"
        assert first.dtend == "20250115T190000Z"
        assert first.summary == "Team Meeting"
        assert first.location == "Conference Room A"
        assert first.description == "Weekly sync\nBring notes"
        assert records[1].dtend is None

    def test_folded_document_parses_like_unfolded(self) -> None:
        unfolded = (
            "BEGIN:VCALENDAR\nBEGIN:VEVENT\nUID:fold-1\nDTSTART:20250115T180000Z\n"
            "SUMMARY:Annual Robotics Showcase and Networking Night\nEND:VEVENT\nEND:VCALENDAR"
        )
        folded = (
            "BEGIN:VCALENDAR\r\nBEGIN:VEVENT\r\nUID:fold-1\r\nDTSTART:20250115T180000Z\r\n"
            "SUMMARY:Annual Robotics Showcase\r\n  and Networking Night\r\nEND:VEVENT\r\nEND:VCALENDAR"
        )
        assert parse_ics(folded) == parse_ics(unfolded)

    def test_value_with_colons_is_captured_whole(self) -> None:
        text = (
            "BEGIN:VEVENT\nDTSTART:20250115T180000Z\n"
            "DESCRIPTION:Register at https://example.com/rsvp?at=10:30\nEND:VEVENT"
        )
        (record,) = parse_ics(text)
        assert record.description == "Register at https://example.com/rsvp?at=10:30"

    def test_parameterized_dates_capture_tzid(self) -> None:
        text = (
            "BEGIN:VEVENT\n"
            "DTSTART;TZID=America/Phoenix:20250115T090000\n"
            "DTEND;TZID=America/Phoenix:20250115T100000\n"
            "END:VEVENT"
        )
        (record,) = parse_ics(text)
        assert record.dtstart == "20250115T090000"
        assert record.dtstart_tzid == "America/Phoenix"
        assert record.dtend == "20250115T100000"
        assert record.dtend_tzid == "America/Phoenix"

    def test_value_date_parameter_is_captured(self) -> None:
        (record,) = parse_ics("BEGIN:VEVENT\nDTSTART;VALUE=DATE:20250115\nEND:VEVENT")
        assert record.dtstart == "20250115"
        assert record.dtstart_tzid is None

    def test_only_first_http_url_is_kept(self) -> None:
        text = (
            "BEGIN:VEVENT\nDTSTART:20250115\n"
            "URL:mailto:club@example.com\n"
            "URL:https://example.com/first\n"
            "URL:https://example.com/second\n"
            "END:VEVENT"
        )
        (record,) = parse_ics(text)
        assert record.url == "https://example.com/first"

    def test_unknown_properties_and_outside_lines_are_ignored(self) -> None:
        text = (
            "SUMMARY:Outside any event\n"
            "BEGIN:VEVENT\nDTSTART:20250115\nX-CUSTOM:thing\nsummary:lowercase ignored\nEND:VEVENT"
        )
        (record,) = parse_ics(text)
        assert record.summary is None

    def test_stray_end_and_unterminated_blocks_are_dropped(self) -> None:
        text = "END:VEVENT\nBEGIN:VEVENT\nUID:ok\nEND:VEVENT\nBEGIN:VEVENT\nUID:open"
        records = parse_ics(text)
        assert [r.uid for r in records] == ["ok"]

    def test_only_backslash_n_is_decoded(self) -> None:
        (record,) = parse_ics("BEGIN:VEVENT\nSUMMARY:Pizza\\, Soda\\nand Games\nEND:VEVENT")
        assert record.summary == "Pizza\\, Soda\nand Games"

    @pytest.mark.parametrize("payload", [None, "", b"", 12345, ["BEGIN:VEVENT"]])
    def test_non_string_input_never_raises(self, payload: object) -> None:
        assert parse_ics(payload) == []

    def test_bytes_input_is_decoded(self) -> None:
        records = parse_ics(b"BEGIN:VEVENT\nUID:bytes\nEND:VEVENT")
        assert records[0].uid == "bytes"


def test_coerce_text_handles_none_and_objects() -> None:
    assert coerce_text(None) == ""
    assert coerce_text(42) == "42"
    assert coerce_text("abc") == "abc"
