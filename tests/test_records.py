"""Tests for record splitting and timestamp parsing."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from transcript_normalizer.records import open_records, parse_timestamp, sample_records


class TestOpenRecords:
    def test_jsonl_with_blank_and_bad_lines(self):
        text = '{"a": 1}\n\n   \nnot json\n{"b": 2}\n'
        source = open_records(text)
        records = [(raw.index, raw.record) for raw in source.records]
        assert records == [(0, {"a": 1}), (1, None), (2, {"b": 2})]
        assert source.header is None

    def test_non_object_line_is_malformed(self):
        records = [raw.record for raw in open_records('"just a string"\n{"a": 1}\n').records]
        assert records == [None, {"a": 1}]

    def test_array_line_expands(self):
        records = [raw.record for raw in open_records('[{"a": 1}, {"b": 2}]\n').records]
        assert records == [{"a": 1}, {"b": 2}]

    @pytest.mark.parametrize("key", ["messages", "items", "entries", "timeline", "history"])
    def test_document_with_embedded_array(self, key):
        document = {"sessionId": "s", key: [{"n": 1}, 7, {"n": 2}]}
        source = open_records(json.dumps(document, indent=2))
        assert source.header == {"sessionId": "s"}
        assert [raw.record for raw in source.records] == [{"n": 1}, None, {"n": 2}]

    def test_pretty_printed_single_object(self):
        source = open_records(json.dumps({"type": "user", "n": 1}, indent=2))
        assert [raw.record for raw in source.records] == [{"type": "user", "n": 1}]
        assert source.header is None

    def test_lines_are_read_lazily(self):
        source = open_records('{"a": 1}\n{"b": 2}\n')
        assert next(source.records).record == {"a": 1}


class TestSampleRecords:
    def test_limit(self):
        text = "\n".join(json.dumps({"n": i}) for i in range(20))
        assert [r["n"] for r in sample_records(text, 3)] == [0, 1, 2]

    def test_malformed_lines_count_against_limit(self):
        text = "bad\nbad\n" + json.dumps({"n": 1})
        assert sample_records(text, 2) == []

    def test_header_included(self):
        text = json.dumps({"sessionId": "s", "messages": [{"n": 1}]})
        assert sample_records(text) == [{"sessionId": "s"}, {"n": 1}]

    def test_empty(self):
        assert sample_records("   ") == []


class TestParseTimestamp:
    def test_zulu(self):
        assert parse_timestamp("2025-06-01T10:00:00.000Z") == datetime(2025, 6, 1, 10, tzinfo=timezone.utc)

    def test_offset_converted_to_utc(self):
        parsed = parse_timestamp("2025-06-01T12:00:00+02:00")
        assert parsed == datetime(2025, 6, 1, 10, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_naive_is_utc(self):
        assert parse_timestamp("2025-06-01T10:00:00") == datetime(2025, 6, 1, 10, tzinfo=timezone.utc)

    def test_nanosecond_fraction(self):
        parsed = parse_timestamp("2025-06-01T10:00:00.123456789Z")
        assert parsed.microsecond == 123456

    def test_short_fraction(self):
        assert parse_timestamp("2025-06-01T10:00:00.5Z").microsecond == 500000

    def test_epoch_seconds_and_millis(self):
        expected = datetime(2025, 6, 1, 10, tzinfo=timezone.utc)
        seconds = int(expected.timestamp())
        assert parse_timestamp(seconds) == expected
        assert parse_timestamp(seconds * 1000) == expected

    @pytest.mark.parametrize("value", ["", "yesterday", "2025-13-01T00:00:00Z", True, None, {"t": 1}])
    def test_invalid(self, value):
        assert parse_timestamp(value) is None
