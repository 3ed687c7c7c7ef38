"""Test timestamp parsing, encoding and display formatting."""

import pytest

from timestamps import (
    TimestampEncoding, encode_timestamp, format_timestamp, from_structured,
    parse_timestamp, to_structured,
)


class TestParseTimestamp:
    """Every shape the adapter or store may hand us."""

    @pytest.mark.parametrize("raw,expected", [
        (1700000000123, 1700000000123),
        (1700000000123.7, 1700000000123),
        ("1700000000123", 1700000000123),
        ("1700000000", 1700000000000),
        ("2023-11-14T22:13:20.123Z", 1700000000123),
        ("2023-11-14T22:13:20", 1700000000000),
        ({"integerValue": "1700000000123"}, 1700000000123),
        ({"doubleValue": 1700000000123.0}, 1700000000123),
        ({"seconds": 1700000000, "nanoseconds": 123000000}, 1700000000123),
    ])
    def test_accepted_shapes(self, raw, expected):
        assert parse_timestamp(raw) == expected

    @pytest.mark.parametrize("raw", [None, True, "yesterday", float("nan"), {"foo": 1}, [1, 2]])
    def test_unparseable_is_none(self, raw):
        assert parse_timestamp(raw) is None


class TestEncodings:
    """Structured text is fixed width and sorts like the integers."""

    def test_structured_format(self):
        assert to_structured(1700000000123) == "2023-11-14T22:13:20.123Z"
        assert to_structured(350) == "1970-01-01T00:00:00.350Z"

    def test_structured_decodes_back(self):
        assert from_structured(to_structured(1700000000005)) == 1700000000005

    def test_structured_order_matches_epoch_order(self):
        values = [100, 350, 999, 1000, 60_000, 1700000000123]
        encoded = [to_structured(v) for v in values]
        assert encoded == sorted(encoded)

    def test_encode_by_encoding(self):
        assert encode_timestamp(500, TimestampEncoding.EPOCH_MS) == 500
        assert encode_timestamp(500, TimestampEncoding.STRUCTURED) == "1970-01-01T00:00:00.500Z"

    def test_alternate(self):
        assert TimestampEncoding.EPOCH_MS.alternate() == TimestampEncoding.STRUCTURED
        assert TimestampEncoding.STRUCTURED.alternate() == TimestampEncoding.EPOCH_MS


class TestFormatTimestamp:
    """Display time in the configured zone."""

    def test_jakarta_is_utc_plus_seven(self):
        assert format_timestamp(1700000000000, "Asia/Jakarta") == "15 Nov 2023 05:13:20"

    def test_missing_timestamp(self):
        assert format_timestamp(None) == "—"

    def test_out_of_range_timestamp(self):
        assert format_timestamp(10 ** 20) == "—"

    def test_unknown_zone_falls_back_to_utc(self, caplog):
        assert format_timestamp(1700000000000, "Mars/Olympus") == "14 Nov 2023 22:13:20"
        assert "Unknown display timezone" in caplog.text
