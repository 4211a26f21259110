"""Tests for firmware value parsers."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from polycom_rest.parsers import (
    coerce_bool,
    coerce_flag,
    coerce_number,
    escape_json_string,
    format_uptime,
    parse_firmware_version,
    parse_log_duration,
    parse_state_duration,
    parse_timestamp,
    parse_uptime,
    parse_uptime_object,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("3 days 4 hours 12 minutes", timedelta(days=3, hours=4, minutes=12)),
        ("1 day(s) 2 hour(s) 3 minute(s)", timedelta(days=1, hours=2, minutes=3)),
        ("1 day, 1 hour, 1 minute, 1 second", timedelta(days=1, hours=1, minutes=1, seconds=1)),
        ("5 hrs 2 mins 7 secs", timedelta(hours=5, minutes=2, seconds=7)),
        ("2 days 03:04:05", timedelta(days=2, hours=3, minutes=4, seconds=5)),
        ("2 days 3:04", timedelta(days=2, hours=3, minutes=4)),
        ("0 days 0 hours 0 minutes", timedelta(0)),
    ],
)
def test_parse_uptime(text, expected):
    """Test vendor uptime strings."""
    assert parse_uptime(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "soon", "3 fortnights", "up 3 days"])
def test_parse_uptime_invalid(text):
    """Test unparseable uptime text is rejected."""
    with pytest.raises(ValueError):
        parse_uptime(text)


@pytest.mark.parametrize(
    "value",
    [
        timedelta(0),
        timedelta(seconds=1),
        timedelta(days=1),
        timedelta(days=12, hours=23, minutes=59, seconds=59),
        timedelta(hours=1, seconds=30),
    ],
)
def test_uptime_round_trip(value):
    """Test formatting then parsing yields the same duration."""
    assert parse_uptime(format_uptime(value)) == value


def test_format_uptime_pluralization():
    """Test singular and plural units."""
    assert format_uptime(timedelta(days=1, seconds=2)) == "1 day 0 hours 0 minutes 2 seconds"


def test_parse_uptime_object():
    """Test the structured uptime object of newer firmware."""
    value = parse_uptime_object({"Days": "2", "Hours": 1, "Minutes": "5", "Seconds": 0})
    assert value == timedelta(days=2, hours=1, minutes=5)


def test_parse_uptime_object_invalid():
    """Test non-numeric members are rejected."""
    with pytest.raises(ValueError):
        parse_uptime_object({"Days": "many"})


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Call Duration: 0:01:05", timedelta(minutes=1, seconds=5)),
        ("call duration: 02:05", timedelta(minutes=2, seconds=5)),
        ("Call Duration: 42", timedelta(seconds=42)),
        ("Call Duration: 1 hour 2 minutes", timedelta(hours=1, minutes=2)),
        ("Call Duration:", None),
        ("Idle", None),
        (None, None),
    ],
)
def test_parse_state_duration(text, expected):
    """Test call timer extraction from state text."""
    assert parse_state_duration(text) == expected


def test_parse_state_duration_custom_prefix():
    """Test a caller-supplied prefix."""
    assert parse_state_duration("Elapsed 10", prefix="Elapsed") == timedelta(seconds=10)


def test_escape_json_string():
    """Test quotes, backslashes and control characters are escaped."""
    assert escape_json_string('a"b\\c\n\t\x01') == 'a\\"b\\\\c\\n\\t\\u0001'
    assert escape_json_string("") == ""
    assert escape_json_string("plain value") == "plain value"


def test_escape_json_string_rejects_non_string():
    """Test non-string input."""
    with pytest.raises(TypeError):
        escape_json_string(5)


def test_escape_json_string_rejects_lone_surrogate():
    """Test strings that cannot be encoded."""
    with pytest.raises(ValueError):
        escape_json_string("bad\ud800")


@pytest.mark.parametrize("value", [None, "", "0", "--"])
def test_parse_timestamp_trivial(value):
    """Test trivial start times map to None."""
    assert parse_timestamp(value) is None


def test_parse_timestamp_formats():
    """Test supported timestamp layouts."""
    expected = datetime(2019, 9, 30, 10, 22, 11)
    assert parse_timestamp("2019-09-30T10:22:11") == expected
    assert parse_timestamp("2019-09-30 10:22:11") == expected
    assert parse_timestamp("not a timestamp") is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("5.5.2.1234A 20-Mar-17 10:00", "5.5.2.1234A"),
        ("3.0.4.0061 (12345)", "3.0.4.0061"),
        ("UCS 5.9.0.9373", "5.9.0.9373"),
        ("n/a", None),
        (None, None),
    ],
)
def test_parse_firmware_version(value, expected):
    """Test firmware version extraction."""
    assert parse_firmware_version(value) == expected


def test_parse_log_duration():
    """Test call log duration formats."""
    assert parse_log_duration("PT1M5S") == timedelta(minutes=1, seconds=5)
    assert parse_log_duration("PT2H") == timedelta(hours=2)
    assert parse_log_duration("90") == timedelta(seconds=90)
    assert parse_log_duration(30) == timedelta(seconds=30)
    assert parse_log_duration("") is None
    assert parse_log_duration("P") is None
    assert parse_log_duration("later") is None


def test_coerce_bool():
    """Test vendor boolean spellings."""
    assert coerce_bool("Registered") is True
    assert coerce_bool("enabled") is True
    assert coerce_bool("Not Registered") is False
    assert coerce_bool("off") is False
    assert coerce_bool(0) is False
    assert coerce_bool("maybe") is None
    assert coerce_bool("maybe", default=False) is False


def test_coerce_flag_and_number():
    """Test Muted/Ringing flags and numeric strings."""
    assert coerce_flag("1") == 1
    assert coerce_flag("false") == 0
    assert coerce_flag(None) is None
    assert coerce_number("42") == 42
    assert coerce_number("-1.5") == -1.5
    assert coerce_number("10.0.0.1") == "10.0.0.1"
