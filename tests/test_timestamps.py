"""Tests for timestamp parsing and formatting."""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from subtitle_workbench.codec.timestamps import (
    format_ass,
    format_srt,
    format_vtt,
    parse_timestamp,
    parse_timestamp_ass,
)


def test_parse_full_srt_and_vtt_forms():
    """Comma and dot separators both parse."""
    assert parse_timestamp("00:01:02,500") == 62500
    assert parse_timestamp("00:01:02.500") == 62500
    assert parse_timestamp("01:02:03,004") == 3723004


def test_parse_short_vtt_form():
    """MM:SS.mmm without hours is accepted."""
    assert parse_timestamp("01:02.500") == 62500
    assert parse_timestamp("00:01.000") == 1000


def test_parse_without_fraction():
    assert parse_timestamp("00:00:07") == 7000


def test_fraction_digits_are_scaled():
    """Fewer than three fraction digits are tenths/hundredths, not ms."""
    assert parse_timestamp("00:00:01,5") == 1500
    assert parse_timestamp("00:00:01,05") == 1050
    # More than three digits round half-up
    assert parse_timestamp("00:00:01,0005") == 1001


@pytest.mark.parametrize("bad", ["", "abc", "1:2", "00:00:01,xx", "00-00-01,000"])
def test_parse_invalid_raises(bad):
    with pytest.raises(ValueError):
        parse_timestamp(bad)


def test_format_srt_and_vtt():
    assert format_srt(3723004) == "01:02:03,004"
    assert format_vtt(3723004) == "01:02:03.004"
    assert format_srt(0) == "00:00:00,000"


def test_format_srt_clamps_negative():
    assert format_srt(-50) == "00:00:00,000"


def test_format_ass_rounds_to_centiseconds():
    """ASS has centisecond precision; half a centisecond rounds up."""
    assert format_ass(1234) == "0:00:01.23"
    assert format_ass(1235) == "0:00:01.24"
    assert format_ass(59995) == "0:01:00.00"
    assert format_ass(3723040) == "1:02:03.04"


def test_parse_ass_timestamp():
    assert parse_timestamp_ass("0:00:01.23") == 1230
    assert parse_timestamp_ass("1:02:03.04") == 3723040
    with pytest.raises(ValueError):
        parse_timestamp_ass("00:00:01,230")
