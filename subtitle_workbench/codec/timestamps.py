"""Timestamp parsing/formatting. Everything is integer milliseconds internally."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal

# HH:MM:SS[,.]fff  or  MM:SS[,.]fff  or  HH:MM:SS
_FULL_RE = re.compile(r"^(\d+):(\d{1,2}):(\d{1,2})(?:[,.](\d+))?$")
_SHORT_RE = re.compile(r"^(\d{1,2}):(\d{1,2})[,.](\d+)$")
_ASS_RE = re.compile(r"^(\d+):(\d{1,2}):(\d{1,2})(?:\.(\d+))?$")


def _fraction_to_ms(digits: str | None) -> int:
    """Convert fractional-second digits to ms, rounding half-up."""
    if not digits:
        return 0
    value = Decimal(f"0.{digits}") * 1000
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def parse_timestamp(ts: str) -> int:
    """Parse an SRT/VTT timestamp into milliseconds.

    Accepts ``HH:MM:SS,mmm``, ``HH:MM:SS.mmm``, ``MM:SS.mmm`` and ``HH:MM:SS``.
    Raises ``ValueError`` for anything else.
    """
    cleaned = ts.strip()
    m = _SHORT_RE.match(cleaned)
    if m:
        minutes, seconds, frac = m.groups()
        return int(minutes) * 60_000 + int(seconds) * 1000 + _fraction_to_ms(frac)
    m = _FULL_RE.match(cleaned)
    if m:
        hours, minutes, seconds, frac = m.groups()
        return (
            int(hours) * 3_600_000
            + int(minutes) * 60_000
            + int(seconds) * 1000
            + _fraction_to_ms(frac)
        )
    raise ValueError(f"Invalid timestamp: {ts!r}")


def parse_timestamp_ass(ts: str) -> int:
    """Parse an ASS timestamp ``H:MM:SS.cc`` into milliseconds."""
    m = _ASS_RE.match(ts.strip())
    if not m:
        raise ValueError(f"Invalid ASS timestamp: {ts!r}")
    hours, minutes, seconds, frac = m.groups()
    return (
        int(hours) * 3_600_000
        + int(minutes) * 60_000
        + int(seconds) * 1000
        + _fraction_to_ms(frac)
    )


def _split_ms(ms: int) -> tuple[int, int, int, int]:
    total = max(0, int(round(ms)))
    hours = total // 3_600_000
    minutes = (total % 3_600_000) // 60_000
    seconds = (total % 60_000) // 1000
    millis = total % 1000
    return hours, minutes, seconds, millis


def format_srt(ms: int) -> str:
    """Format ms as ``HH:MM:SS,mmm``."""
    h, m, s, ms_part = _split_ms(ms)
    return f"{h:02d}:{m:02d}:{s:02d},{ms_part:03d}"


def format_vtt(ms: int) -> str:
    """Format ms as ``HH:MM:SS.mmm``."""
    return format_srt(ms).replace(",", ".")


def format_ass(ms: int) -> str:
    """Format ms as ``H:MM:SS.cc``; centiseconds are rounded half-up."""
    total_cs = (max(0, int(round(ms))) + 5) // 10
    hours = total_cs // 360_000
    minutes = (total_cs % 360_000) // 6000
    seconds = (total_cs % 6000) // 100
    centis = total_cs % 100
    return f"{hours}:{minutes:02d}:{seconds:02d}.{centis:02d}"


def format_display(ms: int) -> str:
    """Display form used by editors (``HH:MM:SS.mmm``)."""
    return format_vtt(ms)
