"""Bulk retiming: constant shift, speed scaling and two-point linear sync."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from subtitle_workbench.models.datatypes import SubtitleEntry


def _retimed(entry: SubtitleEntry, start: float, end: float) -> SubtitleEntry:
    new_start = max(0, round(start))
    new_end = max(new_start + 1, round(end))
    return entry.with_changes(start_time=new_start, end_time=new_end)


def shift_entries(
    entries: Sequence[SubtitleEntry],
    offset_ms: int,
    ids: Optional[Iterable[str]] = None,
) -> list[SubtitleEntry]:
    """Move entries (all, or only *ids*) by *offset_ms*."""
    targets = set(ids) if ids is not None else None
    return [
        _retimed(e, e.start_time + offset_ms, e.end_time + offset_ms)
        if targets is None or e.id in targets
        else e
        for e in entries
    ]


def scale_entries(entries: Sequence[SubtitleEntry], ratio: float) -> list[SubtitleEntry]:
    """Multiply every timestamp by *ratio* (frame-rate conversion)."""
    if ratio <= 0:
        raise ValueError(f"Scale ratio must be positive, got {ratio}")
    return [_retimed(e, e.start_time * ratio, e.end_time * ratio) for e in entries]


def two_point_sync(
    entries: Sequence[SubtitleEntry],
    point1: tuple[int, int],
    point2: tuple[int, int],
) -> list[SubtitleEntry]:
    """Linear remap so that ``point1[0] -> point1[1]`` and ``point2[0] -> point2[1]``."""
    (orig1, want1), (orig2, want2) = point1, point2
    if orig1 == orig2:
        raise ValueError("Sync points must have different original times")
    a = (want2 - want1) / (orig2 - orig1)
    b = want1 - a * orig1
    if a <= 0:
        raise ValueError("Sync points would reverse the timeline")
    return [_retimed(e, a * e.start_time + b, a * e.end_time + b) for e in entries]
