"""Visible-row windowing for long entry lists."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, TypeVar

ROW_HEIGHT = 36
OVERSCAN = 10

T = TypeVar("T")


@dataclass(frozen=True)
class VirtualWindow:
    """Half-open row range ``[start, end)`` to materialize, plus layout numbers."""

    start: int
    end: int
    offset_y: int
    total_height: int

    def __len__(self) -> int:
        return self.end - self.start

    def slice(self, rows: Sequence[T]) -> Sequence[T]:
        return rows[self.start:self.end]


def visible_window(
    total: int,
    scroll_offset: float,
    viewport_height: float,
    row_height: int = ROW_HEIGHT,
    overscan: int = OVERSCAN,
) -> VirtualWindow:
    """Rows covering the viewport plus *overscan* on either side.

    Computed from the scroll offset alone; the row sequence is never scanned.
    """
    scroll_offset = max(0.0, scroll_offset)
    start = max(0, math.floor(scroll_offset / row_height) - overscan)
    end = min(total, math.ceil((scroll_offset + viewport_height) / row_height) + overscan)
    end = max(start, end)
    return VirtualWindow(
        start=start,
        end=end,
        offset_y=start * row_height,
        total_height=total * row_height,
    )


def scroll_to_row(
    index: int,
    scroll_offset: float,
    viewport_height: float,
    row_height: int = ROW_HEIGHT,
) -> float:
    """Smallest scroll change that brings row *index* fully into view."""
    top = index * row_height
    bottom = top + row_height
    if top < scroll_offset:
        return float(top)
    if bottom > scroll_offset + viewport_height:
        return float(max(0, bottom - viewport_height))
    return float(scroll_offset)
