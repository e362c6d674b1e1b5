"""Time/pixel mapping and the drag state machine for timeline entry blocks."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional

from loguru import logger

from subtitle_workbench.core.document import SubtitleDocument
from subtitle_workbench.models.datatypes import SubtitleEntry

PX_PER_SECOND_BASE = 70
MIN_ZOOM = 1.0
MAX_ZOOM = 6.0
DEFAULT_ZOOM = 1.5
MIN_ENTRY_DURATION_MS = 120
HANDLE_PX = 6
MIN_SPAN_PX = 8


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def format_tick(ms: int) -> str:
    """``M:SS`` label for a tick mark."""
    total_sec = max(0, int(ms)) // 1000
    return f"{total_sec // 60}:{total_sec % 60:02d}"


@dataclass(frozen=True)
class TimelineScale:
    """Maps media time to horizontal pixels at a given zoom.

    The drawn width never drops below the viewport, so on short media the
    effective ``ms_per_px`` is coarser than the nominal zoom implies.
    """

    duration_ms: int
    viewport_width: int
    zoom: float = DEFAULT_ZOOM
    px_per_second_base: float = PX_PER_SECOND_BASE

    def __post_init__(self) -> None:
        object.__setattr__(self, "zoom", _clamp(float(self.zoom), MIN_ZOOM, MAX_ZOOM))
        object.__setattr__(self, "duration_ms", max(0, int(self.duration_ms)))
        object.__setattr__(self, "viewport_width", max(1, int(self.viewport_width)))

    @property
    def pixels_per_ms(self) -> float:
        return self.px_per_second_base * self.zoom / 1000

    @property
    def width(self) -> int:
        if self.duration_ms <= 0:
            return self.viewport_width
        return max(self.viewport_width, round(self.duration_ms * self.pixels_per_ms))

    @property
    def ms_per_px(self) -> float:
        if self.duration_ms <= 0:
            return 0.0
        return self.duration_ms / self.width

    def time_to_px(self, ms: float) -> float:
        if self.duration_ms <= 0:
            return 0.0
        return ms / self.duration_ms * self.width

    def px_to_time(self, x: float) -> int:
        if self.duration_ms <= 0:
            return 0
        return int(_clamp(round(x * self.ms_per_px), 0, self.duration_ms))

    def tick_interval_ms(self) -> int:
        if self.duration_ms > 20 * 60_000:
            return 30_000
        if self.duration_ms > 10 * 60_000:
            return 15_000
        return 10_000

    def tick_marks(self) -> list[tuple[int, float, str]]:
        """``(ms, x, label)`` for every grid line from 0 to the duration."""
        if self.duration_ms <= 0:
            return []
        step = self.tick_interval_ms()
        return [
            (ms, self.time_to_px(ms), format_tick(ms))
            for ms in range(0, self.duration_ms + 1, step)
        ]

    def with_zoom(self, zoom: float) -> "TimelineScale":
        return replace(self, zoom=zoom)


class DragMode(Enum):
    MOVE = "move"
    RESIZE_START = "resize_start"
    RESIZE_END = "resize_end"


def pick_drag_mode(offset_px: float, span_width_px: float, handle_px: float = HANDLE_PX) -> DragMode:
    """Which part of an entry block the pointer went down on."""
    if offset_px <= handle_px:
        return DragMode.RESIZE_START
    if offset_px >= span_width_px - handle_px:
        return DragMode.RESIZE_END
    return DragMode.MOVE


@dataclass(frozen=True)
class DragState:
    """A live drag. Bounds apply to the edge being moved (the start for MOVE)."""

    entry_id: str
    mode: DragMode
    origin_x: float
    initial_start: int
    initial_end: int
    preview_start: int
    preview_end: int
    lower_bound: int
    upper_bound: int

    @property
    def changed(self) -> bool:
        return (self.preview_start, self.preview_end) != (self.initial_start, self.initial_end)


class TimelineInteraction:
    """Drag/seek controller bound to one document and one scale.

    Pointer moves only update the preview held in ``drag``; the document is
    touched once, on release, and only when the preview moved.
    """

    def __init__(
        self,
        document: SubtitleDocument,
        scale: TimelineScale,
        on_seek: Optional[Callable[[int], None]] = None,
        min_duration_ms: int = MIN_ENTRY_DURATION_MS,
        handle_px: float = HANDLE_PX,
    ) -> None:
        self.document = document
        self.scale = scale
        self.on_seek = on_seek
        self.min_duration_ms = min_duration_ms
        self.handle_px = handle_px
        self.drag: Optional[DragState] = None

    @property
    def is_dragging(self) -> bool:
        return self.drag is not None

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def display_range(self, entry: SubtitleEntry) -> tuple[int, int]:
        """Entry range to draw: the drag preview if *entry* is being dragged."""
        if self.drag is not None and self.drag.entry_id == entry.id:
            return self.drag.preview_start, self.drag.preview_end
        return entry.start_time, entry.end_time

    def entry_span(self, entry: SubtitleEntry) -> tuple[float, float]:
        """``(left_px, width_px)`` of the entry block."""
        start, end = self.display_range(entry)
        left = self.scale.time_to_px(start)
        width = max(MIN_SPAN_PX, self.scale.time_to_px(end) - left)
        return left, width

    # ------------------------------------------------------------------
    # Drag lifecycle
    # ------------------------------------------------------------------

    def begin_drag(
        self,
        entry_id: str,
        pointer_x: float,
        mode: Optional[DragMode] = None,
    ) -> Optional[DragState]:
        if self.drag is not None:
            logger.debug(f"Drag already in progress on {self.drag.entry_id}; ignoring.")
            return None
        if not self.document.is_open or self.scale.duration_ms <= 0:
            return None
        pos = self.document.position_of(entry_id)
        if pos < 0:
            return None

        entries = self.document.entries
        entry = entries[pos]
        if mode is None:
            left, width = self.entry_span(entry)
            mode = pick_drag_mode(pointer_x - left, width, self.handle_px)

        prev_entry = entries[pos - 1] if pos > 0 else None
        next_entry = entries[pos + 1] if pos + 1 < len(entries) else None
        lower, upper = self._bounds(entry, mode, prev_entry, next_entry)

        self.drag = DragState(
            entry_id=entry.id,
            mode=mode,
            origin_x=pointer_x,
            initial_start=entry.start_time,
            initial_end=entry.end_time,
            preview_start=entry.start_time,
            preview_end=entry.end_time,
            lower_bound=lower,
            upper_bound=upper,
        )
        return self.drag

    def _bounds(
        self,
        entry: SubtitleEntry,
        mode: DragMode,
        prev_entry: Optional[SubtitleEntry],
        next_entry: Optional[SubtitleEntry],
    ) -> tuple[int, int]:
        """Allowed range for the edge being dragged (the start edge for MOVE).

        A resized edge may reach the neighbour's edge exactly; no gap is
        reserved between entries. MIN_ENTRY_DURATION_MS is kept from the
        entry's own opposite edge. A neighbour that already overlaps the entry
        only stops the edge from moving further into it.
        """
        duration = self.scale.duration_ms
        if mode is DragMode.MOVE:
            return 0, duration - entry.duration_ms
        if mode is DragMode.RESIZE_START:
            lower = 0
            if prev_entry is not None:
                lower = max(0, min(prev_entry.end_time, entry.start_time))
            return lower, entry.end_time - self.min_duration_ms
        upper = duration
        if next_entry is not None:
            upper = min(upper, max(next_entry.start_time, entry.end_time))
        return entry.start_time + self.min_duration_ms, upper

    def update_drag(self, pointer_x: float) -> Optional[DragState]:
        drag = self.drag
        if drag is None:
            return None
        if drag.lower_bound > drag.upper_bound:
            return drag  # no room to move

        delta_ms = round((pointer_x - drag.origin_x) * self.scale.ms_per_px)
        start, end = drag.initial_start, drag.initial_end
        if drag.mode is DragMode.MOVE:
            start = int(_clamp(drag.initial_start + delta_ms, drag.lower_bound, drag.upper_bound))
            end = start + (drag.initial_end - drag.initial_start)
        elif drag.mode is DragMode.RESIZE_START:
            start = int(_clamp(drag.initial_start + delta_ms, drag.lower_bound, drag.upper_bound))
        else:
            end = int(_clamp(drag.initial_end + delta_ms, drag.lower_bound, drag.upper_bound))

        self.drag = replace(drag, preview_start=start, preview_end=end)
        return self.drag

    def end_drag(self) -> bool:
        """Release: commit the preview as one edit if it differs."""
        drag, self.drag = self.drag, None
        if drag is None or not drag.changed or not self.document.is_open:
            return False
        return self.document.update_entry(
            drag.entry_id,
            start_time=drag.preview_start,
            end_time=drag.preview_end,
        )

    def cancel_drag(self) -> None:
        self.drag = None

    # ------------------------------------------------------------------
    # Seeking
    # ------------------------------------------------------------------

    def seek(self, click_x: float) -> int:
        """Translate a click into a media position and hand it to the player."""
        ms = self.scale.px_to_time(click_x)
        if self.on_seek is not None:
            self.on_seek(ms)
        return ms
