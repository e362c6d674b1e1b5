"""Data types shared by the codec, QC, fix, document and timeline layers."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

import numpy as np

DEFAULT_ENTRY_DURATION_MS = 2000


class UnknownFormatError(ValueError):
    """Raised for a subtitle format tag or extension outside the supported set."""


class AudioDecodeError(RuntimeError):
    """Raised when a media file's audio track cannot be decoded."""


class DocumentClosedError(RuntimeError):
    """Raised when a mutation is attempted while no document is open."""


class SubtitleFormat(str, Enum):
    """Closed set of subtitle formats understood by the codec."""

    SRT = "srt"
    VTT = "vtt"
    ASS = "ass"

    @classmethod
    def parse(cls, value: Union[str, "SubtitleFormat"]) -> "SubtitleFormat":
        """Return the format for *value*; unknown tags are a hard error."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().lstrip(".")
        if key == "ssa":
            key = "ass"
        for fmt in cls:
            if fmt.value == key:
                return fmt
        raise UnknownFormatError(
            f"Unknown subtitle format '{value}'. "
            f"Supported: {', '.join(f.value for f in cls)}"
        )


@dataclass(frozen=True)
class SubtitleEntry:
    """One timed caption unit. Times are integer milliseconds."""

    id: str
    index: int
    start_time: int
    end_time: int
    text: str

    @property
    def duration_ms(self) -> int:
        return self.end_time - self.start_time

    def with_changes(self, **changes: Any) -> "SubtitleEntry":
        return replace(self, **changes)


@dataclass
class ParsedSubtitles:
    """Codec output: ordered entries plus the format and any preserved header."""

    entries: list[SubtitleEntry]
    format: SubtitleFormat
    header: Optional[str] = None


# ----------------------------------------------------------------------
# Quality control
# ----------------------------------------------------------------------


_THRESHOLD_KEYS = {
    "max_cps": "maxCps",
    "max_wpm": "maxWpm",
    "max_cpl": "maxCpl",
    "min_duration_ms": "minDurationMs",
    "max_duration_ms": "maxDurationMs",
    "min_gap_ms": "minGapMs",
}


@dataclass(frozen=True)
class QcThresholds:
    """Readability/timing limits used by the QC evaluator and the fixers."""

    max_cps: float
    max_wpm: float
    max_cpl: int
    min_duration_ms: int
    max_duration_ms: int
    min_gap_ms: int

    def __post_init__(self) -> None:
        for name in _THRESHOLD_KEYS:
            value = getattr(self, name)
            if value is None or value <= 0:
                raise ValueError(f"QC threshold '{name}' must be positive, got {value!r}")
        if self.min_duration_ms > self.max_duration_ms:
            raise ValueError("min_duration_ms must not exceed max_duration_ms")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "QcThresholds":
        """Build thresholds from a flat mapping with snake_case or camelCase keys."""
        values: dict[str, Any] = {}
        for name, camel in _THRESHOLD_KEYS.items():
            if name in data:
                values[name] = data[name]
            elif camel in data:
                values[name] = data[camel]
            else:
                raise ValueError(f"Missing QC threshold '{name}'")
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in _THRESHOLD_KEYS}


class IssueType(str, Enum):
    """Issue codes, in display order."""

    CPS = "cps"
    WPM = "wpm"
    CPL = "cpl"
    DURATION_SHORT = "duration_short"
    DURATION_LONG = "duration_long"
    OVERLAP = "overlap"
    GAP_SHORT = "gap_short"
    EMPTY = "empty"
    DUPLICATE = "duplicate"
    HEARING_IMPAIRED = "hearing_impaired"
    FORMATTING_TAGS = "formatting_tags"

    @property
    def order(self) -> int:
        return _ISSUE_ORDER[self]


_ISSUE_ORDER = {issue: pos for pos, issue in enumerate(IssueType)}


@dataclass(frozen=True)
class QcMetrics:
    char_count: int
    word_count: int
    max_line_chars: int
    duration_ms: int
    cps: float
    wpm: float


@dataclass(frozen=True)
class QcResult:
    """Evaluation of one entry against its successor."""

    metrics: QcMetrics
    issues: tuple[IssueType, ...]
    gap_to_next_ms: Optional[int]

    def has(self, issue: IssueType) -> bool:
        return issue in self.issues


@dataclass(frozen=True)
class SubtitleIssue:
    """A single flagged problem, flattened for UI grouping."""

    entry_id: str
    index: int
    type: IssueType
    description: str = ""

    def sort_key(self) -> tuple[int, int]:
        return (self.index, self.type.order)


# ----------------------------------------------------------------------
# History
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class HistoryState:
    entries: tuple[SubtitleEntry, ...]
    label: str


# ----------------------------------------------------------------------
# Audio
# ----------------------------------------------------------------------


@dataclass
class DecodedAudio:
    """Mono float32 samples and their rate."""

    samples: np.ndarray
    sample_rate: int

    @property
    def duration_ms(self) -> int:
        if self.sample_rate <= 0:
            return 0
        return int(round(len(self.samples) * 1000 / self.sample_rate))


@dataclass
class AudioAnalysis:
    """Peak envelope and spectrogram computed once per media load."""

    media_path: str
    sample_rate: int
    duration_ms: int
    peaks: np.ndarray
    spectrogram: np.ndarray = field(default_factory=lambda: np.zeros((0, 0), dtype=np.float32))


# ----------------------------------------------------------------------
# Entry helpers
# ----------------------------------------------------------------------


def generate_entry_id() -> str:
    """Return a fresh opaque entry identifier."""
    return f"sub_{uuid.uuid4().hex[:12]}"


def create_empty_entry(
    start_time: int,
    end_time: Optional[int] = None,
    index: int = 1,
) -> SubtitleEntry:
    """Blank entry; defaults to a two-second span."""
    return SubtitleEntry(
        id=generate_entry_id(),
        index=index,
        start_time=start_time,
        end_time=end_time if end_time is not None else start_time + DEFAULT_ENTRY_DURATION_MS,
        text="",
    )


def reindex_entries(entries: Iterable[SubtitleEntry]) -> list[SubtitleEntry]:
    """Return entries with sequential 1-based indices."""
    result: list[SubtitleEntry] = []
    for pos, entry in enumerate(entries, start=1):
        result.append(entry if entry.index == pos else replace(entry, index=pos))
    return result


def sort_entries(entries: Sequence[SubtitleEntry]) -> list[SubtitleEntry]:
    """Stable sort by start time, then reindex."""
    return reindex_entries(sorted(entries, key=lambda e: e.start_time))
