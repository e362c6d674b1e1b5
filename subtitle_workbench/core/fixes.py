"""Automatic subtitle repairs.

Every fixer is a pure ``entries -> entries`` transform: it never mutates its
input, it is idempotent (running it twice changes nothing the second time),
and its output is reindexed. ``fix_all_errors`` applies them in a fixed order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Callable, Optional, Sequence

from loguru import logger

from subtitle_workbench.core.qc import DEFAULT_QC_THRESHOLDS, evaluate_entries
from subtitle_workbench.models.datatypes import (
    IssueType,
    QcThresholds,
    SubtitleEntry,
    SubtitleIssue,
    reindex_entries,
)

# Identical text starting within this window counts as a duplicate.
DUPLICATE_WINDOW_MS = 500

_HI_SPAN_RES = (re.compile(r"\[[^\[\]]*\]"), re.compile(r"\([^()]*\)"))
_MUSIC_LINE_RE = re.compile(r"^[♪♫#\s]*$|^[♪♫].*[♪♫]$")
_HTML_TAG_RE = re.compile(r"</?[a-zA-Z][^<>]*>")
_ASS_TAG_RE = re.compile(r"\{\\[^{}]*\}")
_MULTI_SPACE_RE = re.compile(r"[ \t]{2,}")


@dataclass(frozen=True)
class FixOptions:
    """Parameters for the fixers, normally derived from QC thresholds."""

    max_chars_per_line: int
    min_duration_ms: int
    max_duration_ms: int
    min_gap_ms: int
    duplicate_window_ms: int = DUPLICATE_WINDOW_MS

    @classmethod
    def from_thresholds(
        cls,
        thresholds: QcThresholds,
        duplicate_window_ms: int = DUPLICATE_WINDOW_MS,
    ) -> "FixOptions":
        return cls(
            max_chars_per_line=int(thresholds.max_cpl),
            min_duration_ms=int(thresholds.min_duration_ms),
            max_duration_ms=int(thresholds.max_duration_ms),
            min_gap_ms=int(thresholds.min_gap_ms),
            duplicate_window_ms=duplicate_window_ms,
        )


DEFAULT_FIX_OPTIONS = FixOptions.from_thresholds(DEFAULT_QC_THRESHOLDS)


# ----------------------------------------------------------------------
# Text helpers
# ----------------------------------------------------------------------


def _sub_until_stable(patterns: Sequence[re.Pattern], text: str) -> str:
    """Apply substitutions repeatedly; removing one tag can expose another."""
    while True:
        new = text
        for pattern in patterns:
            new = pattern.sub("", new)
        if new == text:
            return new
        text = new


def _normalize_for_duplicate(text: str) -> str:
    return " ".join(text.split()).casefold()


def strip_hearing_impaired(text: str) -> str:
    """Remove sound descriptions; lines without any are left untouched."""
    kept: list[str] = []
    for line in text.split("\n"):
        cleaned = _sub_until_stable(_HI_SPAN_RES, line)
        if cleaned == line and not _MUSIC_LINE_RE.match(line.strip()):
            kept.append(line)
            continue
        cleaned = _MULTI_SPACE_RE.sub(" ", cleaned).strip()
        if not cleaned or cleaned == "-" or _MUSIC_LINE_RE.match(cleaned):
            continue
        kept.append(cleaned)
    return "\n".join(kept)


def strip_formatting_tags(text: str) -> str:
    return _sub_until_stable((_HTML_TAG_RE, _ASS_TAG_RE), text).strip()


def wrap_line(line: str, max_chars: int) -> list[str]:
    """Greedy word-boundary wrap. A single over-long word keeps its own line."""
    if len(line) <= max_chars:
        return [line]
    lines: list[str] = []
    current = ""
    for word in line.split():
        candidate = f"{current} {word}" if current else word
        if len(candidate) > max_chars and current:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


# ----------------------------------------------------------------------
# Fixers
# ----------------------------------------------------------------------


def fix_empty_entries(entries: Sequence[SubtitleEntry]) -> list[SubtitleEntry]:
    """Drop entries whose text is empty or whitespace-only."""
    return reindex_entries(e for e in entries if e.text.strip())


def fix_duplicates(
    entries: Sequence[SubtitleEntry],
    window_ms: int = DUPLICATE_WINDOW_MS,
) -> list[SubtitleEntry]:
    """Drop repeated text near an earlier kept copy; the earliest copy wins."""
    last_kept: dict[str, int] = {}
    result: list[SubtitleEntry] = []
    for entry in entries:
        key = _normalize_for_duplicate(entry.text)
        previous_start = last_kept.get(key)
        if previous_start is not None and abs(previous_start - entry.start_time) < window_ms:
            continue
        last_kept[key] = entry.start_time
        result.append(entry)
    return reindex_entries(result)


def fix_overlapping_timestamps(entries: Sequence[SubtitleEntry]) -> list[SubtitleEntry]:
    """Order by start time, then clamp each end to the next entry's start.

    Start times are never moved. Entries sharing a start time are merged into
    the first of them (texts joined, latest end kept), since clamping one to
    the other's start would leave it with no duration.
    """
    ordered: list[SubtitleEntry] = []
    for entry in sorted(entries, key=lambda e: e.start_time):
        if ordered and ordered[-1].start_time == entry.start_time:
            kept = ordered[-1]
            texts = [t for t in (kept.text, entry.text) if t.strip()]
            ordered[-1] = replace(
                kept,
                end_time=max(kept.end_time, entry.end_time),
                text="\n".join(texts),
            )
            continue
        ordered.append(entry)
    for i in range(len(ordered) - 1):
        nxt_start = ordered[i + 1].start_time
        if ordered[i].end_time > nxt_start:
            ordered[i] = replace(ordered[i], end_time=nxt_start)
    return reindex_entries(ordered)


def fix_hearing_impaired(entries: Sequence[SubtitleEntry]) -> list[SubtitleEntry]:
    """Strip [sound] / (sound) spans and music lines; drop entries left empty."""
    result: list[SubtitleEntry] = []
    for entry in entries:
        text = strip_hearing_impaired(entry.text)
        if not text.strip():
            continue
        result.append(entry if text == entry.text else replace(entry, text=text))
    return reindex_entries(result)


def fix_line_breaking(
    entries: Sequence[SubtitleEntry],
    max_chars_per_line: int,
) -> list[SubtitleEntry]:
    """Rewrap lines longer than *max_chars_per_line*; shorter lines are kept."""
    result: list[SubtitleEntry] = []
    for entry in entries:
        new_lines: list[str] = []
        for line in entry.text.split("\n"):
            new_lines.extend(wrap_line(line, max_chars_per_line))
        text = "\n".join(new_lines)
        result.append(entry if text == entry.text else replace(entry, text=text))
    return reindex_entries(result)


def fix_formatting_tags(entries: Sequence[SubtitleEntry]) -> list[SubtitleEntry]:
    """Remove HTML-style and ASS override tags, leaving plain text."""
    result: list[SubtitleEntry] = []
    for entry in entries:
        text = strip_formatting_tags(entry.text)
        result.append(entry if text == entry.text else replace(entry, text=text))
    return reindex_entries(result)


def fix_short_duration(
    entries: Sequence[SubtitleEntry],
    min_duration_ms: int,
) -> list[SubtitleEntry]:
    """Extend short entries to *min_duration_ms*, never past the next start."""
    result: list[SubtitleEntry] = []
    for i, entry in enumerate(entries):
        target = entry.start_time + min_duration_ms
        if i + 1 < len(entries):
            target = min(target, entries[i + 1].start_time)
        new_end = max(entry.end_time, target)
        result.append(entry if new_end == entry.end_time else replace(entry, end_time=new_end))
    return reindex_entries(result)


def fix_long_duration(
    entries: Sequence[SubtitleEntry],
    max_duration_ms: int,
) -> list[SubtitleEntry]:
    """Shrink entries longer than *max_duration_ms*."""
    result: list[SubtitleEntry] = []
    for entry in entries:
        if entry.duration_ms > max_duration_ms:
            entry = replace(entry, end_time=entry.start_time + max_duration_ms)
        result.append(entry)
    return reindex_entries(result)


def fix_gaps(
    entries: Sequence[SubtitleEntry],
    min_gap_ms: int,
    min_duration_ms: int,
) -> list[SubtitleEntry]:
    """Restore *min_gap_ms* before the next entry by pulling this entry's end in.

    The next entry's start is left alone. The end never drops below
    ``start + min_duration_ms`` and is never extended.
    """
    result = list(entries)
    for i in range(len(result) - 1):
        current = result[i]
        gap = result[i + 1].start_time - current.end_time
        if 0 < gap < min_gap_ms:
            desired_end = result[i + 1].start_time - min_gap_ms
            floor_end = current.start_time + min_duration_ms
            new_end = min(current.end_time, max(floor_end, desired_end))
            if new_end != current.end_time:
                result[i] = replace(current, end_time=new_end)
    return reindex_entries(result)


FixerFunc = Callable[[Sequence[SubtitleEntry], FixOptions], list[SubtitleEntry]]

# Order used by fix_all_errors.
FIXERS: list[tuple[str, FixerFunc]] = [
    ("empty", lambda es, o: fix_empty_entries(es)),
    ("duplicates", lambda es, o: fix_duplicates(es, o.duplicate_window_ms)),
    ("overlaps", lambda es, o: fix_overlapping_timestamps(es)),
    ("hearing_impaired", lambda es, o: fix_hearing_impaired(es)),
    ("line_breaking", lambda es, o: fix_line_breaking(es, o.max_chars_per_line)),
    ("formatting_tags", lambda es, o: fix_formatting_tags(es)),
    ("short_duration", lambda es, o: fix_short_duration(es, o.min_duration_ms)),
    ("long_duration", lambda es, o: fix_long_duration(es, o.max_duration_ms)),
    ("gaps", lambda es, o: fix_gaps(es, o.min_gap_ms, o.min_duration_ms)),
]


def fixer_names() -> list[str]:
    return [name for name, _ in FIXERS]


def apply_fixer(
    name: str,
    entries: Sequence[SubtitleEntry],
    options: Optional[FixOptions] = None,
) -> list[SubtitleEntry]:
    """Run a single fixer by name."""
    for fixer_name, fixer in FIXERS:
        if fixer_name == name:
            return fixer(entries, options or DEFAULT_FIX_OPTIONS)
    raise KeyError(f"Unknown fixer '{name}'. Available: {', '.join(fixer_names())}")


def fix_all_errors(
    entries: Sequence[SubtitleEntry],
    options: Optional[FixOptions] = None,
) -> list[SubtitleEntry]:
    """Apply every fixer once, in order."""
    opts = options or DEFAULT_FIX_OPTIONS
    result = list(entries)
    for name, fixer in FIXERS:
        before = len(result)
        result = fixer(result, opts)
        if len(result) != before:
            logger.debug(f"Fixer '{name}' removed {before - len(result)} entr(y/ies).")
    logger.info(f"Fix all: {len(entries)} -> {len(result)} entries.")
    return result


# ----------------------------------------------------------------------
# Detection
# ----------------------------------------------------------------------


def find_empty_entries(entries: Sequence[SubtitleEntry]) -> list[SubtitleIssue]:
    return [
        SubtitleIssue(e.id, e.index, IssueType.EMPTY, f"Entry #{e.index} has empty text")
        for e in entries
        if not e.text.strip()
    ]


def find_duplicates(
    entries: Sequence[SubtitleEntry],
    window_ms: int = DUPLICATE_WINDOW_MS,
) -> list[SubtitleIssue]:
    kept = {e.id for e in fix_duplicates(entries, window_ms)}
    return [
        SubtitleIssue(e.id, e.index, IssueType.DUPLICATE, f"Entry #{e.index} repeats earlier text")
        for e in entries
        if e.id not in kept
    ]


def find_hearing_impaired(entries: Sequence[SubtitleEntry]) -> list[SubtitleIssue]:
    return [
        SubtitleIssue(
            e.id, e.index, IssueType.HEARING_IMPAIRED,
            f"Entry #{e.index} contains hearing-impaired text",
        )
        for e in entries
        if e.text.strip() and strip_hearing_impaired(e.text) != e.text
    ]


def find_formatting_tags(entries: Sequence[SubtitleEntry]) -> list[SubtitleIssue]:
    return [
        SubtitleIssue(
            e.id, e.index, IssueType.FORMATTING_TAGS,
            f"Entry #{e.index} contains formatting tags",
        )
        for e in entries
        if _HTML_TAG_RE.search(e.text) or _ASS_TAG_RE.search(e.text)
    ]


_QC_DESCRIPTIONS = {
    IssueType.CPS: "reads too fast ({m.cps} chars/s)",
    IssueType.WPM: "reads too fast ({m.wpm} words/min)",
    IssueType.CPL: "has a line of {m.max_line_chars} characters",
    IssueType.DURATION_SHORT: "is only {m.duration_ms}ms long",
    IssueType.DURATION_LONG: "lasts {m.duration_ms}ms",
    IssueType.OVERLAP: "overlaps the next entry by {overlap}ms",
    IssueType.GAP_SHORT: "has a {gap}ms gap to the next entry",
}


def detect_all_errors(
    entries: Sequence[SubtitleEntry],
    thresholds: QcThresholds = DEFAULT_QC_THRESHOLDS,
    duplicate_window_ms: int = DUPLICATE_WINDOW_MS,
) -> list[SubtitleIssue]:
    """QC issues plus text defects, flattened and sorted by (index, type)."""
    issues: list[SubtitleIssue] = []
    for entry, result in zip(entries, evaluate_entries(entries, thresholds)):
        gap = result.gap_to_next_ms
        for issue_type in result.issues:
            detail = _QC_DESCRIPTIONS[issue_type].format(
                m=result.metrics,
                gap=gap,
                overlap=-gap if gap is not None else 0,
            )
            issues.append(
                SubtitleIssue(entry.id, entry.index, issue_type, f"Entry #{entry.index} {detail}")
            )
    issues.extend(find_empty_entries(entries))
    issues.extend(find_duplicates(entries, duplicate_window_ms))
    issues.extend(find_hearing_impaired(entries))
    issues.extend(find_formatting_tags(entries))
    issues.sort(key=SubtitleIssue.sort_key)
    return issues


def group_issues(issues: Sequence[SubtitleIssue]) -> dict[IssueType, list[SubtitleIssue]]:
    """Group issues by type, in issue-type order."""
    grouped: dict[IssueType, list[SubtitleIssue]] = {}
    for issue_type in IssueType:
        matching = [i for i in issues if i.type is issue_type]
        if matching:
            grouped[issue_type] = matching
    return grouped
