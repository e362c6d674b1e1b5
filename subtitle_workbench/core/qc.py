"""Per-entry readability and timing checks (CPS, WPM, CPL, duration, gaps)."""

from __future__ import annotations

import math
import re
from typing import Optional, Sequence

from subtitle_workbench.models.datatypes import (
    IssueType,
    QcMetrics,
    QcResult,
    QcThresholds,
    SubtitleEntry,
)

# The one documented default set. Callers normally pass thresholds from config.
DEFAULT_QC_THRESHOLDS = QcThresholds(
    max_cps=21,
    max_wpm=190,
    max_cpl=42,
    min_duration_ms=700,
    max_duration_ms=7000,
    min_gap_ms=80,
)

_HTML_TAG_RE = re.compile(r"<[^>]+>")
_ASS_TAG_RE = re.compile(r"\{\\[^}]*\}")
_ANNOTATION_RE = re.compile(r"\[[^\]]+\]")
_WS_RE = re.compile(r"\s+")


def strip_markup(text: str) -> str:
    """Remove tags and bracketed annotations that are not read on screen."""
    text = _HTML_TAG_RE.sub("", text)
    text = _ASS_TAG_RE.sub("", text)
    return _ANNOTATION_RE.sub("", text)


def _round1(value: float) -> float:
    return round(value, 1) if math.isfinite(value) else 0.0


def get_metrics(entry: SubtitleEntry) -> QcMetrics:
    """Compute reading-speed metrics for one entry."""
    clean = strip_markup(entry.text)
    lines = clean.split("\n")
    compact = _WS_RE.sub(" ", " ".join(lines)).strip()
    char_count = len(_WS_RE.sub("", compact))
    word_count = len(compact.split()) if compact else 0
    max_line_chars = max((len(_WS_RE.sub("", line)) for line in lines), default=0)

    duration_ms = max(1, entry.end_time - entry.start_time)
    duration_sec = duration_ms / 1000
    return QcMetrics(
        char_count=char_count,
        word_count=word_count,
        max_line_chars=max_line_chars,
        duration_ms=duration_ms,
        cps=_round1(char_count / duration_sec),
        wpm=_round1(word_count / (duration_sec / 60)),
    )


def evaluate(
    entry: SubtitleEntry,
    next_entry: Optional[SubtitleEntry],
    thresholds: QcThresholds,
) -> QcResult:
    """Score *entry* against *thresholds*, looking only at its successor."""
    metrics = get_metrics(entry)
    issues: list[IssueType] = []

    if metrics.cps > thresholds.max_cps:
        issues.append(IssueType.CPS)
    if metrics.wpm > thresholds.max_wpm:
        issues.append(IssueType.WPM)
    if metrics.max_line_chars > thresholds.max_cpl:
        issues.append(IssueType.CPL)
    if metrics.duration_ms < thresholds.min_duration_ms:
        issues.append(IssueType.DURATION_SHORT)
    if metrics.duration_ms > thresholds.max_duration_ms:
        issues.append(IssueType.DURATION_LONG)

    gap: Optional[int] = None
    if next_entry is not None:
        gap = next_entry.start_time - entry.end_time
        if gap < 0:
            issues.append(IssueType.OVERLAP)
        elif 0 < gap < thresholds.min_gap_ms:
            issues.append(IssueType.GAP_SHORT)

    return QcResult(metrics=metrics, issues=tuple(issues), gap_to_next_ms=gap)


def evaluate_entries(
    entries: Sequence[SubtitleEntry],
    thresholds: QcThresholds,
) -> list[QcResult]:
    """Evaluate a whole sequence in one forward pass."""
    results: list[QcResult] = []
    for i, entry in enumerate(entries):
        nxt = entries[i + 1] if i + 1 < len(entries) else None
        results.append(evaluate(entry, nxt, thresholds))
    return results


# Short codes shown in the editor's issue column
ISSUE_CODES = {
    IssueType.CPS: "CPS",
    IssueType.WPM: "WPM",
    IssueType.CPL: "CPL",
    IssueType.DURATION_SHORT: "D<",
    IssueType.DURATION_LONG: "D>",
    IssueType.OVERLAP: "OVR",
    IssueType.GAP_SHORT: "GAP",
}


def summarize(results: Sequence[QcResult]) -> tuple[dict[IssueType, int], int]:
    """Per-type issue counts and the number of entries with any issue."""
    counts: dict[IssueType, int] = {}
    flagged = 0
    for result in results:
        if result.issues:
            flagged += 1
        for issue in result.issues:
            counts[issue] = counts.get(issue, 0) + 1
    return counts, flagged
