"""Tests for the QC evaluator."""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from subtitle_workbench.core.qc import (
    DEFAULT_QC_THRESHOLDS,
    evaluate,
    evaluate_entries,
    get_metrics,
    strip_markup,
    summarize,
)
from subtitle_workbench.models.datatypes import IssueType, QcThresholds, SubtitleEntry


def _entry(start, end, text="Hi", entry_id="e"):
    return SubtitleEntry(entry_id, 1, start, end, text)


def test_metrics_basic():
    m = get_metrics(_entry(0, 1000, "Hello world"))
    assert m.char_count == 10
    assert m.word_count == 2
    assert m.max_line_chars == 10
    assert m.duration_ms == 1000
    assert m.cps == 10.0
    assert m.wpm == 120.0


def test_metrics_ignore_markup():
    m = get_metrics(_entry(0, 1000, "<i>Hi</i> {\\an8}there [laughs]"))
    assert m.char_count == len("Hithere")
    assert m.word_count == 2


def test_zero_duration_does_not_divide_by_zero():
    m = get_metrics(_entry(500, 500, "abc"))
    assert m.duration_ms == 1
    assert m.cps == 3000.0


def test_strip_markup():
    assert strip_markup("<b>bold</b> {\\i1}x [door]") == "bold x "


def test_min_duration_boundary():
    """Exactly the minimum passes; one millisecond less is flagged."""
    t = DEFAULT_QC_THRESHOLDS
    ok = evaluate(_entry(0, t.min_duration_ms), None, t)
    short = evaluate(_entry(0, t.min_duration_ms - 1), None, t)
    assert IssueType.DURATION_SHORT not in ok.issues
    assert IssueType.DURATION_SHORT in short.issues


def test_max_duration_boundary():
    t = DEFAULT_QC_THRESHOLDS
    assert not evaluate(_entry(0, t.max_duration_ms), None, t).has(IssueType.DURATION_LONG)
    assert evaluate(_entry(0, t.max_duration_ms + 1), None, t).has(IssueType.DURATION_LONG)


def test_cps_wpm_and_cpl():
    t = DEFAULT_QC_THRESHOLDS
    fast = evaluate(_entry(0, 1000, "This line is far too long to read"), None, t)
    assert fast.has(IssueType.CPS)
    assert fast.has(IssueType.WPM)
    wide = evaluate(_entry(0, 5000, "a" * 43), None, t)
    assert wide.has(IssueType.CPL)
    assert not evaluate(_entry(0, 5000, "a" * 42), None, t).has(IssueType.CPL)


def test_gap_and_overlap_look_only_at_next():
    t = DEFAULT_QC_THRESHOLDS
    first = _entry(0, 1000)
    assert evaluate(first, _entry(900, 2000), t).has(IssueType.OVERLAP)
    assert evaluate(first, _entry(1050, 2000), t).has(IssueType.GAP_SHORT)
    touching = evaluate(first, _entry(1000, 2000), t)
    assert touching.issues == ()
    assert touching.gap_to_next_ms == 0
    assert evaluate(first, _entry(1080, 2000), t).issues == ()
    assert evaluate(first, None, t).gap_to_next_ms is None


def test_issue_order_is_stable():
    t = DEFAULT_QC_THRESHOLDS
    result = evaluate(_entry(0, 100, "x" * 50), _entry(50, 1000), t)
    order = [i.order for i in result.issues]
    assert order == sorted(order)


def test_evaluate_entries_and_summary():
    t = DEFAULT_QC_THRESHOLDS
    entries = [_entry(0, 1000, entry_id="a"), _entry(900, 2000, entry_id="b"), _entry(3000, 4000, entry_id="c")]
    results = evaluate_entries(entries, t)
    assert len(results) == 3
    counts, flagged = summarize(results)
    assert counts == {IssueType.OVERLAP: 1}
    assert flagged == 1


def test_thresholds_validation_and_camel_case():
    t = QcThresholds.from_dict({
        "maxCps": 17, "maxWpm": 160, "maxCpl": 37,
        "minDurationMs": 1000, "maxDurationMs": 6000, "minGapMs": 100,
    })
    assert t.max_cpl == 37
    assert QcThresholds.from_dict(t.to_dict()) == t
    with pytest.raises(ValueError):
        QcThresholds(21, 190, 42, 8000, 7000, 80)
