"""Tests for bulk retiming tools."""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from subtitle_workbench.core.timing import scale_entries, shift_entries, two_point_sync
from subtitle_workbench.models.datatypes import SubtitleEntry, reindex_entries


def _entries():
    return reindex_entries([
        SubtitleEntry("a", 0, 1000, 2000, "A"),
        SubtitleEntry("b", 0, 3000, 4000, "B"),
    ])


def _times(entries):
    return [(e.start_time, e.end_time) for e in entries]


def test_shift_all_and_selected():
    assert _times(shift_entries(_entries(), 500)) == [(1500, 2500), (3500, 4500)]
    assert _times(shift_entries(_entries(), 500, ids=["b"])) == [(1000, 2000), (3500, 4500)]


def test_shift_clamps_at_zero_and_keeps_positive_duration():
    shifted = shift_entries(_entries(), -3000)
    assert _times(shifted) == [(0, 1), (0, 1000)]
    assert all(e.end_time > e.start_time for e in shifted)


def test_scale():
    assert _times(scale_entries(_entries(), 1.5)) == [(1500, 3000), (4500, 6000)]
    with pytest.raises(ValueError):
        scale_entries(_entries(), 0)


def test_two_point_sync_maps_both_points():
    synced = two_point_sync(_entries(), (1000, 1500), (3000, 4500))
    assert synced[0].start_time == 1500
    assert synced[1].start_time == 4500
    assert synced[0].end_time == 3000


def test_two_point_sync_rejects_degenerate_points():
    with pytest.raises(ValueError):
        two_point_sync(_entries(), (1000, 0), (1000, 500))
    with pytest.raises(ValueError):
        two_point_sync(_entries(), (1000, 5000), (3000, 1000))


def test_inputs_are_not_mutated():
    source = _entries()
    shift_entries(source, 100)
    assert _times(source) == [(1000, 2000), (3000, 4000)]
