"""Tests for the document/history store."""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from subtitle_workbench.core.document import SubtitleDocument
from subtitle_workbench.models.datatypes import DocumentClosedError, SubtitleFormat

SRT = (
    "1\n00:00:01,000 --> 00:00:02,000\nOne\n\n"
    "2\n00:00:03,000 --> 00:00:04,000\nTwo\n\n"
    "3\n00:00:05,000 --> 00:00:06,000\nThree\n"
)


def _doc(content=SRT, **kwargs):
    doc = SubtitleDocument(**kwargs)
    doc.load_from_content(content, file_name="demo.srt")
    return doc


def _ids(doc):
    return [e.id for e in doc.entries]


def _timing(doc):
    return [(e.id, e.start_time, e.end_time, e.text) for e in doc.entries]


def test_load_is_clean():
    doc = _doc()
    assert doc.is_open
    assert len(doc) == 3
    assert doc.format is SubtitleFormat.SRT
    assert not doc.dirty
    assert not doc.can_undo and not doc.can_redo


def test_closed_document_rejects_mutations():
    doc = SubtitleDocument()
    with pytest.raises(DocumentClosedError):
        doc.update_entry("x", text="y")
    with pytest.raises(DocumentClosedError):
        doc.undo()


def test_update_entry_pushes_history():
    doc = _doc()
    first = doc.entries[0].id
    assert doc.update_entry(first, text="Uno")
    assert doc.entries[0].text == "Uno"
    assert doc.dirty
    assert doc.undo_label == "Edit entry"


def test_invalid_update_is_a_noop():
    """Inverted timing or unknown ids leave the document and history untouched."""
    doc = _doc()
    first = doc.entries[0].id
    before = _timing(doc)
    assert not doc.update_entry(first, start_time=5000)
    assert not doc.update_entry("missing", text="x")
    assert not doc.update_entry(first, text="One")  # unchanged
    assert _timing(doc) == before
    assert not doc.can_undo
    assert not doc.dirty


def test_update_entries_is_all_or_nothing():
    doc = _doc()
    a, b, _ = _ids(doc)
    before = _timing(doc)
    ok = doc.update_entries([(a, {"text": "A"}), (b, {"start_time": 9000})])
    assert not ok
    assert _timing(doc) == before


def test_unknown_field_raises():
    doc = _doc()
    with pytest.raises(ValueError):
        doc.update_entry(doc.entries[0].id, index=7)


def test_undo_redo_inverse():
    """redo(undo(state)) gives back the same state after several mutations."""
    doc = _doc()
    a, b, c = _ids(doc)
    doc.update_entry(a, text="A")
    doc.delete_entries([b])
    doc.insert_entry(after_id=c, text="Four")
    after = _timing(doc)

    for _ in range(3):
        assert doc.undo()
    assert [e.text for e in doc.entries] == ["One", "Two", "Three"]
    assert not doc.can_undo
    for _ in range(3):
        assert doc.redo()
    assert _timing(doc) == after
    assert not doc.can_redo


def test_new_mutation_clears_redo():
    doc = _doc()
    a = doc.entries[0].id
    doc.update_entry(a, text="A")
    doc.undo()
    assert doc.can_redo
    doc.update_entry(a, text="B")
    assert not doc.can_redo


def test_history_is_bounded():
    doc = _doc(max_history=3)
    a = doc.entries[0].id
    for i in range(5):
        doc.update_entry(a, text=f"v{i}")
    undone = 0
    while doc.undo():
        undone += 1
    assert undone == 3
    assert doc.entries[0].text == "v1"


def test_insert_after_and_at_end():
    doc = _doc()
    a = doc.entries[0].id
    inserted = doc.insert_entry(after_id=a)
    assert inserted.index == 2
    assert inserted.start_time == 2100
    assert inserted.end_time == 4100
    assert doc.active_entry_id == inserted.id

    tail = doc.insert_entry(text="tail")
    assert tail.index == len(doc)
    assert tail.start_time == 6100


def test_insert_before():
    doc = _doc()
    a, b, _ = _ids(doc)
    before_b = doc.insert_entry_before(b)
    assert before_b.index == 2
    assert before_b.start_time == 2100
    first = doc.insert_entry_before(doc.entries[0].id)
    assert first.index == 1
    assert first.start_time == 0


def test_insert_with_duplicate_id_is_rejected():
    doc = _doc()
    assert doc.insert_entry(id=doc.entries[0].id) is None
    assert not doc.can_undo


def test_delete_entries_updates_selection():
    doc = _doc()
    a, b, c = _ids(doc)
    doc.select_entry(b)
    assert doc.delete_entries([b])
    assert _ids(doc) == [a, c]
    assert [e.index for e in doc.entries] == [1, 2]
    assert doc.selected_ids == set()
    assert doc.active_entry_id is None
    assert not doc.delete_entries(["nope"])


def test_split_at_midpoint():
    """Both halves keep the text; the document grows by one."""
    doc = SubtitleDocument()
    doc.load_from_content("1\n00:00:00,000 --> 00:00:04,000\nWhole\n")
    entry_id = doc.entries[0].id
    second = doc.split_entry(entry_id, 2000)
    assert len(doc) == 2
    assert [(e.start_time, e.end_time, e.text) for e in doc.entries] == [
        (0, 2000, "Whole"),
        (2000, 4000, "Whole"),
    ]
    assert doc.entries[0].id == entry_id
    assert second.id != entry_id
    assert doc.undo_label == "Split entry"


@pytest.mark.parametrize("at", [1000, 2000, 500])
def test_split_outside_entry_is_a_noop(at):
    doc = _doc()
    assert doc.split_entry(doc.entries[0].id, at) is None
    assert len(doc) == 3
    assert not doc.can_undo


def test_merge_entries():
    doc = _doc()
    a, b, c = _ids(doc)
    merged = doc.merge_entries([c, a])
    assert merged.id == a
    assert (merged.start_time, merged.end_time) == (1000, 6000)
    assert merged.text == "One\nThree"
    assert _ids(doc) == [a, b]
    assert doc.selected_ids == {a}


def test_merge_needs_two_entries():
    doc = _doc()
    assert doc.merge_entries([doc.entries[0].id]) is None
    assert doc.merge_entries([doc.entries[0].id, "missing"]) is None
    assert not doc.can_undo


def test_sort_by_time_and_replace_all():
    doc = SubtitleDocument()
    doc.load_from_content(
        "1\n00:00:05,000 --> 00:00:06,000\nLate\n\n"
        "2\n00:00:01,000 --> 00:00:02,000\nEarly\n"
    )
    doc.sort_by_time()
    assert [e.text for e in doc.entries] == ["Early", "Late"]
    assert [e.index for e in doc.entries] == [1, 2]
    doc.replace_all_entries(doc.entries[:1], "Trim")
    assert len(doc) == 1
    assert doc.undo_label == "Trim"


def test_replace_all_rejects_entries_without_duration():
    doc = _doc()
    before = _timing(doc)
    collapsed = [doc.entries[0].with_changes(end_time=doc.entries[0].start_time), *doc.entries[1:]]
    assert not doc.replace_all_entries(collapsed, "Broken")
    assert _timing(doc) == before
    assert not doc.can_undo
    assert not doc.dirty


def test_selection_helpers():
    doc = _doc()
    a, b, c = _ids(doc)
    doc.select_entry(a)
    doc.select_entry(c, multi=True)
    assert doc.selected_ids == {a, c}
    doc.select_entry(c, multi=True)
    assert doc.selected_ids == {a}
    doc.select_range(c, a)
    assert doc.selected_ids == {a, b, c}
    doc.deselect_all()
    assert doc.selected_ids == set()
    doc.select_all()
    assert len(doc.selected_entries()) == 3
    assert not doc.can_undo


def test_serialized_content_and_mark_saved():
    doc = _doc()
    doc.update_entry(doc.entries[0].id, text="Uno")
    assert "Uno" in doc.serialized_content()
    assert doc.dirty
    doc.mark_saved()
    assert not doc.dirty


def test_set_format_converts_output():
    doc = _doc()
    doc.set_format("vtt")
    assert doc.serialized_content().startswith("WEBVTT")
    assert doc.dirty


def test_translation_source_snapshot():
    doc = _doc()
    a = doc.entries[0].id
    assert doc.capture_translation_source()
    doc.update_entry(a, text="Eins")
    assert doc.translator_mode
    assert doc.source_text(a) == "One"
    assert doc.entries[0].text == "Eins"
    doc.clear_translation_source()
    assert doc.source_text(a) is None
    doc.set_translator_mode(True)
    assert not doc.translator_mode


def test_create_new_and_close():
    doc = SubtitleDocument()
    first = doc.create_new()
    assert len(doc) == 1
    assert (first.start_time, first.end_time) == (0, 2000)
    doc.close()
    assert not doc.is_open
    assert len(doc) == 0
