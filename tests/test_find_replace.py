"""Tests for find/replace."""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from subtitle_workbench.core.document import SubtitleDocument
from subtitle_workbench.core.find_replace import (
    FindOptions,
    compile_query,
    find_matches,
    replace_all,
    replace_first,
)
from subtitle_workbench.models.datatypes import SubtitleEntry

ENTRIES = [
    SubtitleEntry("a", 1, 0, 1000, "The cat sat."),
    SubtitleEntry("b", 2, 1000, 2000, "Concatenate THE strings"),
    SubtitleEntry("c", 3, 2000, 3000, "Nothing here"),
]


def test_plain_search_is_case_insensitive_by_default():
    assert [e.id for e in find_matches(ENTRIES, "the")] == ["a", "b"]
    assert [e.id for e in find_matches(ENTRIES, "the", FindOptions(match_case=True))] == []


def test_whole_word():
    assert [e.id for e in find_matches(ENTRIES, "cat", FindOptions(whole_word=True))] == ["a"]
    assert [e.id for e in find_matches(ENTRIES, "cat")] == ["a", "b"]


def test_regex_and_invalid_regex():
    assert [e.id for e in find_matches(ENTRIES, r"s\w+s", FindOptions(use_regex=True))] == ["b"]
    assert compile_query("(", FindOptions(use_regex=True)) is None
    assert find_matches(ENTRIES, "(", FindOptions(use_regex=True)) == []
    assert compile_query("") is None


def test_special_characters_are_literal_without_regex():
    assert [e.id for e in find_matches(ENTRIES, "sat.")] == ["a"]
    assert find_matches(ENTRIES, "s.t") == []


def test_replace_first():
    assert replace_first(ENTRIES, "the", "a") == ("a", {"text": "a cat sat."})
    assert replace_first(ENTRIES, "zzz", "a") is None


def test_replace_all_updates_apply_as_one_step():
    updates = replace_all(ENTRIES, "the", "A")
    assert updates == [("a", {"text": "A cat sat."}), ("b", {"text": "Concatenate A strings"})]

    doc = SubtitleDocument()
    doc.load_from_content(
        "1\n00:00:00,000 --> 00:00:01,000\nThe cat sat.\n\n"
        "2\n00:00:01,000 --> 00:00:02,000\nthe end\n"
    )
    assert doc.update_entries(replace_all(doc.entries, "the", "A"), label="Replace all")
    assert [e.text for e in doc.entries] == ["A cat sat.", "A end"]
    assert doc.undo_label == "Replace all"


def test_regex_replacement_supports_groups():
    updates = replace_all(ENTRIES, r"(\w+) sat", r"\1 stood", FindOptions(use_regex=True))
    assert updates == [("a", {"text": "The cat stood."})]


def test_literal_replacement_keeps_backslashes():
    updates = replace_all(ENTRIES, "cat", r"\1")
    assert updates[0] == ("a", {"text": "The \\1 sat."})
