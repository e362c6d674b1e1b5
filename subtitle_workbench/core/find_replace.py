"""Text search and replace across entries."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence

from loguru import logger

from subtitle_workbench.models.datatypes import SubtitleEntry


@dataclass(frozen=True)
class FindOptions:
    match_case: bool = False
    whole_word: bool = False
    use_regex: bool = False


def compile_query(query: str, options: FindOptions = FindOptions()) -> Optional[Pattern[str]]:
    """Build the search pattern, or None for an empty or invalid query."""
    if not query:
        return None
    source = query if options.use_regex else re.escape(query)
    if options.whole_word and not options.use_regex:
        source = rf"\b{source}\b"
    flags = 0 if options.match_case else re.IGNORECASE
    try:
        return re.compile(source, flags)
    except re.error as e:
        logger.debug(f"Invalid search pattern {query!r}: {e}")
        return None


def find_matches(
    entries: Sequence[SubtitleEntry],
    query: str,
    options: FindOptions = FindOptions(),
) -> list[SubtitleEntry]:
    pattern = compile_query(query, options)
    if pattern is None:
        return []
    return [e for e in entries if pattern.search(e.text)]


def _substitute(pattern: Pattern[str], replacement: str, text: str, count: int, use_regex: bool) -> str:
    if use_regex:
        try:
            return pattern.sub(replacement, text, count=count)
        except re.error as e:
            logger.debug(f"Invalid replacement template {replacement!r}: {e}")
            return text
    return pattern.sub(lambda _m: replacement, text, count=count)


def replace_first(
    entries: Sequence[SubtitleEntry],
    query: str,
    replacement: str,
    options: FindOptions = FindOptions(),
) -> Optional[tuple[str, dict]]:
    """Replace the first occurrence in the first matching entry."""
    pattern = compile_query(query, options)
    if pattern is None:
        return None
    for entry in entries:
        if pattern.search(entry.text):
            text = _substitute(pattern, replacement, entry.text, 1, options.use_regex)
            return entry.id, {"text": text}
    return None


def replace_all(
    entries: Sequence[SubtitleEntry],
    query: str,
    replacement: str,
    options: FindOptions = FindOptions(),
) -> list[tuple[str, dict]]:
    """Per-entry text updates, ready for ``SubtitleDocument.update_entries``."""
    pattern = compile_query(query, options)
    if pattern is None:
        return []
    updates: list[tuple[str, dict]] = []
    for entry in entries:
        if not pattern.search(entry.text):
            continue
        text = _substitute(pattern, replacement, entry.text, 0, options.use_regex)
        if text != entry.text:
            updates.append((entry.id, {"text": text}))
    return updates
