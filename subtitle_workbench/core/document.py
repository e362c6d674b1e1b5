"""Document/history store: the single mutation point for subtitle entries.

All mutating operations follow the same protocol: snapshot the current
sequence onto the undo stack with a label, clear the redo stack, swap in the
new (reindexed) sequence, and mark the document dirty. Rejected operations
leave everything untouched, including the history.
"""

from __future__ import annotations

from collections import deque
from enum import Enum
from pathlib import PurePath
from typing import Any, Iterable, Optional, Sequence, Union

from loguru import logger

from subtitle_workbench.codec import parse_subtitles, serialize_subtitles
from subtitle_workbench.models.datatypes import (
    DocumentClosedError,
    HistoryState,
    SubtitleEntry,
    SubtitleFormat,
    create_empty_entry,
    generate_entry_id,
    reindex_entries,
    sort_entries,
)

MAX_UNDO_HISTORY = 50
INSERT_GAP_MS = 100

_EDITABLE_FIELDS = {"start_time", "end_time", "text"}


class DocumentState(Enum):
    CLOSED = "closed"
    OPEN = "open"


class SubtitleDocument:
    """Live entry sequence with selection, dirty flag and snapshot undo/redo."""

    def __init__(self, max_history: int = MAX_UNDO_HISTORY) -> None:
        if max_history <= 0:
            raise ValueError("max_history must be positive")
        self._max_history = max_history
        self._undo: deque[HistoryState] = deque(maxlen=max_history)
        self._redo: deque[HistoryState] = deque(maxlen=max_history)
        self._reset(DocumentState.CLOSED)

    def _reset(self, state: DocumentState) -> None:
        self.state = state
        self._entries: tuple[SubtitleEntry, ...] = ()
        self.format = SubtitleFormat.SRT
        self.header: Optional[str] = None
        self.file_path: Optional[str] = None
        self.file_name: Optional[str] = None
        self.dirty = False
        self.selected_ids: set[str] = set()
        self.active_entry_id: Optional[str] = None
        self.translation_source: Optional[dict[str, str]] = None
        self.translator_mode = False
        self._undo.clear()
        self._redo.clear()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self.state is DocumentState.OPEN

    @property
    def entries(self) -> tuple[SubtitleEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get_entry(self, entry_id: str) -> Optional[SubtitleEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def position_of(self, entry_id: str) -> int:
        """0-based position of *entry_id*, or -1."""
        for pos, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return pos
        return -1

    def serialized_content(self) -> str:
        """Full document content in its current format, for the caller to write."""
        return serialize_subtitles(self._entries, self.format, self.header)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load_from_content(
        self,
        content: str,
        file_name: Optional[str] = None,
        fmt: Optional[Union[str, SubtitleFormat]] = None,
    ) -> None:
        """Parse raw content and open it as a fresh, clean document."""
        parsed = parse_subtitles(content, fmt)
        self._reset(DocumentState.OPEN)
        self._entries = tuple(reindex_entries(parsed.entries))
        self.format = parsed.format
        self.header = parsed.header
        self.file_name = file_name
        logger.info(
            f"Loaded {len(self._entries)} {self.format.value} entries"
            + (f" from {file_name}" if file_name else "")
        )

    def load_from_entries(
        self,
        entries: Sequence[SubtitleEntry],
        fmt: Union[str, SubtitleFormat],
        file_path: str,
        header: Optional[str] = None,
    ) -> None:
        """Open pre-parsed entries that belong to a known file."""
        fmt = SubtitleFormat.parse(fmt)
        self._reset(DocumentState.OPEN)
        self._entries = tuple(reindex_entries(entries))
        self.format = fmt
        self.header = header
        self.set_file_path(file_path)
        logger.info(f"Opened {len(self._entries)} entries from {file_path}")

    def create_new(self) -> SubtitleEntry:
        """Start a blank SRT document holding one 2-second entry at 0."""
        first = create_empty_entry(0)
        self._reset(DocumentState.OPEN)
        self._entries = (first,)
        self.selected_ids = {first.id}
        self.active_entry_id = first.id
        logger.info("Created new subtitle document.")
        return first

    def close(self) -> None:
        if self.is_open:
            logger.info(f"Closing document {self.file_name or '(untitled)'}")
        self._reset(DocumentState.CLOSED)

    def set_format(self, fmt: Union[str, SubtitleFormat]) -> None:
        self._require_open()
        fmt = SubtitleFormat.parse(fmt)
        if fmt is not self.format:
            self.header = None  # headers are format specific
        self.format = fmt
        self.dirty = True

    def set_file_path(self, path: Optional[str]) -> None:
        self.file_path = path
        if path:
            self.file_name = PurePath(path.replace("\\", "/")).name or path

    def mark_saved(self) -> None:
        """Clear the dirty flag after a successful external write."""
        self.dirty = False

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_label(self) -> Optional[str]:
        return self._undo[-1].label if self._undo else None

    @property
    def redo_label(self) -> Optional[str]:
        return self._redo[-1].label if self._redo else None

    def _commit(self, new_entries: Iterable[SubtitleEntry], label: str) -> None:
        """Snapshot, clear redo, swap in *new_entries*, mark dirty."""
        new_tuple = tuple(reindex_entries(new_entries))
        self._undo.append(HistoryState(entries=self._entries, label=label))
        self._redo.clear()
        self._entries = new_tuple
        self.dirty = True
        logger.debug(f"Commit '{label}' ({len(new_tuple)} entries, undo depth {len(self._undo)})")

    def undo(self) -> bool:
        self._require_open()
        if not self._undo:
            return False
        previous = self._undo.pop()
        self._redo.append(HistoryState(entries=self._entries, label=previous.label))
        self._restore(previous.entries)
        logger.debug(f"Undo '{previous.label}'")
        return True

    def redo(self) -> bool:
        self._require_open()
        if not self._redo:
            return False
        nxt = self._redo.pop()
        self._undo.append(HistoryState(entries=self._entries, label=nxt.label))
        self._restore(nxt.entries)
        logger.debug(f"Redo '{nxt.label}'")
        return True

    def _restore(self, entries: tuple[SubtitleEntry, ...]) -> None:
        self._entries = entries
        self.dirty = True
        live = {e.id for e in entries}
        self.selected_ids &= live
        if self.active_entry_id not in live:
            self.active_entry_id = None

    # ------------------------------------------------------------------
    # Entry mutations
    # ------------------------------------------------------------------

    def update_entry(self, entry_id: str, **changes: Any) -> bool:
        """Edit one entry's start_time / end_time / text."""
        return self.update_entries([(entry_id, changes)], label="Edit entry")

    def update_entries(
        self,
        updates: Sequence[tuple[str, dict[str, Any]]],
        label: str = "Edit entries",
    ) -> bool:
        """Apply several edits as one undoable step (all or nothing)."""
        self._require_open()
        if not updates:
            return False
        pending: dict[str, dict[str, Any]] = {}
        for entry_id, changes in updates:
            unknown = set(changes) - _EDITABLE_FIELDS
            if unknown:
                raise ValueError(f"Cannot edit field(s): {', '.join(sorted(unknown))}")
            pending.setdefault(entry_id, {}).update(changes)

        known = {e.id for e in self._entries}
        missing = [i for i in pending if i not in known]
        if missing:
            logger.warning(f"Edit rejected: unknown entry id(s) {missing}")
            return False

        new_entries: list[SubtitleEntry] = []
        changed = False
        for entry in self._entries:
            changes = pending.get(entry.id)
            if not changes:
                new_entries.append(entry)
                continue
            updated = entry.with_changes(**changes)
            if updated.start_time >= updated.end_time or updated.start_time < 0:
                logger.warning(
                    f"Edit rejected: entry #{entry.index} would span "
                    f"{updated.start_time}-{updated.end_time}ms"
                )
                return False
            changed = changed or updated != entry
            new_entries.append(updated)

        if not changed:
            return False
        self._commit(new_entries, label)
        return True

    def _new_entry(self, start_time: int, fields: dict[str, Any]) -> Optional[SubtitleEntry]:
        base = create_empty_entry(start_time)
        entry = base.with_changes(
            id=fields.get("id") or base.id,
            start_time=fields.get("start_time", base.start_time),
            end_time=fields.get("end_time", base.end_time),
            text=fields.get("text", base.text),
        )
        if entry.start_time >= entry.end_time or entry.start_time < 0:
            logger.warning(f"Insert rejected: {entry.start_time}-{entry.end_time}ms")
            return None
        if self.get_entry(entry.id) is not None:
            logger.warning(f"Insert rejected: id {entry.id} already exists")
            return None
        return entry

    def insert_entry(
        self,
        after_id: Optional[str] = None,
        **fields: Any,
    ) -> Optional[SubtitleEntry]:
        """Insert after *after_id* (or at the end), 100ms after its predecessor."""
        self._require_open()
        insert_at = len(self._entries)
        start = 0
        if after_id is not None and self.position_of(after_id) >= 0:
            pos = self.position_of(after_id)
            insert_at = pos + 1
            start = self._entries[pos].end_time + INSERT_GAP_MS
        elif self._entries:
            start = self._entries[-1].end_time + INSERT_GAP_MS

        entry = self._new_entry(start, fields)
        if entry is None:
            return None
        new_entries = list(self._entries)
        new_entries.insert(insert_at, entry)
        self._commit(new_entries, "Insert entry")
        self.active_entry_id = entry.id
        return self.get_entry(entry.id)

    def insert_entry_before(self, before_id: str, **fields: Any) -> Optional[SubtitleEntry]:
        """Insert before *before_id*, fitted after the previous entry."""
        self._require_open()
        pos = self.position_of(before_id)
        insert_at = max(pos, 0)
        start = 0
        if pos > 0:
            start = self._entries[pos - 1].end_time + INSERT_GAP_MS
        elif pos == 0:
            start = max(0, self._entries[0].start_time - 2000 - INSERT_GAP_MS)

        entry = self._new_entry(start, fields)
        if entry is None:
            return None
        new_entries = list(self._entries)
        new_entries.insert(insert_at, entry)
        self._commit(new_entries, "Insert entry before")
        self.active_entry_id = entry.id
        return self.get_entry(entry.id)

    def delete_entries(self, ids: Iterable[str]) -> bool:
        self._require_open()
        id_set = set(ids)
        remaining = [e for e in self._entries if e.id not in id_set]
        if len(remaining) == len(self._entries):
            return False
        self._commit(remaining, "Delete entries")
        self.selected_ids -= id_set
        if self.active_entry_id in id_set:
            self.active_entry_id = None
        return True

    def replace_all_entries(
        self,
        entries: Sequence[SubtitleEntry],
        label: str = "Replace all",
    ) -> bool:
        """Swap in a whole new entry list as one step; rejected if any entry has no duration."""
        self._require_open()
        invalid = [e for e in entries if e.start_time < 0 or e.start_time >= e.end_time]
        if invalid:
            logger.warning(
                f"'{label}' rejected: {len(invalid)} entr(y/ies) with invalid timing, "
                f"first {invalid[0].start_time}-{invalid[0].end_time}ms"
            )
            return False
        self._commit(entries, label)
        live = {e.id for e in self._entries}
        self.selected_ids &= live
        if self.active_entry_id not in live:
            self.active_entry_id = None
        return True

    def sort_by_time(self) -> bool:
        self._require_open()
        self._commit(sort_entries(self._entries), "Sort by time")
        return True

    def merge_entries(self, ids: Iterable[str]) -> Optional[SubtitleEntry]:
        """Merge two or more entries into the earliest one."""
        self._require_open()
        id_set = set(ids)
        to_merge = sorted(
            (e for e in self._entries if e.id in id_set),
            key=lambda e: e.start_time,
        )
        if len(to_merge) < 2:
            logger.warning("Merge rejected: need at least two existing entries.")
            return None

        first = to_merge[0]
        merged = first.with_changes(
            start_time=first.start_time,
            end_time=max(e.end_time for e in to_merge),
            text="\n".join(e.text for e in to_merge),
        )
        merged_ids = {e.id for e in to_merge}
        new_entries = [
            merged if e.id == first.id else e
            for e in self._entries
            if e.id == first.id or e.id not in merged_ids
        ]
        self._commit(new_entries, "Merge entries")
        self.selected_ids = {merged.id}
        self.active_entry_id = merged.id
        return self.get_entry(merged.id)

    def split_entry(self, entry_id: str, at_ms: int) -> Optional[SubtitleEntry]:
        """Split at *at_ms*; returns the new second half."""
        self._require_open()
        pos = self.position_of(entry_id)
        if pos < 0:
            logger.warning(f"Split rejected: unknown entry {entry_id}")
            return None
        entry = self._entries[pos]
        if not entry.start_time < at_ms < entry.end_time:
            logger.warning(
                f"Split rejected: {at_ms}ms outside entry #{entry.index} "
                f"({entry.start_time}-{entry.end_time}ms)"
            )
            return None

        first_half = entry.with_changes(end_time=at_ms)
        second_half = entry.with_changes(id=generate_entry_id(), start_time=at_ms)
        new_entries = list(self._entries)
        new_entries[pos:pos + 1] = [first_half, second_half]
        self._commit(new_entries, "Split entry")
        return self.get_entry(second_half.id)

    # ------------------------------------------------------------------
    # Selection (not part of history)
    # ------------------------------------------------------------------

    def select_entry(self, entry_id: str, multi: bool = False) -> None:
        if multi:
            if entry_id in self.selected_ids:
                self.selected_ids.discard(entry_id)
            else:
                self.selected_ids.add(entry_id)
        else:
            self.selected_ids = {entry_id}
        self.active_entry_id = entry_id

    def select_range(self, from_id: str, to_id: str) -> None:
        start, end = self.position_of(from_id), self.position_of(to_id)
        if start < 0 or end < 0:
            return
        lo, hi = min(start, end), max(start, end)
        self.selected_ids = {e.id for e in self._entries[lo:hi + 1]}
        self.active_entry_id = to_id

    def select_all(self) -> None:
        self.selected_ids = {e.id for e in self._entries}

    def deselect_all(self) -> None:
        self.selected_ids = set()

    def set_active_entry(self, entry_id: Optional[str]) -> None:
        self.active_entry_id = entry_id

    def selected_entries(self) -> list[SubtitleEntry]:
        return [e for e in self._entries if e.id in self.selected_ids]

    # ------------------------------------------------------------------
    # Translator mode
    # ------------------------------------------------------------------

    def capture_translation_source(self, ids: Optional[Iterable[str]] = None) -> bool:
        """Snapshot current texts (all, or *ids*) and enter translator mode."""
        id_set = set(ids) if ids else None
        snapshot = {
            e.id: e.text for e in self._entries if id_set is None or e.id in id_set
        }
        if not snapshot:
            return False
        self.translation_source = snapshot
        self.translator_mode = True
        return True

    def clear_translation_source(self) -> None:
        self.translation_source = None
        self.translator_mode = False

    def set_translator_mode(self, enabled: bool) -> None:
        if enabled and not self.translation_source:
            return
        self.translator_mode = enabled

    def source_text(self, entry_id: str) -> Optional[str]:
        if not self.translation_source:
            return None
        return self.translation_source.get(entry_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_open(self) -> None:
        if not self.is_open:
            raise DocumentClosedError("No subtitle document is open.")
