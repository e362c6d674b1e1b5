"""SubRip (.srt) codec."""

from __future__ import annotations

import re
from typing import Optional, Sequence

from loguru import logger

from subtitle_workbench.codec.base import SubtitleCodec
from subtitle_workbench.codec.registry import CodecRegistry
from subtitle_workbench.codec.timestamps import format_srt, parse_timestamp
from subtitle_workbench.models.datatypes import (
    ParsedSubtitles,
    SubtitleEntry,
    SubtitleFormat,
    generate_entry_id,
)

_BLOCK_SPLIT_RE = re.compile(r"\n\s*\n")
_ARROW = "-->"


def parse_cue_blocks(body: str) -> tuple[list[SubtitleEntry], int]:
    """Parse blank-line separated cue blocks shared by SRT and VTT.

    Returns the entries and the number of skipped (malformed) blocks.
    Anything after the end timestamp on the timing line (VTT cue settings)
    is ignored.
    """
    entries: list[SubtitleEntry] = []
    skipped = 0
    for block in _BLOCK_SPLIT_RE.split(body):
        lines = block.strip("\n").split("\n")
        if not any(line.strip() for line in lines):
            continue

        timing_idx = next(
            (i for i, line in enumerate(lines) if _ARROW in line), None
        )
        if timing_idx is None:
            skipped += 1
            continue

        start_str, _, rest = lines[timing_idx].partition(_ARROW)
        end_parts = rest.split()
        try:
            start = parse_timestamp(start_str)
            end = parse_timestamp(end_parts[0] if end_parts else "")
        except ValueError:
            skipped += 1
            continue

        text = "\n".join(lines[timing_idx + 1:]).strip()
        if not text:
            continue

        entries.append(
            SubtitleEntry(
                id=generate_entry_id(),
                index=len(entries) + 1,
                start_time=start,
                end_time=end,
                text=text,
            )
        )
    return entries, skipped


@CodecRegistry.register
class SrtCodec(SubtitleCodec):
    """Plain numbered cue blocks with ``HH:MM:SS,mmm`` timing."""

    @classmethod
    def format(cls) -> SubtitleFormat:
        return SubtitleFormat.SRT

    @classmethod
    def extensions(cls) -> list[str]:
        return ["srt"]

    @classmethod
    def sniff(cls, content: str) -> bool:
        return any(_ARROW in line for line in content.splitlines())

    def parse(self, content: str) -> ParsedSubtitles:
        entries, skipped = parse_cue_blocks(self.normalize_newlines(content))
        if skipped:
            logger.debug(f"SRT: skipped {skipped} malformed block(s).")
        return ParsedSubtitles(entries=entries, format=SubtitleFormat.SRT)

    def serialize(
        self,
        entries: Sequence[SubtitleEntry],
        header: Optional[str] = None,
    ) -> str:
        blocks = [
            f"{pos}\n{format_srt(e.start_time)} --> {format_srt(e.end_time)}\n{e.text}"
            for pos, e in enumerate(entries, start=1)
        ]
        if not blocks:
            return ""
        return "\n\n".join(blocks) + "\n"
