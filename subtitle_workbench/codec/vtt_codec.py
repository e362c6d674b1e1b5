"""WebVTT (.vtt) codec."""

from __future__ import annotations

from typing import Optional, Sequence

from loguru import logger

from subtitle_workbench.codec.base import SubtitleCodec
from subtitle_workbench.codec.registry import CodecRegistry
from subtitle_workbench.codec.srt_codec import parse_cue_blocks
from subtitle_workbench.codec.timestamps import format_vtt
from subtitle_workbench.models.datatypes import (
    ParsedSubtitles,
    SubtitleEntry,
    SubtitleFormat,
)

_DEFAULT_HEADER = "WEBVTT"
# Non-cue blocks that may appear between cues.
_SKIP_BLOCK_PREFIXES = ("NOTE", "STYLE", "REGION")


@CodecRegistry.register
class VttCodec(SubtitleCodec):
    """WebVTT: ``WEBVTT`` header block, then cues with ``HH:MM:SS.mmm`` timing."""

    @classmethod
    def format(cls) -> SubtitleFormat:
        return SubtitleFormat.VTT

    @classmethod
    def extensions(cls) -> list[str]:
        return ["vtt"]

    @classmethod
    def sniff(cls, content: str) -> bool:
        return content.lstrip("\ufeff").lstrip().startswith("WEBVTT")

    def parse(self, content: str) -> ParsedSubtitles:
        normalized = self.normalize_newlines(content).lstrip()
        header_end = normalized.find("\n\n")
        if header_end == -1:
            header, body = normalized.strip(), ""
        else:
            header, body = normalized[:header_end].strip(), normalized[header_end + 2:]

        cue_blocks = [
            block
            for block in body.split("\n\n")
            if not block.strip().startswith(_SKIP_BLOCK_PREFIXES)
        ]
        entries, skipped = parse_cue_blocks("\n\n".join(cue_blocks))
        if skipped:
            logger.debug(f"VTT: skipped {skipped} malformed block(s).")
        return ParsedSubtitles(
            entries=entries,
            format=SubtitleFormat.VTT,
            header=header or _DEFAULT_HEADER,
        )

    def serialize(
        self,
        entries: Sequence[SubtitleEntry],
        header: Optional[str] = None,
    ) -> str:
        head = (header or _DEFAULT_HEADER).strip()
        if not head.startswith("WEBVTT"):
            head = f"{_DEFAULT_HEADER}\n{head}"
        blocks = [
            f"{pos}\n{format_vtt(e.start_time)} --> {format_vtt(e.end_time)}\n{e.text}"
            for pos, e in enumerate(entries, start=1)
        ]
        return "\n\n".join([head, *blocks]) + "\n"
