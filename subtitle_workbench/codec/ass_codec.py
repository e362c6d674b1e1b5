"""Advanced SubStation Alpha (.ass/.ssa) codec.

Only the ``[Events]`` dialogue lines become entries; everything before
``[Events]`` (script info, styles, fonts) is kept as an opaque header and
written back verbatim.
"""

from __future__ import annotations

from typing import Optional, Sequence

from loguru import logger

from subtitle_workbench.codec.base import SubtitleCodec
from subtitle_workbench.codec.registry import CodecRegistry
from subtitle_workbench.codec.timestamps import format_ass, parse_timestamp_ass
from subtitle_workbench.models.datatypes import (
    ParsedSubtitles,
    SubtitleEntry,
    SubtitleFormat,
    generate_entry_id,
)

DEFAULT_ASS_HEADER = """[Script Info]
Title: Subtitle File
ScriptType: v4.00+
WrapStyle: 0
ScaledBorderAndShadow: yes
YCbCr Matrix: TV.709
PlayResX: 1920
PlayResY: 1080

[V4+ Styles]
Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, Alignment, MarginL, MarginR, MarginV, Encoding
Style: Default,Arial,48,&H00FFFFFF,&H000000FF,&H00000000,&H00000000,0,0,0,0,100,100,0,0,1,2,2,2,10,10,10,1"""

EVENTS_FORMAT = "Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text"

_SECTION_MARKERS = ("[script info]", "[v4+ styles]", "[v4 styles]", "[events]")


@CodecRegistry.register
class AssCodec(SubtitleCodec):
    """ASS/SSA with ``H:MM:SS.cc`` timing and ``\\N`` line breaks."""

    @classmethod
    def format(cls) -> SubtitleFormat:
        return SubtitleFormat.ASS

    @classmethod
    def extensions(cls) -> list[str]:
        return ["ass", "ssa"]

    @classmethod
    def sniff(cls, content: str) -> bool:
        lowered = content.lower()
        return any(marker in lowered for marker in _SECTION_MARKERS)

    def parse(self, content: str) -> ParsedSubtitles:
        lines = self.normalize_newlines(content).split("\n")

        events_start = next(
            (i for i, line in enumerate(lines) if line.strip().lower() == "[events]"),
            -1,
        )
        header_end = events_start if events_start >= 0 else len(lines)
        header = "\n".join(lines[:header_end]).rstrip()

        entries: list[SubtitleEntry] = []
        if events_start < 0:
            logger.debug("ASS: no [Events] section found.")
            return ParsedSubtitles(entries=entries, format=SubtitleFormat.ASS, header=header)

        columns: list[str] = []
        skipped = 0
        for raw in lines[events_start + 1:]:
            line = raw.strip()
            if line.startswith("[") and line.endswith("]"):
                break  # next section
            key, sep, value = line.partition(":")
            if not sep:
                continue
            key = key.strip().lower()
            if key == "format":
                columns = [c.strip().lower() for c in value.split(",")]
                continue
            if key != "dialogue":
                continue
            if not columns or not {"start", "end", "text"} <= set(columns):
                skipped += 1
                continue

            # Text is the last column and may itself contain commas.
            parts = [p.strip() for p in value.strip().split(",", len(columns) - 1)]
            if len(parts) < len(columns):
                skipped += 1
                continue
            fields = dict(zip(columns, parts))
            try:
                start = parse_timestamp_ass(fields["start"])
                end = parse_timestamp_ass(fields["end"])
            except ValueError:
                skipped += 1
                continue

            text = fields["text"].replace("\\N", "\n").replace("\\n", "\n")
            entries.append(
                SubtitleEntry(
                    id=generate_entry_id(),
                    index=len(entries) + 1,
                    start_time=start,
                    end_time=end,
                    text=text,
                )
            )

        if skipped:
            logger.debug(f"ASS: skipped {skipped} malformed dialogue line(s).")
        return ParsedSubtitles(entries=entries, format=SubtitleFormat.ASS, header=header)

    def serialize(
        self,
        entries: Sequence[SubtitleEntry],
        header: Optional[str] = None,
    ) -> str:
        head = (header or DEFAULT_ASS_HEADER).rstrip()
        dialogues = [
            "Dialogue: 0,{start},{end},Default,,0,0,0,,{text}".format(
                start=format_ass(e.start_time),
                end=format_ass(e.end_time),
                text=e.text.replace("\n", "\\N"),
            )
            for e in entries
        ]
        body = "\n".join(["[Events]", f"Format: {EVENTS_FORMAT}", *dialogues])
        return f"{head}\n\n{body}\n"
