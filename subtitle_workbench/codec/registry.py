"""Codec registry, format detection and the format-agnostic parse/serialize calls."""

from __future__ import annotations

from pathlib import PurePath
from typing import Optional, Sequence, Type, Union

from loguru import logger

from subtitle_workbench.codec.base import SubtitleCodec
from subtitle_workbench.models.datatypes import (
    ParsedSubtitles,
    SubtitleEntry,
    SubtitleFormat,
    UnknownFormatError,
)


class CodecRegistry:
    """Central registry for all subtitle codecs.

    Use ``CodecRegistry.register(cls)`` to register new codecs, and
    ``CodecRegistry.create(fmt)`` to instantiate them.
    """

    _registry: dict[SubtitleFormat, Type[SubtitleCodec]] = {}
    # Sniff order matters: srt's "-->" test also matches vtt bodies.
    _sniff_order: list[SubtitleFormat] = [
        SubtitleFormat.VTT,
        SubtitleFormat.ASS,
        SubtitleFormat.SRT,
    ]

    @classmethod
    def register(cls, codec_class: Type[SubtitleCodec]) -> Type[SubtitleCodec]:
        """Register a codec class. Can also be used as a decorator."""
        cls._registry[codec_class.format()] = codec_class
        return codec_class

    @classmethod
    def create(cls, fmt: Union[str, SubtitleFormat]) -> SubtitleCodec:
        """Instantiate the codec for *fmt*; unknown formats raise."""
        key = SubtitleFormat.parse(fmt)
        if key not in cls._registry:
            available = ", ".join(f.value for f in cls._registry)
            raise UnknownFormatError(
                f"No codec registered for '{key.value}'. Available: {available}"
            )
        return cls._registry[key]()

    @classmethod
    def list_formats(cls) -> list[SubtitleFormat]:
        """Return registered formats."""
        return list(cls._registry.keys())

    @classmethod
    def detect_format(cls, content: str) -> SubtitleFormat:
        """Detect the format of raw content.

        Blank content is treated as an empty SRT document.
        """
        if not content.strip():
            return SubtitleFormat.SRT
        for fmt in cls._sniff_order:
            codec_class = cls._registry.get(fmt)
            if codec_class is not None and codec_class.sniff(content):
                return fmt
        raise UnknownFormatError("Could not detect subtitle format from content.")

    @classmethod
    def detect_format_from_filename(cls, filename: str) -> SubtitleFormat:
        """Map a file extension to a format."""
        ext = PurePath(filename).suffix.lower().lstrip(".")
        for fmt, codec_class in cls._registry.items():
            if ext in codec_class.extensions():
                return fmt
        raise UnknownFormatError(f"Unsupported subtitle file extension: '{filename}'")


def detect_format(content: str) -> SubtitleFormat:
    return CodecRegistry.detect_format(content)


def detect_format_from_filename(filename: str) -> SubtitleFormat:
    return CodecRegistry.detect_format_from_filename(filename)


def parse_subtitles(
    content: str,
    format_hint: Optional[Union[str, SubtitleFormat]] = None,
) -> ParsedSubtitles:
    """Parse content, honouring *format_hint* or detecting the format."""
    fmt = SubtitleFormat.parse(format_hint) if format_hint else detect_format(content)
    result = CodecRegistry.create(fmt).parse(content)
    logger.debug(f"Parsed {len(result.entries)} {fmt.value} entries.")
    return result


def serialize_subtitles(
    entries: Sequence[SubtitleEntry],
    fmt: Union[str, SubtitleFormat],
    header: Optional[str] = None,
) -> str:
    """Serialize entries to *fmt*."""
    return CodecRegistry.create(fmt).serialize(entries, header)
