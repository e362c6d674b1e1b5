"""Abstract base class for subtitle format codecs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from subtitle_workbench.models.datatypes import (
    ParsedSubtitles,
    SubtitleEntry,
    SubtitleFormat,
)


class SubtitleCodec(ABC):
    """Interface that every subtitle format must implement.

    To add a new format:
        1. Add its tag to ``SubtitleFormat``.
        2. Create a subclass of ``SubtitleCodec`` and implement all abstract methods.
        3. Register the class via ``CodecRegistry.register(YourClass)``.
    """

    @classmethod
    @abstractmethod
    def format(cls) -> SubtitleFormat:
        """The format tag this codec handles."""
        ...

    @classmethod
    @abstractmethod
    def extensions(cls) -> list[str]:
        """File extensions (without dot) mapped to this codec."""
        ...

    @classmethod
    @abstractmethod
    def sniff(cls, content: str) -> bool:
        """Return True if *content* looks like this format."""
        ...

    @abstractmethod
    def parse(self, content: str) -> ParsedSubtitles:
        """Parse raw file content into ordered entries.

        Malformed individual blocks are skipped, never fatal.
        """
        ...

    @abstractmethod
    def serialize(
        self,
        entries: Sequence[SubtitleEntry],
        header: Optional[str] = None,
    ) -> str:
        """Serialize entries (in sequence order) back into file content."""
        ...

    @staticmethod
    def normalize_newlines(content: str) -> str:
        return content.replace("\r\n", "\n").replace("\r", "\n").lstrip("\ufeff")
