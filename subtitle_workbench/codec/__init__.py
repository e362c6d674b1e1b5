"""Codec package – import submodules to trigger auto-registration."""

from subtitle_workbench.codec.base import SubtitleCodec  # noqa: F401
from subtitle_workbench.codec.registry import (  # noqa: F401
    CodecRegistry,
    detect_format,
    detect_format_from_filename,
    parse_subtitles,
    serialize_subtitles,
)

# Import codecs so they register themselves via @CodecRegistry.register
from subtitle_workbench.codec import srt_codec as _srt  # noqa: F401
from subtitle_workbench.codec import vtt_codec as _vtt  # noqa: F401
from subtitle_workbench.codec import ass_codec as _ass  # noqa: F401
