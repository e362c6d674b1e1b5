"""Editor session: one document, its media analysis and its timeline."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

from loguru import logger

from subtitle_workbench.codec import detect_format_from_filename
from subtitle_workbench.config.settings import SettingsManager
from subtitle_workbench.core.audio_analysis import AnalysisState, AudioAnalysisSession, analyze_media
from subtitle_workbench.core.document import SubtitleDocument
from subtitle_workbench.core.fixes import apply_fixer, detect_all_errors, fix_all_errors
from subtitle_workbench.core.qc import evaluate_entries
from subtitle_workbench.core.timeline import TimelineInteraction, TimelineScale
from subtitle_workbench.models.datatypes import (
    AudioAnalysis,
    AudioDecodeError,
    QcResult,
    SubtitleEntry,
    SubtitleIssue,
    UnknownFormatError,
)

# (analysis session, media path, generation token); must eventually call
# session.complete(token, ...) or session.fail(token, ...). May return a job
# handle with isFinished() and wait() (a QThread does); the session keeps it
# alive until it finishes and waits for it on close().
AudioRunner = Callable[[AudioAnalysisSession, str, int], Any]
SeekCallback = Callable[[int], None]

DEFAULT_VIEWPORT_WIDTH = 720


def _timing_key(entries) -> list[tuple[str, int, int, str]]:
    return [(e.id, e.start_time, e.end_time, e.text) for e in entries]


class EditorSession:
    """Glue between the document store, audio analysis and timeline drag engine.

    Without an ``audio_runner`` media is analysed inline on the calling thread;
    the GUI passes a runner that hands the work to a background worker.
    """

    def __init__(
        self,
        settings: Optional[SettingsManager] = None,
        audio_runner: Optional[AudioRunner] = None,
        on_seek: Optional[SeekCallback] = None,
    ) -> None:
        self.settings = settings or SettingsManager()
        self._audio_runner = audio_runner
        self.document = SubtitleDocument(
            max_history=int(self.settings.get("editor.max_undo_history", 50))
        )
        self.audio = AudioAnalysisSession(self.settings.get("audio", {}))
        self.audio.on_ready = self._handle_analysis_ready
        self._audio_jobs: list = []
        self.media_duration_ms = 0
        self.playback_position_ms = 0
        self.viewport_width = DEFAULT_VIEWPORT_WIDTH
        self.timeline = TimelineInteraction(
            self.document,
            self._make_scale(zoom=self.settings.get("timeline.zoom", 1.5)),
            on_seek=self._handle_seek,
            min_duration_ms=int(self.settings.get("timeline.min_entry_duration_ms", 120)),
            handle_px=self.settings.get("timeline.handle_px", 6),
        )
        self._on_seek = on_seek

    # ------------------------------------------------------------------
    # Document lifecycle
    # ------------------------------------------------------------------

    def open_content(self, content: str, file_name: Optional[str] = None, fmt=None) -> None:
        self.timeline.cancel_drag()
        if fmt is None and file_name:
            try:
                fmt = detect_format_from_filename(file_name)
            except UnknownFormatError:
                logger.debug(f"No format for extension of {file_name}; sniffing content.")
        self.document.load_from_content(content, file_name=file_name, fmt=fmt)

    def open_file(self, path: str) -> None:
        content = Path(path).read_text(encoding="utf-8-sig")
        self.open_content(content, file_name=Path(path).name)
        self.document.set_file_path(path)

    def new_document(self) -> SubtitleEntry:
        self.timeline.cancel_drag()
        return self.document.create_new()

    def save(self, path: Optional[str] = None) -> str:
        """Write the document to *path* (or where it came from)."""
        target = path or self.document.file_path
        if not target:
            raise ValueError("No output path given and the document has no file path.")
        content = self.document.serialized_content()
        Path(target).write_text(content, encoding="utf-8")
        self.document.set_file_path(str(target))
        self.document.mark_saved()
        logger.info(f"Saved {len(self.document)} entries to: {target}")
        return str(target)

    def close(self) -> None:
        """Abandon any drag, release audio buffers and close the document."""
        self.timeline.cancel_drag()
        self.audio.release()
        self.wait_for_audio()
        self.document.close()
        self.media_duration_ms = 0
        self.playback_position_ms = 0
        self.timeline.scale = self._make_scale()

    # ------------------------------------------------------------------
    # Media / player state
    # ------------------------------------------------------------------

    def set_media_path(self, path: Optional[str]) -> None:
        token = self.audio.request(path)
        if token is None:
            return
        if self._audio_runner is not None:
            job = self._audio_runner(self.audio, path, token)
            self._audio_jobs = [j for j in self._audio_jobs if not j.isFinished()]
            if job is not None:
                self._audio_jobs.append(job)
            return
        try:
            analysis = analyze_media(path, self.audio.settings)
        except AudioDecodeError as e:
            self.audio.fail(token, e)
            return
        except Exception as e:
            logger.exception(f"Audio analysis failed for {path}")
            self.audio.fail(token, e)
            return
        self.audio.complete(token, analysis)

    @property
    def audio_state(self) -> AnalysisState:
        return self.audio.state

    @property
    def audio_jobs_pending(self) -> int:
        return sum(1 for j in self._audio_jobs if not j.isFinished())

    def wait_for_audio(self) -> None:
        """Block until every background decode job has finished."""
        jobs, self._audio_jobs = self._audio_jobs, []
        for job in jobs:
            job.wait()

    def _handle_analysis_ready(self, analysis: AudioAnalysis) -> None:
        # Player-reported durations win over the decoded length.
        if self.media_duration_ms <= 0:
            self.set_media_duration(analysis.duration_ms)

    def set_media_duration(self, duration_ms: int) -> None:
        self.media_duration_ms = max(0, int(duration_ms))
        self.timeline.scale = self._make_scale()

    def set_viewport_width(self, width: int) -> None:
        self.viewport_width = max(1, int(width))
        self.timeline.scale = self._make_scale()

    def set_zoom(self, zoom: float) -> float:
        self.timeline.scale = self.timeline.scale.with_zoom(zoom)
        return self.timeline.scale.zoom

    def set_playback_position(self, position_ms: int) -> None:
        self.playback_position_ms = max(0, int(position_ms))

    def entry_at_playback(self) -> Optional[SubtitleEntry]:
        pos = self.playback_position_ms
        for entry in self.document.entries:
            if entry.start_time <= pos < entry.end_time:
                return entry
        return None

    def _make_scale(self, zoom: Optional[float] = None) -> TimelineScale:
        if zoom is None:
            zoom = self.timeline.scale.zoom
        return TimelineScale(
            duration_ms=self.media_duration_ms,
            viewport_width=self.viewport_width,
            zoom=zoom,
            px_per_second_base=self.settings.get("timeline.px_per_second_base", 70),
        )

    def _handle_seek(self, ms: int) -> None:
        self.playback_position_ms = ms
        if self._on_seek is not None:
            self._on_seek(ms)

    # ------------------------------------------------------------------
    # QC and fixes
    # ------------------------------------------------------------------

    def qc_results(self) -> dict[str, QcResult]:
        entries = self.document.entries
        results = evaluate_entries(entries, self.settings.qc_thresholds())
        return {e.id: r for e, r in zip(entries, results)}

    def detect_issues(self) -> list[SubtitleIssue]:
        options = self.settings.fix_options()
        return detect_all_errors(
            self.document.entries,
            self.settings.qc_thresholds(),
            options.duplicate_window_ms,
        )

    def fix_all(self) -> bool:
        """Run every fixer as one undoable step; no-op if nothing changes."""
        entries = self.document.entries
        fixed = fix_all_errors(entries, self.settings.fix_options())
        if _timing_key(fixed) == _timing_key(entries):
            logger.info("Fix all: nothing to change.")
            return False
        return self.document.replace_all_entries(fixed, "Fix all errors")

    def apply_fix(self, name: str) -> bool:
        entries = self.document.entries
        fixed = apply_fixer(name, entries, self.settings.fix_options())
        if _timing_key(fixed) == _timing_key(entries):
            return False
        return self.document.replace_all_entries(fixed, f"Fix {name.replace('_', ' ')}")
