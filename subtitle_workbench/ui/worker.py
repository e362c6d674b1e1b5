"""QThread worker that decodes media audio for the timeline in the background."""

from __future__ import annotations

from PyQt5.QtCore import QThread, pyqtSignal
from loguru import logger

from subtitle_workbench.core.audio_analysis import AudioAnalysisSession, analyze_media
from subtitle_workbench.models.datatypes import AudioDecodeError


class AudioAnalysisWorker(QThread):
    """Runs analyze_media() on a background thread.

    The result is handed to the owning AudioAnalysisSession together with the
    generation token it was started for, so a worker that finishes after the
    media changed cannot overwrite the newer state.

    Signals
    -------
    finished_ok(int)
        Emitted with the token when the analysis was accepted.
    finished_error(str)
        Emitted when decoding fails, with an error description.
    """

    finished_ok = pyqtSignal(int)
    finished_error = pyqtSignal(str)

    def __init__(self, session: AudioAnalysisSession, media_path: str, token: int) -> None:
        super().__init__()
        self._session = session
        self._media_path = media_path
        self._token = token

    @property
    def token(self) -> int:
        return self._token

    def run(self) -> None:
        """Entry point executed on the worker thread."""
        try:
            analysis = analyze_media(self._media_path, self._session.settings)
        except AudioDecodeError as e:
            if self._session.fail(self._token, e):
                self.finished_error.emit(str(e))
            return
        except Exception as e:
            logger.exception("Audio analysis worker encountered an error.")
            if self._session.fail(self._token, e):
                self.finished_error.emit(str(e))
            return

        if self._session.complete(self._token, analysis):
            self.finished_ok.emit(self._token)


def start_audio_worker(session: AudioAnalysisSession, media_path: str, token: int) -> AudioAnalysisWorker:
    """``EditorSession`` audio runner that decodes on a QThread.

    The returned worker must stay referenced until it finishes; the session
    holds it and waits for it on close.
    """
    worker = AudioAnalysisWorker(session, media_path, token)
    worker.start()
    return worker
