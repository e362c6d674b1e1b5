"""Audio decoding plus the peak envelope and band-energy grid drawn under the timeline."""

from __future__ import annotations

import os
import tempfile
import threading
from enum import Enum
from typing import Any, Callable, Mapping, Optional

import numpy as np
import soundfile as sf
from loguru import logger

from subtitle_workbench.models.datatypes import AudioAnalysis, AudioDecodeError, DecodedAudio

PEAK_WIDTH = 1600
SPECTROGRAM_FRAMES = 240
SPECTROGRAM_BANDS = 28
SPECTROGRAM_WINDOW = 96
SPECTROGRAM_FLOOR_HZ = 80.0
DECODE_SAMPLE_RATE = 16000


def decode_audio(path: str, sample_rate: int = DECODE_SAMPLE_RATE) -> DecodedAudio:
    """Decode *path* into a mono float32 buffer.

    Plain audio containers are read directly with soundfile. Anything else
    (video files, compressed formats libsndfile does not know) goes through
    an ffmpeg extraction to a temporary ``sample_rate`` mono WAV.
    """
    if not os.path.isfile(path):
        raise AudioDecodeError(f"Media file not found: {path}")

    try:
        data, sr = sf.read(path, dtype="float32", always_2d=True)
    except RuntimeError as e:
        logger.debug(f"soundfile cannot read '{path}' directly ({e}); using ffmpeg.")
        data, sr = _extract_with_ffmpeg(path, sample_rate)

    samples = data.mean(axis=1).astype(np.float32) if data.ndim == 2 else data.astype(np.float32)
    logger.info(f"Decoded {len(samples)} samples @ {sr} Hz from: {path}")
    return DecodedAudio(samples=samples, sample_rate=int(sr))


def _extract_with_ffmpeg(path: str, sample_rate: int) -> tuple[np.ndarray, int]:
    import ffmpeg

    with tempfile.TemporaryDirectory(prefix="subtitle_workbench_") as tmp_dir:
        wav_path = os.path.join(tmp_dir, "audio.wav")
        try:
            (
                ffmpeg.input(path)
                .output(
                    wav_path,
                    ar=sample_rate,
                    ac=1,
                    format="wav",
                    acodec="pcm_s16le",
                )
                .overwrite_output()
                .run(quiet=True)
            )
        except ffmpeg.Error as e:
            stderr = e.stderr.decode("utf-8", errors="replace") if e.stderr else ""
            logger.warning(f"ffmpeg extraction failed: {stderr.strip()}")
            raise AudioDecodeError(
                f"Failed to extract audio from '{path}'. "
                "Ensure ffmpeg is installed and the file is a valid media file."
            ) from e
        except FileNotFoundError as e:
            raise AudioDecodeError("ffmpeg executable not found on PATH.") from e

        try:
            return sf.read(wav_path, dtype="float32", always_2d=True)
        except RuntimeError as e:
            raise AudioDecodeError(f"Extracted audio for '{path}' is unreadable.") from e


def build_peaks(samples: np.ndarray, width: int = PEAK_WIDTH) -> np.ndarray:
    """Max absolute amplitude per pixel window; always exactly *width* values.

    The window is ``max(1, len(samples) // width)`` samples. When the buffer
    is shorter than *width* the trailing columns stay at zero.
    """
    if width <= 0:
        raise ValueError("width must be positive")
    peaks = np.zeros(width, dtype=np.float32)
    n = len(samples)
    if n == 0:
        return peaks

    step = max(1, n // width)
    count = min(width, n // step)
    windows = np.abs(np.asarray(samples[: count * step], dtype=np.float32)).reshape(count, step)
    peaks[:count] = windows.max(axis=1)
    return peaks


def band_frequencies(
    sample_rate: int,
    band_count: int = SPECTROGRAM_BANDS,
    floor_hz: float = SPECTROGRAM_FLOOR_HZ,
    scale: str = "linear",
) -> np.ndarray:
    """Centre frequency of each band between *floor_hz* and Nyquist."""
    nyquist = sample_rate / 2
    steps = np.arange(band_count, dtype=np.float64) / band_count
    if scale == "log":
        return floor_hz * (nyquist / floor_hz) ** steps
    if scale != "linear":
        raise ValueError(f"Unknown spectrogram scale '{scale}' (use 'linear' or 'log')")
    return floor_hz + (nyquist - floor_hz) * steps


def build_spectrogram(
    samples: np.ndarray,
    sample_rate: int,
    frame_count: int = SPECTROGRAM_FRAMES,
    band_count: int = SPECTROGRAM_BANDS,
    window_size: int = SPECTROGRAM_WINDOW,
    floor_hz: float = SPECTROGRAM_FLOOR_HZ,
    scale: str = "linear",
) -> np.ndarray:
    """Coarse ``(frame_count, band_count)`` energy grid in [0, 1].

    Each cell is the magnitude of a single DFT term at the band's centre
    frequency over ``window_size`` samples starting at the frame offset.
    Values are normalized per frame by ``max(frame max, 1.0)``.
    """
    grid = np.zeros((frame_count, band_count), dtype=np.float32)
    n = len(samples)
    if n == 0 or frame_count <= 0 or band_count <= 0:
        return grid

    samples = np.asarray(samples, dtype=np.float64)
    freqs = band_frequencies(sample_rate, band_count, floor_hz, scale)
    taps = np.arange(window_size, dtype=np.float64)
    # (band_count, window_size) complex basis, shared by every frame
    basis = np.exp(-2j * np.pi * np.outer(freqs, taps) / sample_rate)

    hop = max(1, n // frame_count)
    for frame in range(frame_count):
        offset = frame * hop
        segment = samples[offset:offset + window_size]
        if segment.size == 0:
            continue
        magnitudes = np.abs(basis[:, : segment.size] @ segment)
        grid[frame] = np.minimum(1.0, magnitudes / max(magnitudes.max(), 1.0))
    return grid


def resample_peaks(peaks: np.ndarray, width: int) -> np.ndarray:
    """Nearest-index pick of *peaks* into *width* columns."""
    if width <= 0 or len(peaks) == 0:
        return np.zeros(max(width, 0), dtype=np.float32)
    idx = np.minimum(
        (np.arange(width) * len(peaks) / width).astype(np.int64),
        len(peaks) - 1,
    )
    return np.asarray(peaks, dtype=np.float32)[idx]


def analyze_media(path: str, settings: Optional[Mapping[str, Any]] = None) -> AudioAnalysis:
    """Decode *path* and derive its peak envelope and spectrogram.

    *settings* is the ``audio`` config section; missing keys use the defaults.
    """
    settings = settings or {}
    decoded = decode_audio(path, settings.get("decode_sample_rate", DECODE_SAMPLE_RATE))
    peaks = build_peaks(decoded.samples, settings.get("peak_width", PEAK_WIDTH))
    spectrogram = build_spectrogram(
        decoded.samples,
        decoded.sample_rate,
        frame_count=settings.get("spectrogram_frames", SPECTROGRAM_FRAMES),
        band_count=settings.get("spectrogram_bands", SPECTROGRAM_BANDS),
        window_size=settings.get("spectrogram_window", SPECTROGRAM_WINDOW),
        floor_hz=settings.get("spectrogram_floor_hz", SPECTROGRAM_FLOOR_HZ),
        scale=settings.get("spectrogram_scale", "linear"),
    )
    logger.info(
        f"Audio analysis ready: {decoded.duration_ms} ms, "
        f"{len(peaks)} peaks, {spectrogram.shape[0]}x{spectrogram.shape[1]} grid"
    )
    return AudioAnalysis(
        media_path=path,
        sample_rate=decoded.sample_rate,
        duration_ms=decoded.duration_ms,
        peaks=peaks,
        spectrogram=spectrogram,
    )


class AnalysisState(Enum):
    IDLE = "idle"
    DECODING = "decoding"
    READY = "ready"
    UNAVAILABLE = "unavailable"


class AudioAnalysisSession:
    """Holds the analysis for the current media path.

    Every ``request`` bumps a generation counter and hands out the new value
    as a token. Results delivered with an older token belong to media that is
    no longer current and are dropped.

    ``on_ready`` is called with each accepted analysis, on whichever thread
    delivered it.
    """

    def __init__(self, settings: Optional[Mapping[str, Any]] = None) -> None:
        self._settings = dict(settings or {})
        self._lock = threading.Lock()
        self._generation = 0
        self.state = AnalysisState.IDLE
        self.media_path: Optional[str] = None
        self.analysis: Optional[AudioAnalysis] = None
        self.error: Optional[str] = None
        self.on_ready: Optional[Callable[[AudioAnalysis], None]] = None

    @property
    def settings(self) -> dict:
        return dict(self._settings)

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def request(self, path: Optional[str]) -> Optional[int]:
        """Start tracking *path*; returns a token, or None if nothing to do."""
        if not path:
            self.release()
            return None
        with self._lock:
            if path == self.media_path and self.state in (
                AnalysisState.DECODING,
                AnalysisState.READY,
            ):
                return None
            self._generation += 1
            self.media_path = path
            self.state = AnalysisState.DECODING
            self.analysis = None
            self.error = None
            logger.debug(f"Audio analysis requested for {path} (token {self._generation})")
            return self._generation

    def complete(self, token: int, analysis: AudioAnalysis) -> bool:
        with self._lock:
            if token != self._generation or self.state is not AnalysisState.DECODING:
                logger.debug(f"Dropping stale audio analysis (token {token})")
                return False
            self.analysis = analysis
            self.state = AnalysisState.READY
        if self.on_ready is not None:
            self.on_ready(analysis)
        return True

    def fail(self, token: int, error: Any) -> bool:
        with self._lock:
            if token != self._generation or self.state is not AnalysisState.DECODING:
                logger.debug(f"Dropping stale audio failure (token {token})")
                return False
            self.analysis = None
            self.error = str(error)
            self.state = AnalysisState.UNAVAILABLE
            logger.warning(f"Waveform unavailable for {self.media_path}: {error}")
            return True

    def release(self) -> None:
        """Drop buffers and invalidate any decode still in flight."""
        with self._lock:
            self._generation += 1
            self.state = AnalysisState.IDLE
            self.media_path = None
            self.analysis = None
            self.error = None

    def load_blocking(self, path: str) -> Optional[AudioAnalysis]:
        """Run the decode inline on the calling thread."""
        token = self.request(path)
        if token is None:
            return self.analysis
        try:
            result = analyze_media(path, self._settings)
        except AudioDecodeError as e:
            self.fail(token, e)
            return None
        except Exception as e:
            logger.exception(f"Audio analysis failed for {path}")
            self.fail(token, e)
            return None
        self.complete(token, result)
        return self.analysis
