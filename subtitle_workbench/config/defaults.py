"""Default configuration values for the subtitle workbench."""

DEFAULTS: dict = {
    "qc": {
        "max_cps": 21,
        "max_wpm": 190,
        "max_cpl": 42,
        "min_duration_ms": 700,
        "max_duration_ms": 7000,
        "min_gap_ms": 80,
    },
    "fix": {
        "duplicate_window_ms": 500,
    },
    "timeline": {
        "px_per_second_base": 70,
        "zoom": 1.5,
        "min_entry_duration_ms": 120,
        "handle_px": 6,
    },
    "audio": {
        "peak_width": 1600,
        "spectrogram_frames": 240,
        "spectrogram_bands": 28,
        "spectrogram_window": 96,
        "spectrogram_floor_hz": 80,
        "spectrogram_scale": "linear",  # "linear" or "log"
        "decode_sample_rate": 16000,  # only used when ffmpeg extracts the track
    },
    "editor": {
        "max_undo_history": 50,
        "row_height": 36,
        "overscan": 10,
    },
    "logging": {
        "level": "INFO",
        "dir": "",  # empty = platform log directory
        "rotation": "10 MB",
        "retention": "7 days",
    },
}

# Output formats offered by the converter (tag -> display name)
FORMATS: dict[str, str] = {
    "srt": "SubRip (.srt)",
    "vtt": "WebVTT (.vtt)",
    "ass": "Advanced SubStation Alpha (.ass)",
}
