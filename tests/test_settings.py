"""Tests for the JSON settings manager."""
import sys
import os
import json

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from subtitle_workbench.config.defaults import DEFAULTS
from subtitle_workbench.config.settings import SettingsManager


def test_defaults_when_file_missing(tmp_path):
    settings = SettingsManager(str(tmp_path / "settings.json"))
    assert settings.get("qc.max_cps") == 21
    assert settings.get("timeline.zoom") == 1.5
    assert settings.get("nope.missing", "fallback") == "fallback"
    assert settings.get_all() == DEFAULTS


def test_set_persists_and_reloads(tmp_path):
    path = tmp_path / "nested" / "settings.json"
    settings = SettingsManager(str(path))
    settings.set("qc.max_cpl", 37)
    assert json.loads(path.read_text(encoding="utf-8"))["qc"]["max_cpl"] == 37
    reloaded = SettingsManager(str(path))
    assert reloaded.get("qc.max_cpl") == 37
    assert reloaded.get("qc.max_cps") == 21


def test_user_file_is_deep_merged(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"audio": {"peak_width": 800}}), encoding="utf-8")
    settings = SettingsManager(str(path))
    assert settings.get("audio.peak_width") == 800
    assert settings.get("audio.spectrogram_bands") == 28


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    assert SettingsManager(str(path)).get_all() == DEFAULTS


def test_reset(tmp_path):
    settings = SettingsManager(str(tmp_path / "settings.json"))
    settings.set("editor.row_height", 48)
    settings.reset()
    assert settings.get("editor.row_height") == 36


def test_typed_views(tmp_path):
    settings = SettingsManager(str(tmp_path / "settings.json"))
    settings.set("qc.min_gap_ms", 120)
    settings.set("fix.duplicate_window_ms", 800)
    thresholds = settings.qc_thresholds()
    assert thresholds.min_gap_ms == 120
    options = settings.fix_options()
    assert options.min_gap_ms == 120
    assert options.max_chars_per_line == 42
    assert options.duplicate_window_ms == 800


def test_invalid_thresholds_fall_back(tmp_path):
    settings = SettingsManager(str(tmp_path / "settings.json"))
    settings.set("qc.max_cps", -1)
    assert settings.qc_thresholds().max_cps == 21


def test_get_returns_copies(tmp_path):
    settings = SettingsManager(str(tmp_path / "settings.json"))
    audio = settings.get("audio")
    audio["peak_width"] = 1
    assert settings.get("audio.peak_width") == 1600
