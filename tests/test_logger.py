"""Tests for the loguru setup."""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from loguru import logger

from subtitle_workbench.utils.logger import get_log_dir, setup_logger


def test_file_sink_records_debug(tmp_path):
    target = setup_logger("WARNING", log_dir=str(tmp_path / "logs"))
    logger.debug("decoded 42 frames")
    logger.remove()

    assert target == tmp_path / "logs"
    files = list(target.glob("subtitle_workbench_*.log"))
    assert len(files) == 1
    text = files[0].read_text(encoding="utf-8")
    assert "decoded 42 frames" in text
    assert "DEBUG" in text


def test_default_log_dir_follows_xdg(tmp_path, monkeypatch):
    monkeypatch.setattr("platform.system", lambda: "Linux")
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
    assert get_log_dir() == tmp_path / "subtitle_workbench" / "logs"
