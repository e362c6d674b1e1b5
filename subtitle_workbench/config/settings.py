"""Settings manager: JSON-based configuration with auto-save/load."""

from __future__ import annotations

import copy
import json
import os
import platform
import threading
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from subtitle_workbench.config.defaults import DEFAULTS
from subtitle_workbench.core.fixes import FixOptions
from subtitle_workbench.models.datatypes import QcThresholds


def _get_config_dir() -> Path:
    """Return the platform-appropriate configuration directory."""
    system = platform.system()
    if system == "Windows":
        base = os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming")
        return Path(base) / "subtitle_workbench"
    elif system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "subtitle_workbench"
    else:
        xdg = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
        return Path(xdg) / "subtitle_workbench"


class SettingsManager:
    """Thread-safe JSON-based settings manager with dot-notation access."""

    def __init__(self, config_path: Optional[str] = None) -> None:
        if config_path:
            self._path = Path(config_path)
        else:
            self._path = _get_config_dir() / "settings.json"
        self._lock = threading.Lock()
        self._data: dict = {}
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict:
        """Load settings from disk, merging with defaults."""
        with self._lock:
            self._data = copy.deepcopy(DEFAULTS)
            if self._path.exists():
                try:
                    with open(self._path, "r", encoding="utf-8") as f:
                        user_data = json.load(f)
                    if isinstance(user_data, dict):
                        self._deep_merge(self._data, user_data)
                except (json.JSONDecodeError, OSError) as e:
                    logger.warning(f"Ignoring unreadable settings file {self._path}: {e}")
            return copy.deepcopy(self._data)

    def save(self) -> None:
        """Persist current settings to disk."""
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, ensure_ascii=False)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get a value using dot-notation path, e.g. 'qc.max_cps'."""
        with self._lock:
            keys = key_path.split(".")
            node = self._data
            for key in keys:
                if isinstance(node, dict) and key in node:
                    node = node[key]
                else:
                    return default
            return copy.deepcopy(node)

    def set(self, key_path: str, value: Any) -> None:
        """Set a value using dot-notation path, then auto-save."""
        with self._lock:
            keys = key_path.split(".")
            node = self._data
            for key in keys[:-1]:
                if key not in node or not isinstance(node[key], dict):
                    node[key] = {}
                node = node[key]
            node[keys[-1]] = value
        self.save()

    def get_all(self) -> dict:
        """Return a deep copy of all settings."""
        with self._lock:
            return copy.deepcopy(self._data)

    def reset(self) -> None:
        """Reset all settings to defaults and save."""
        with self._lock:
            self._data = copy.deepcopy(DEFAULTS)
        self.save()

    # ------------------------------------------------------------------
    # Typed views
    # ------------------------------------------------------------------

    def qc_thresholds(self) -> QcThresholds:
        """QC thresholds from the ``qc`` section; invalid values fall back to defaults."""
        try:
            return QcThresholds.from_dict(self.get("qc", {}))
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid QC thresholds in settings ({e}); using defaults.")
            return QcThresholds.from_dict(DEFAULTS["qc"])

    def fix_options(self) -> FixOptions:
        """Fixer parameters derived from the QC thresholds and ``fix`` section."""
        return FixOptions.from_thresholds(
            self.qc_thresholds(),
            duplicate_window_ms=int(self.get("fix.duplicate_window_ms", 500)),
        )

    @staticmethod
    def _deep_merge(base: dict, override: dict) -> None:
        """Recursively merge override into base (in-place)."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                SettingsManager._deep_merge(base[key], value)
            else:
                base[key] = value
