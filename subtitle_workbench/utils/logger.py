"""Loguru logging setup: a compact console sink plus a rotating file sink."""

from __future__ import annotations

import os
import platform
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <7}</level> | "
    "<cyan>{name}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name} | {name}:{function}:{line} | {message}"
LOG_FILE_PATTERN = "subtitle_workbench_{time:YYYY-MM-DD}.log"


def get_log_dir() -> Path:
    """Platform log directory used when settings leave ``logging.dir`` empty."""
    system = platform.system()
    if system == "Windows":
        base = os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local")
        return Path(base) / "subtitle_workbench" / "logs"
    elif system == "Darwin":
        return Path.home() / "Library" / "Logs" / "subtitle_workbench"
    data_home = os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share")
    return Path(data_home) / "subtitle_workbench" / "logs"


def setup_logger(
    log_level: str = "INFO",
    log_dir: Optional[str] = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> Path:
    """Replace loguru's default sink with ours. Returns the log file directory.

    The file sink always records DEBUG and includes the thread name, since
    audio decoding may run on a worker thread.
    """
    logger.remove()
    logger.add(sys.stderr, level=log_level.upper(), format=CONSOLE_FORMAT, colorize=True)

    target = Path(log_dir) if log_dir else get_log_dir()
    target.mkdir(parents=True, exist_ok=True)
    logger.add(
        str(target / LOG_FILE_PATTERN),
        level="DEBUG",
        format=FILE_FORMAT,
        rotation=rotation,
        retention=retention,
        encoding="utf-8",
    )
    logger.debug(f"Logging to {target} (console level {log_level.upper()})")
    return target
