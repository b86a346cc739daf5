"""Logging setup: console plus a rotating relay.log file."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"


def setup_logger(log_dir: str | Path = "logs", level: str = "INFO", log_format: str = LOG_FORMAT):
    """Replace loguru's default sink with console and file sinks sharing one format.

    Relative ``log_dir`` paths resolve against the working directory.
    """
    path = Path(log_dir)
    path.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(sys.stdout, level=level, format=log_format, enqueue=True)
    logger.add(
        path / "relay.log",
        level=level,
        format=log_format,
        rotation="5 MB",
        retention=5,
        enqueue=True,
        encoding="utf-8",
    )
    logger.debug("Logging to {} at level {}", path / "relay.log", level)
    return logger
