"""Loguru helpers for file logging in CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from milobanana.config.schema import LoggingConfig

_SINK_IDS: dict[str, int] = {}


def default_log_dir() -> Path:
    return Path.home() / ".milobanana" / "logs"


def configure_console(level: str = "INFO") -> None:
    """Replace loguru's default stderr sink with one at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level, backtrace=False, diagnose=False)


def ensure_rotating_log_file(name: str, logging_config: LoggingConfig | None = None, level: str = "INFO") -> Path:
    """Ensure a rotating log sink for the given command name; returns the log path."""
    configured = (logging_config.file if logging_config else "").strip()
    log_path = Path(configured).expanduser() if configured else default_log_dir() / f"{name}.log"
    if name in _SINK_IDS:
        return log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)
    _SINK_IDS[name] = logger.add(
        str(log_path),
        level=level,
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        encoding="utf-8",
        backtrace=False,
        diagnose=False,
    )
    return log_path
