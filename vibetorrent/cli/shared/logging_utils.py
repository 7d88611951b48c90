"""Loguru helpers for consistent logging in CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

LOG_DIR = Path.home() / ".vibetorrent" / "logs"

_SINK_IDS: dict[str, int] = {}
_console_sink_id: int | None = None


def ensure_rotating_log_file(name: str, level: str = "INFO") -> Path:
    """Add (once per name) a rotating file sink at ~/.vibetorrent/logs/<name>.log."""
    log_path = LOG_DIR / f"{name}.log"
    if name in _SINK_IDS:
        return log_path
    LOG_DIR.mkdir(parents=True, exist_ok=True)
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


def configure_console_logging(verbose: bool = False) -> None:
    """Replace loguru's default stderr sink; quiet unless ``verbose``."""
    global _console_sink_id
    if _console_sink_id is None:
        logger.remove()
    else:
        logger.remove(_console_sink_id)
    _console_sink_id = logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")
