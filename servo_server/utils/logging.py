"""Logging utilities for the server package.

Provides a centralized logging function with timestamp prefix and a
process-wide level filter.
"""

import sys
import threading
from datetime import datetime

LOG_LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
}

_level_lock = threading.Lock()
_current_level = "INFO"


def get_current_logging_level() -> str:
    """Get the name of the active logging level."""
    with _level_lock:
        return _current_level


def set_logging_level(level: str) -> None:
    """Set the active logging level.

    Args:
        level: One of DEBUG, INFO, WARNING, ERROR (case-insensitive).

    Raises:
        ValueError: If the level name is unknown.
    """
    global _current_level
    if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
        raise ValueError(f"Unknown logging level: {level!r}")
    with _level_lock:
        _current_level = level.upper()


def log(message: str, level: str = "INFO") -> None:
    """Print message with timestamp prefix.

    Messages below the active level are dropped.

    Args:
        message: The message to log.
        level: Severity of the message (default: INFO).
    """
    severity = LOG_LEVELS.get(level.upper(), LOG_LEVELS["INFO"])
    if severity < LOG_LEVELS[get_current_logging_level()]:
        return
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print(f"[{timestamp}] [{level.upper()}] {message}", file=sys.stdout, flush=True)
