"""Shared utilities."""

from servo_server.utils.logging import log, get_current_logging_level, set_logging_level

__all__ = ["log", "get_current_logging_level", "set_logging_level"]
