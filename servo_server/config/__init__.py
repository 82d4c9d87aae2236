"""Configuration management modules."""

from servo_server.config.settings import SettingsManager
from servo_server.config.defaults import DEFAULT_CONFIG, DEFAULT_INI_TEMPLATE

__all__ = ["SettingsManager", "DEFAULT_CONFIG", "DEFAULT_INI_TEMPLATE"]
