"""Settings manager for Servo Control.

Handles loading/saving configuration from INI and JSON files.
INI serves as factory defaults, JSON stores user overrides, and the
environment can override the serial port on every read.
"""

import json
import configparser
import os
import threading
from pathlib import Path
from typing import Dict, Any, Mapping, Optional, Tuple

from servo_server.utils.logging import log, LOG_LEVELS
from servo_server.config.defaults import (
    DEFAULT_CONFIG,
    DEFAULT_INI_TEMPLATE,
    ENV_BAUD_RATE,
    ENV_PORT_PATH,
)


def _parse_positive_int(value: Any) -> Optional[int]:
    """Parse a positive integer, returning None for anything else."""
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


class SettingsManager:
    """Manages application settings from INI and JSON files.

    Settings are loaded in order of priority (lowest to highest):
    1. DEFAULT_CONFIG (hardcoded defaults)
    2. INI file (base hardware config)
    3. JSON file (user overrides)

    The serial port path and baud rate are additionally overridden by the
    ARDUINO_PORT and ARDUINO_BAUD_RATE environment variables, read fresh
    on every call to port_config().
    """

    def __init__(self, config_dir: Path, environ: Optional[Mapping[str, str]] = None):
        """Initialize the settings manager.

        Args:
            config_dir: Directory containing configuration files.
            environ: Environment mapping to read overrides from (default: os.environ).
        """
        self.config_dir = Path(config_dir)
        self.ini_file = self.config_dir / "servo-config.ini"
        self.json_file = self.config_dir / "web-settings.json"
        self.environ = environ if environ is not None else os.environ
        self.lock = threading.Lock()
        self.cache: Dict[str, Any] = {}
        self._load()

    def _generate_default_ini(self) -> None:
        """Generate default INI file with all required values."""
        try:
            with open(self.ini_file, 'w', encoding='utf-8') as f:
                f.write(DEFAULT_INI_TEMPLATE)
            log(f"[Settings] Generated default INI: {self.ini_file}")
        except OSError as e:
            log(f"[Settings] Error generating default INI: {e}", "ERROR")

    def _parse_ini_value(self, value: str) -> Any:
        """Parse an INI value string to the appropriate Python type.

        Args:
            value: The string value from the INI file.

        Returns:
            The parsed value (bool, None, float, int, or string).
        """
        lower_value = value.lower()
        if lower_value == 'true':
            return True
        elif lower_value == 'false':
            return False
        elif lower_value == 'null':
            return None

        # Try numeric conversion
        try:
            if '.' in value:
                return float(value)
            else:
                return int(value)
        except ValueError:
            return value

    def _load(self) -> None:
        """Load all settings into cache."""
        with self.lock:
            # Start with defaults
            self.cache = DEFAULT_CONFIG.copy()

            # 1. Generate INI if missing
            if not self.ini_file.exists():
                log("[Settings] INI file not found, generating defaults...")
                self._generate_default_ini()

            # 2. Load INI (Base Hardware Config)
            ini_config = {}
            parser = configparser.ConfigParser()
            parser.optionxform = str  # keep camelCase keys
            try:
                parser.read(self.ini_file, encoding="utf-8")
                for section in parser.sections():
                    for key, value in parser.items(section):
                        ini_config[key] = self._parse_ini_value(value)
            except configparser.Error as e:
                log(f"[Settings] Error loading INI: {e}", "ERROR")

            # 3. Load JSON (Web/User Overrides)
            json_config = {}
            if self.json_file.exists():
                try:
                    with open(self.json_file, 'r', encoding='utf-8') as f:
                        json_config = json.load(f)
                except (OSError, json.JSONDecodeError) as e:
                    log(f"[Settings] Error loading JSON: {e}", "ERROR")

            # Merge: defaults -> INI -> JSON (JSON has highest priority)
            self.cache.update(ini_config)
            if isinstance(json_config, dict):
                self.cache.update(json_config)

    def get_all(self) -> Dict[str, Any]:
        """Get all settings as a dictionary.

        Returns:
            A copy of all current settings.
        """
        with self.lock:
            return self.cache.copy()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a specific setting value.

        Args:
            key: The setting key to retrieve.
            default: Default value if key not found.

        Returns:
            The setting value or default.
        """
        with self.lock:
            return self.cache.get(key, default)

    def validate(self, new_settings: Dict[str, Any]) -> None:
        """Check the known keys of a settings update.

        Args:
            new_settings: Dictionary of settings to validate.

        Raises:
            ValueError: If a known key carries an invalid value.
        """
        if "portPath" in new_settings:
            port_path = new_settings["portPath"]
            if not isinstance(port_path, str) or not port_path.strip():
                raise ValueError("portPath must be a non-empty string")
        if "baudRate" in new_settings and _parse_positive_int(new_settings["baudRate"]) is None:
            raise ValueError("baudRate must be a positive integer")
        if "websocketPort" in new_settings:
            ws_port = _parse_positive_int(new_settings["websocketPort"])
            if ws_port is None or ws_port > 65535:
                raise ValueError("websocketPort must be a positive integer no greater than 65535")
        if "loggingLevel" in new_settings:
            level = new_settings["loggingLevel"]
            if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
                raise ValueError(f"loggingLevel must be one of: {', '.join(LOG_LEVELS)}")

    def update(self, new_settings: Dict[str, Any]) -> None:
        """Update settings and save to JSON.

        Args:
            new_settings: Dictionary of settings to update.

        Raises:
            ValueError: If a known key carries an invalid value.
        """
        self.validate(new_settings)
        with self.lock:
            self.cache.update(new_settings)

            # Save to JSON for persistence
            try:
                with open(self.json_file, 'w', encoding='utf-8') as f:
                    json.dump(self.cache, f, indent=2)
            except OSError as e:
                log(f"[Settings] Error saving JSON: {e}", "ERROR")

    def reload(self) -> None:
        """Reload settings from files."""
        self._load()

    def port_config(self) -> Tuple[str, int]:
        """Get the serial port path and baud rate to use right now.

        Environment overrides are read on every call. An invalid baud rate
        in the environment is logged and ignored.

        Returns:
            Tuple of (port path, baud rate).
        """
        with self.lock:
            path = self.cache.get("portPath") or DEFAULT_CONFIG["portPath"]
            baud_rate = _parse_positive_int(self.cache.get("baudRate")) or DEFAULT_CONFIG["baudRate"]

        env_path = self.environ.get(ENV_PORT_PATH)
        if env_path:
            path = env_path

        env_baud = self.environ.get(ENV_BAUD_RATE)
        if env_baud:
            parsed = _parse_positive_int(env_baud)
            if parsed is None:
                log(f"[Settings] Ignoring invalid {ENV_BAUD_RATE}={env_baud!r}", "WARNING")
            else:
                baud_rate = parsed

        return str(path), baud_rate
