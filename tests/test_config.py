"""Tests for the configuration management module."""

import json
import pytest
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from servo_server.config.defaults import DEFAULT_CONFIG, DEFAULT_INI_TEMPLATE
from servo_server.config.settings import SettingsManager


class TestDefaults:
    """Tests for default configuration values."""

    def test_default_config_has_port(self):
        """Default config should point at COM6 at 9600 baud."""
        assert DEFAULT_CONFIG["portPath"] == "COM6"
        assert DEFAULT_CONFIG["baudRate"] == 9600

    def test_default_ini_template_has_sections(self):
        """Default INI template should have expected sections."""
        assert "[Connection]" in DEFAULT_INI_TEMPLATE
        assert "[Server]" in DEFAULT_INI_TEMPLATE


class TestSettingsManager:
    """Tests for the SettingsManager class."""

    @pytest.fixture
    def settings_dir(self, tmp_path):
        """Create a temporary settings directory."""
        return tmp_path

    @pytest.fixture
    def environ(self):
        """An empty environment, so the host's variables do not leak in."""
        return {}

    @pytest.fixture
    def settings(self, settings_dir, environ):
        """Create a SettingsManager instance."""
        return SettingsManager(settings_dir, environ=environ)

    def test_creates_default_ini_if_missing(self, settings_dir, settings):
        """Should create default INI file if missing."""
        assert (settings_dir / "servo-config.ini").exists()

    def test_get_all_returns_defaults(self, settings):
        """get_all should return default values."""
        config = settings.get_all()
        assert config["baudRate"] == DEFAULT_CONFIG["baudRate"]
        assert config["portPath"] == DEFAULT_CONFIG["portPath"]

    def test_get_missing_with_default(self, settings):
        """get with missing key should return default."""
        assert settings.get("nonexistent", "default") == "default"

    def test_ini_keys_keep_case(self, settings_dir, environ):
        """camelCase INI keys should not be lowercased."""
        (settings_dir / "servo-config.ini").write_text("[Connection]\nportPath=/dev/ttyACM0\nbaudRate=115200\n")
        settings = SettingsManager(settings_dir, environ=environ)
        assert settings.get("portPath") == "/dev/ttyACM0"
        assert settings.get("baudRate") == 115200

    def test_update_saves_to_json(self, settings_dir, settings):
        """update should save changes to JSON file."""
        settings.update({"baudRate": 19200})

        with open(settings_dir / "web-settings.json") as f:
            saved = json.load(f)
        assert saved["baudRate"] == 19200

    def test_update_rejects_invalid_values(self, settings):
        with pytest.raises(ValueError):
            settings.update({"baudRate": "fast"})
        with pytest.raises(ValueError):
            settings.update({"portPath": ""})
        with pytest.raises(ValueError):
            settings.update({"loggingLevel": "LOUD"})
        assert settings.get("baudRate") == 9600

    def test_update_rejects_invalid_websocket_port(self, settings):
        for value in ("abc", 0, -8082, 70000, True):
            with pytest.raises(ValueError):
                settings.update({"websocketPort": value})
        assert settings.get("websocketPort") == 8082

        settings.update({"websocketPort": 9000})
        assert settings.get("websocketPort") == 9000

    def test_json_overrides_ini(self, settings_dir, environ):
        """JSON settings should override INI settings."""
        (settings_dir / "servo-config.ini").write_text("[Connection]\nbaudRate=9600\n")
        (settings_dir / "web-settings.json").write_text(json.dumps({"baudRate": 19200}))

        settings = SettingsManager(settings_dir, environ=environ)
        assert settings.get("baudRate") == 19200

    def test_reload_updates_cache(self, settings_dir, settings):
        """reload should update cache from files."""
        assert settings.get("baudRate") == 9600

        (settings_dir / "web-settings.json").write_text(json.dumps({"baudRate": 38400}))

        settings.reload()
        assert settings.get("baudRate") == 38400


class TestPortConfig:
    """Tests for SettingsManager.port_config."""

    def test_defaults(self, tmp_path):
        settings = SettingsManager(tmp_path, environ={})
        assert settings.port_config() == ("COM6", 9600)

    def test_environment_overrides_settings(self, tmp_path):
        environ = {"ARDUINO_PORT": "/dev/ttyUSB0", "ARDUINO_BAUD_RATE": "115200"}
        settings = SettingsManager(tmp_path, environ=environ)
        settings.update({"portPath": "COM3"})
        assert settings.port_config() == ("/dev/ttyUSB0", 115200)

    def test_environment_read_on_every_call(self, tmp_path):
        environ = {}
        settings = SettingsManager(tmp_path, environ=environ)
        assert settings.port_config()[0] == "COM6"

        environ["ARDUINO_PORT"] = "COM9"
        assert settings.port_config()[0] == "COM9"

    def test_settings_update_applies_immediately(self, tmp_path):
        settings = SettingsManager(tmp_path, environ={})
        settings.update({"portPath": "COM4", "baudRate": 57600})
        assert settings.port_config() == ("COM4", 57600)

    def test_invalid_environment_baud_is_ignored(self, tmp_path):
        settings = SettingsManager(tmp_path, environ={"ARDUINO_BAUD_RATE": "abc"})
        assert settings.port_config() == ("COM6", 9600)
