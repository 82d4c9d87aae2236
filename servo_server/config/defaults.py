"""Default configuration values.

DEFAULT_CONFIG is the lowest-priority layer; DEFAULT_INI_TEMPLATE is
written out when no INI file exists yet.
"""

from typing import Any, Dict

DEFAULT_CONFIG: Dict[str, Any] = {
    "portPath": "COM6",
    "baudRate": 9600,
    "loggingLevel": "INFO",
    "websocketPort": 8082,
}

# Environment variables that override the stored connection settings
ENV_PORT_PATH = "ARDUINO_PORT"
ENV_BAUD_RATE = "ARDUINO_BAUD_RATE"

DEFAULT_INI_TEMPLATE = """\
; Servo Control - hardware configuration
; Values set through the web UI are stored in web-settings.json and win over this file.
; ARDUINO_PORT / ARDUINO_BAUD_RATE in the environment win over both.

[Connection]
portPath = COM6
baudRate = 9600

[Server]
loggingLevel = INFO
websocketPort = 8082
"""
