"""Servo Control Server Package.

HTTP server that moves a hobby servo by sending single-character commands
to a microcontroller over a serial port.
"""

from servo_server.core.server import run_server
from servo_server.config.settings import SettingsManager
from servo_server.connection.serial_connection import ServoConnection
from servo_server.connection.command_writer import CommandWriter

__all__ = [
    "run_server",
    "SettingsManager",
    "ServoConnection",
    "CommandWriter",
]

__version__ = "1.0.0"
