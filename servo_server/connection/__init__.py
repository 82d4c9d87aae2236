"""Serial connection management modules."""

from servo_server.connection.command_writer import CommandWriter
from servo_server.connection.errors import (
    SerialPortError,
    PortUnavailable,
    PortBusy,
    PortOpenFailed,
    PortNotOpen,
    CommandWriteFailed,
    ProbeFailed,
)
from servo_server.connection.port_registry import PortRegistry
from servo_server.connection.port_scanner import PortStatus, StatusProber, list_available_ports
from servo_server.connection.serial_connection import ServoConnection
from servo_server.connection.serial_handle import SerialHandle

__all__ = [
    "CommandWriter",
    "SerialPortError",
    "PortUnavailable",
    "PortBusy",
    "PortOpenFailed",
    "PortNotOpen",
    "CommandWriteFailed",
    "ProbeFailed",
    "PortRegistry",
    "PortStatus",
    "StatusProber",
    "list_available_ports",
    "ServoConnection",
    "SerialHandle",
]
