"""Exceptions raised by the serial connection layer."""

from __future__ import annotations

from typing import Optional

# Substrings (lowercased) that pyserial and the OS use when a port is
# held by another process.
BUSY_MARKERS = (
    "access denied",
    "access is denied",
    "permission denied",
    "in use",
    "resource busy",
    "exclusively lock",
    "multiple access",
)


def is_busy_error(error: object) -> bool:
    """Check whether an error message carries access-denied/in-use semantics."""
    message = str(error).lower()
    return any(marker in message for marker in BUSY_MARKERS)


class SerialPortError(RuntimeError):
    """Common base exception for all serial port errors.

    Attributes:
        port: The port path the error relates to (may be None).
        detail: The underlying error message, if any.
    """

    def __init__(self, message: str, *, port: Optional[str] = None, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.port = port
        self.detail = detail


class PortUnavailable(SerialPortError):
    """The device is not enumerated by the operating system."""
    pass


class PortBusy(SerialPortError):
    """The port is claimed by another process or access was denied."""
    pass


class PortOpenFailed(SerialPortError):
    """Opening the port failed for any other reason."""
    pass


class PortNotOpen(SerialPortError):
    """A write was attempted on a handle that reports closed."""
    pass


class CommandWriteFailed(SerialPortError):
    """Writing or flushing a command failed.

    Attributes:
        command: The command that was being sent.
    """

    def __init__(self, message: str, *, command: str, port: Optional[str] = None, detail: Optional[str] = None) -> None:
        super().__init__(message, port=port, detail=detail)
        self.command = command


class ProbeFailed(SerialPortError):
    """Enumerating the system's serial devices failed."""
    pass
