"""Single-command writes to the servo microcontroller."""

from __future__ import annotations

from typing import Callable, Tuple

from servo_server.connection.errors import CommandWriteFailed, PortNotOpen
from servo_server.connection.serial_connection import ServoConnection
from servo_server.utils.logging import log


class CommandWriter:
    """Sends one command at a time over the managed connection.

    The port path and baud rate are fetched from ``port_config`` on every
    call, so configuration changes apply to the next command.
    """

    def __init__(self, connection: ServoConnection, port_config: Callable[[], Tuple[str, int]]) -> None:
        """Initialize the writer.

        Args:
            connection: The connection manager owning the port.
            port_config: Callable returning the current (path, baud_rate).
        """
        self.connection = connection
        self.port_config = port_config

    def send(self, command: str) -> None:
        """Send a command and wait until it has been transmitted.

        Args:
            command: ASCII command to send (e.g. "F").

        Raises:
            PortUnavailable, PortBusy, PortOpenFailed: If the port cannot be opened.
            PortNotOpen: If the handle reports closed right before writing.
            CommandWriteFailed: If the write or flush fails.
        """
        path, baud_rate = self.port_config()
        payload = command.encode("ascii")

        with self.connection.lock:
            self.connection.recover_stale(path)
            handle = self.connection.ensure_open(path, baud_rate)

            if not handle.is_open:
                raise PortNotOpen(f"Port {path} is not open", port=path)

            try:
                handle.write(payload)
                handle.flush()
            except Exception as e:
                log(f"[CommandWriter] Failed to write to serial port {path}: {e}", "ERROR")
                self.connection.recover_stale(path)
                raise CommandWriteFailed(
                    f"Failed to send command {command!r} to {path}: {e}",
                    command=command,
                    port=path,
                    detail=str(e)
                ) from e

        log(f"[CommandWriter] Sent: {command!r} to {path}")
