"""Live serial handle with error/close notifications.

Wraps a pyserial ``Serial`` object that is created closed and opened
explicitly, so listeners can be attached before the first byte moves.
"""

from __future__ import annotations

import os
import threading
import time
from typing import Any, Callable, List, Optional

import serial

from servo_server.utils.logging import log


class HandleListener:
    """Receives notifications from a SerialHandle.

    Both callbacks may run on the handle's reader thread.
    """

    def on_handle_error(self, handle: "SerialHandle", error: Exception) -> None:
        pass

    def on_handle_closed(self, handle: "SerialHandle") -> None:
        pass


class SerialHandle:
    """An opened (or about to be opened) serial port.

    Handles:
    - Deferred open of the underlying pyserial port
    - Background reading of bytes the microcontroller sends back
    - Error notification when the device disappears or is seized
    - Close notification
    """

    def __init__(
        self,
        path: str,
        baud_rate: int = 9600,
        serial_factory: Optional[Callable[..., Any]] = None,
        write_timeout: float = 1.0,
        read_interval: float = 0.1
    ) -> None:
        """Create the handle without opening the port.

        Args:
            path: The serial port path (e.g., "COM6").
            baud_rate: The baud rate for communication (default: 9600).
            serial_factory: Callable building the pyserial object (default: serial.Serial).
            write_timeout: Seconds a write may block before failing.
            read_interval: Sleep between polls when no data is waiting.
        """
        self.path = path
        self.baud_rate = baud_rate
        self.read_interval = read_interval
        self._listeners: List[HandleListener] = []
        self._reading = False
        self._closing = False
        self._read_thread: Optional[threading.Thread] = None

        options = dict(
            port=None,
            baudrate=baud_rate,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            timeout=1.0,
            write_timeout=write_timeout,
        )
        if os.name == "posix":
            # Lets a second process fail fast with "Could not exclusively lock port"
            options["exclusive"] = True

        factory = serial_factory or serial.Serial
        self.serial = factory(**options)
        # Assigning the port on a closed Serial does not open it
        self.serial.port = path

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"<SerialHandle {self.path} @ {self.baud_rate} ({state})>"

    @property
    def is_open(self) -> bool:
        return self.serial is not None and bool(self.serial.is_open)

    @property
    def closing(self) -> bool:
        """True once close() has started."""
        return self._closing

    def add_listener(self, listener: HandleListener) -> None:
        """Register a listener for error and close notifications."""
        self._listeners.append(listener)

    def open(self) -> None:
        """Open the port and start the background reader.

        Raises:
            serial.SerialException: If the port cannot be opened.
        """
        self.serial.open()
        self._closing = False
        self._reading = True
        self._read_thread = threading.Thread(
            target=self._read_loop,
            name=f"serial-reader-{self.path}",
            daemon=True
        )
        self._read_thread.start()
        log(f"[SerialHandle] Opened {self.path} at {self.baud_rate} baud", "DEBUG")

    def write(self, data: bytes) -> int:
        return self.serial.write(data)

    def flush(self) -> None:
        """Block until all written data has left the transmit buffer."""
        self.serial.flush()

    def check_writable(self) -> None:
        """Best-effort liveness probe: an empty write.

        Raises whatever the driver raises when the port is no longer ours.
        Drivers may also accept the write on a seized port, so a pass is
        not proof of ownership.
        """
        self.serial.write(b"")

    def close(self) -> None:
        """Stop the reader, close the port and notify listeners.

        Raises:
            serial.SerialException: If the driver fails to close the port.
        """
        self._closing = True
        self._reading = False
        reader = self._read_thread
        if reader and reader.is_alive() and reader is not threading.current_thread():
            reader.join(timeout=2.0)
        self._read_thread = None

        if self.serial.is_open:
            self.serial.close()
        log(f"[SerialHandle] Closed {self.path}", "DEBUG")
        self._emit_closed()

    def _read_loop(self) -> None:
        """Background thread draining data sent by the microcontroller."""
        while self._reading and self.is_open:
            try:
                waiting = self.serial.in_waiting
                if waiting:
                    data = self.serial.read(waiting)
                    if data:
                        text = data.decode("ascii", errors="replace").strip()
                        log(f"[SerialHandle] {self.path} <- {text!r}", "DEBUG")
                else:
                    time.sleep(self.read_interval)
            except (serial.SerialException, OSError) as e:
                if not self._reading:
                    # Closed underneath us on purpose
                    break
                self._reading = False
                log(f"[SerialHandle] Read error on {self.path}: {e}", "WARNING")
                self._emit_error(e)
                break

    def _emit_error(self, error: Exception) -> None:
        for listener in list(self._listeners):
            try:
                listener.on_handle_error(self, error)
            except Exception as e:
                log(f"[SerialHandle] Error listener failed: {e}", "ERROR")

    def _emit_closed(self) -> None:
        for listener in list(self._listeners):
            try:
                listener.on_handle_closed(self)
            except Exception as e:
                log(f"[SerialHandle] Close listener failed: {e}", "ERROR")
