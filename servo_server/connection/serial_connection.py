"""Serial connection lifecycle for the servo controller.

Provides the ServoConnection class, the only component allowed to open,
close or register the serial handle.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

from servo_server.connection.errors import (
    PortBusy,
    PortOpenFailed,
    PortUnavailable,
    is_busy_error,
)
from servo_server.connection.port_registry import PortRegistry
from servo_server.connection.port_scanner import StatusProber
from servo_server.connection.serial_handle import HandleListener, SerialHandle
from servo_server.utils.logging import log

# Seconds between lock attempts from the reader thread
LOCK_POLL_INTERVAL = 0.05


class ServoConnection(HandleListener):
    """Manages the single serial connection to the servo microcontroller.

    Handles:
    - Opening the port on demand and reusing a live handle
    - Detecting stale handles (closed, unplugged, seized) and dropping them
    - Reacting to asynchronous error/close notifications from the handle
    - Serializing all of the above behind one re-entrant lock

    The lock is re-entrant because closing a handle under the lock fires
    its close notification on the same thread.
    """

    def __init__(
        self,
        registry: Optional[PortRegistry] = None,
        prober: Optional[StatusProber] = None,
        handle_factory: Callable[[str, int], SerialHandle] = SerialHandle,
        on_state_changed: Optional[Callable[[], None]] = None
    ) -> None:
        """Initialize the connection manager.

        Args:
            registry: Registry holding the current handle (default: a new one).
            prober: Status prober bound to the same registry.
            handle_factory: Builds a not-yet-open handle for (path, baud_rate).
            on_state_changed: Called after a handle is registered or dropped.
        """
        self.registry = registry if registry is not None else PortRegistry()
        self.prober = prober if prober is not None else StatusProber(self.registry)
        self.handle_factory = handle_factory
        self.on_state_changed = on_state_changed
        self.lock = threading.RLock()

    @property
    def port(self) -> Optional[str]:
        return self.registry.path

    def is_connected(self) -> bool:
        """Check if a registered handle reports open.

        Returns:
            True if connected and port is open, False otherwise.
        """
        handle = self.registry.get()
        return handle is not None and handle.is_open

    def recover_stale(self, path: str) -> None:
        """Drop the registered handle if it is no longer usable for path.

        A handle is stale when it belongs to another path, when the port is
        reported closed or missing, or when the empty-write liveness probe
        fails (another process holds the port).

        Args:
            path: The port path the caller is about to use.
        """
        with self.lock:
            handle = self.registry.get()
            if handle is None:
                return

            if handle.path != path:
                log(f"[ServoConnection] Port changed from {handle.path} to {path}, closing old port")
                self._close_locked()
                return

            status = self.prober.probe(path)
            if not status.open or not status.available:
                log(f"[ServoConnection] Port {path} is closed or unavailable, cleaning up...")
                self._close_locked()
                return

            try:
                handle.check_writable()
            except Exception as e:
                log(f"[ServoConnection] Port {path} appears to be in use by another process ({e}), closing...")
                self._close_locked()

    def ensure_open(self, path: str, baud_rate: int = 9600) -> SerialHandle:
        """Return a live handle for path, opening the port if needed.

        Args:
            path: The serial port to connect to (e.g., "COM6").
            baud_rate: The baud rate for communication (default: 9600).

        Returns:
            The open, registered handle.

        Raises:
            PortUnavailable: If the operating system does not list the port.
            PortBusy: If another process holds the port.
            PortOpenFailed: If opening failed for any other reason.
        """
        with self.lock:
            self.recover_stale(path)

            handle = self.registry.get()
            if handle is not None and handle.is_open:
                return handle

            status = self.prober.probe(path)
            if not status.available:
                detail = status.error or "port not found"
                raise PortUnavailable(f"Port {path} is not available: {detail}", port=path, detail=detail)

            if self.registry.get() is not None:
                self._close_locked()

            handle = self.handle_factory(path, baud_rate)
            handle.add_listener(self)
            try:
                handle.open()
            except Exception as e:
                self.registry.clear()
                log(f"[ServoConnection] Failed to open serial port {path}: {e}", "ERROR")
                if is_busy_error(e):
                    raise PortBusy(
                        f"Port {path} is in use by another application",
                        port=path,
                        detail=str(e)
                    ) from e
                raise PortOpenFailed(f"Failed to open port {path}: {e}", port=path, detail=str(e)) from e

            self.registry.set(handle)
            log(f"[ServoConnection] Serial port {path} opened at {baud_rate} baud")
            self._notify_state_changed()
            return handle

    def close(self) -> None:
        """Close the registered port, if any.

        Close failures are logged; the registry is cleared regardless.
        """
        with self.lock:
            self._close_locked()

    def on_handle_error(self, handle: SerialHandle, error: Exception) -> None:
        """React to an asynchronous error reported by a handle."""
        log(f"[ServoConnection] Serial port {handle.path} error: {error}", "ERROR")
        if not is_busy_error(error):
            return
        # Runs on the reader thread, which a lock holder may be joining in
        # handle.close(); stop waiting once that close has started.
        while not handle.closing:
            if not self.lock.acquire(timeout=LOCK_POLL_INTERVAL):
                continue
            try:
                if self.registry.get() is handle:
                    log(f"[ServoConnection] Port {handle.path} is in use, cleaning up...")
                    self._close_locked()
            finally:
                self.lock.release()
            return

    def on_handle_closed(self, handle: SerialHandle) -> None:
        """React to a handle reporting that it closed."""
        log(f"[ServoConnection] Serial port {handle.path} closed")
        with self.lock:
            if self.registry.get() is handle:
                self.registry.clear()
                self._notify_state_changed()

    def _close_locked(self) -> None:
        """Close and clear the registered handle. Caller holds the lock."""
        handle = self.registry.get()
        if handle is None:
            return
        try:
            if handle.is_open:
                handle.close()
        except Exception as e:
            log(f"[ServoConnection] Error closing serial port {handle.path}: {e}", "ERROR")
        finally:
            was_registered = self.registry.get() is not None
            self.registry.clear()
            if was_registered:
                self._notify_state_changed()

    def _notify_state_changed(self) -> None:
        if self.on_state_changed is None:
            return
        try:
            self.on_state_changed()
        except Exception as e:
            log(f"[ServoConnection] State change callback failed: {e}", "ERROR")
