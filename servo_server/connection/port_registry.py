"""Holder for the one serial handle the server may have open."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from servo_server.connection.serial_handle import SerialHandle


class PortRegistry:
    """Stores the currently registered serial handle.

    No validation and no locking: the connection manager is the only
    writer and serializes access itself. Readers (the status prober) see
    whatever was last stored.
    """

    def __init__(self) -> None:
        self._handle: Optional["SerialHandle"] = None

    def get(self) -> Optional["SerialHandle"]:
        return self._handle

    def set(self, handle: "SerialHandle") -> None:
        self._handle = handle

    def clear(self) -> None:
        self._handle = None

    @property
    def path(self) -> Optional[str]:
        """Path of the registered handle, or None if empty."""
        handle = self._handle
        return handle.path if handle is not None else None
