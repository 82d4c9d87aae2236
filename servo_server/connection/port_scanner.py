"""Serial port scanning and status probing.

Lists the COM ports the operating system reports and correlates them with
the port registry to answer "is the servo port there, and do we hold it?".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import serial.tools.list_ports

from servo_server.connection.errors import ProbeFailed
from servo_server.connection.port_registry import PortRegistry
from servo_server.utils.logging import log

PORT_NOT_FOUND = "port not found"


def _comports() -> List[Any]:
    try:
        return list(serial.tools.list_ports.comports())
    except Exception as e:
        raise ProbeFailed(f"Failed to enumerate serial ports: {e}", detail=str(e)) from e


def list_available_ports() -> List[Dict[str, Any]]:
    """List all available COM ports.

    Returns:
        A list of dictionaries containing port information:
        - path: The device path (e.g., "COM3" or "/dev/ttyUSB0")
        - friendlyName: Human-readable name
        - description: Port description
        - hwid: Hardware ID

    Raises:
        ProbeFailed: If the operating system enumeration call fails.
    """
    return [
        {
            "path": port_info.device,
            "friendlyName": f"{port_info.device} - {port_info.description}",
            "description": port_info.description,
            "hwid": port_info.hwid,
        }
        for port_info in _comports()
    ]


def enumerate_port_paths() -> List[str]:
    """Return the device paths of all enumerated serial ports.

    Raises:
        ProbeFailed: If the operating system enumeration call fails.
    """
    return [port_info.device for port_info in _comports()]


@dataclass(frozen=True)
class PortStatus:
    """Snapshot of a port's state at the moment it was probed.

    Attributes:
        available: The operating system lists the port.
        open: This process holds an open handle on it.
        in_use: Same as open; a closed port is never in use by us.
        error: Why the port is unavailable, if it is.
    """
    available: bool
    open: bool
    in_use: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON shape used by the API."""
        data: Dict[str, Any] = {
            "available": self.available,
            "open": self.open,
            "inUse": self.in_use,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


class StatusProber:
    """Computes a fresh PortStatus for a path.

    Read-only: never touches the registry beyond reading it, and takes no
    lock, so results may be stale by the time the caller acts on them.
    """

    def __init__(
        self,
        registry: PortRegistry,
        enumerate_ports: Callable[[], List[str]] = enumerate_port_paths
    ) -> None:
        """Initialize the prober.

        Args:
            registry: The registry holding the current handle.
            enumerate_ports: Callable returning the enumerated device paths.
        """
        self.registry = registry
        self.enumerate_ports = enumerate_ports

    def probe(self, path: str) -> PortStatus:
        """Probe the status of a port.

        Args:
            path: The port path to check.

        Returns:
            The tri-state status of the port.
        """
        try:
            paths = self.enumerate_ports()
        except ProbeFailed as e:
            log(f"[StatusProber] {e}", "WARNING")
            return PortStatus(available=False, open=False, in_use=False, error=e.detail or str(e))
        except Exception as e:
            log(f"[StatusProber] Error listing ports: {e}", "WARNING")
            return PortStatus(available=False, open=False, in_use=False, error=str(e))

        if path not in paths:
            return PortStatus(available=False, open=False, in_use=False, error=PORT_NOT_FOUND)

        handle = self.registry.get()
        if handle is not None and handle.path == path:
            is_open = handle.is_open
            return PortStatus(available=True, open=is_open, in_use=is_open)

        return PortStatus(available=True, open=False, in_use=False)
