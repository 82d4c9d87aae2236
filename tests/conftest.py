"""Pytest configuration: path setup and a fake serial backend.

The fake backend stands in for pyserial's Serial class and port
enumeration so the connection logic runs without hardware.
"""

import sys
import threading
import time
from pathlib import Path
from typing import List, Optional

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from servo_server.connection.serial_handle import SerialHandle
from servo_server.utils.logging import set_logging_level


class FakeSerial:
    """Minimal stand-in for serial.Serial."""

    def __init__(self, backend: "FakeSerialBackend", **options) -> None:
        self.backend = backend
        self.options = options
        self.port = options.get("port")
        self.is_open = False
        self.written: List[bytes] = []
        self.flush_count = 0

    @property
    def in_waiting(self) -> int:
        if self.backend.read_error is not None and self.is_open:
            error, self.backend.read_error = self.backend.read_error, None
            raise error
        return 0

    def read(self, size: int = 1) -> bytes:
        return b""

    def open(self) -> None:
        with self.backend.lock:
            self.backend.open_calls += 1
        if self.backend.open_delay:
            time.sleep(self.backend.open_delay)
        if self.backend.open_error is not None:
            raise self.backend.open_error
        self.is_open = True

    def close(self) -> None:
        self.backend.close_calls += 1
        if self.backend.close_error is not None:
            raise self.backend.close_error
        self.is_open = False

    def write(self, data: bytes) -> int:
        if not data:
            if self.backend.liveness_error is not None:
                raise self.backend.liveness_error
            return 0
        if self.backend.write_error is not None:
            raise self.backend.write_error
        self.written.append(data)
        self.backend.writes.append(data)
        return len(data)

    def flush(self) -> None:
        if self.backend.flush_error is not None:
            raise self.backend.flush_error
        self.flush_count += 1


class FakeSerialBackend:
    """Controls what the fake ports enumerate, open and write."""

    def __init__(self, ports=("COM6",)) -> None:
        self.ports = list(ports)
        self.lock = threading.Lock()
        self.serials: List[FakeSerial] = []
        self.writes: List[bytes] = []
        self.open_calls = 0
        self.close_calls = 0
        self.open_delay = 0.0
        self.enumerate_error: Optional[Exception] = None
        self.open_error: Optional[Exception] = None
        self.close_error: Optional[Exception] = None
        self.write_error: Optional[Exception] = None
        self.flush_error: Optional[Exception] = None
        self.liveness_error: Optional[Exception] = None
        self.read_error: Optional[Exception] = None

    def enumerate_ports(self) -> List[str]:
        if self.enumerate_error is not None:
            raise self.enumerate_error
        return list(self.ports)

    def make_serial(self, **options) -> FakeSerial:
        fake = FakeSerial(self, **options)
        self.serials.append(fake)
        return fake

    def handle_factory(self, path: str, baud_rate: int) -> SerialHandle:
        return SerialHandle(path, baud_rate, serial_factory=self.make_serial, read_interval=0.01)


def wait_for(predicate, timeout: float = 2.0) -> bool:
    """Poll predicate until it is true or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def backend():
    """A fake serial backend listing COM6."""
    return FakeSerialBackend()


@pytest.fixture(autouse=True)
def reset_logging_level():
    """Keep the process-wide logging level from leaking between tests."""
    yield
    set_logging_level("INFO")


@pytest.fixture
def wait():
    """Helper polling a predicate until it holds (for background threads)."""
    return wait_for
