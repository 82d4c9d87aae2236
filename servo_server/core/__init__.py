"""Core server modules."""

from servo_server.core.server import run_server
from servo_server.core.state import ServerState

__all__ = ["run_server", "ServerState"]
