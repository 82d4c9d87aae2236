"""Server state shared by all request handlers.

One ServerState is built per server and handed to every handler; there is
no module-level instance.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Mapping, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from servo_server.api.websocket import WebSocketManager
    from servo_server.config.settings import SettingsManager
    from servo_server.connection.command_writer import CommandWriter
    from servo_server.connection.port_registry import PortRegistry
    from servo_server.connection.port_scanner import PortStatus, StatusProber
    from servo_server.connection.serial_connection import ServoConnection
    from servo_server.connection.serial_handle import SerialHandle

PACKAGE_DIR = Path(__file__).resolve().parent.parent


class ServerState:
    """Holds all server components.

    Centralizes access to:
    - Settings manager
    - Port registry, status prober and connection manager
    - Command writer
    - WebSocket manager
    """

    def __init__(self) -> None:
        """Create an empty state; call initialize() before use."""
        # Configuration
        self.config_dir: Path = Path.cwd()
        self.server_root: Path = PACKAGE_DIR / "static"

        # Components (initialized by initialize())
        self.settings: Optional["SettingsManager"] = None
        self.registry: Optional["PortRegistry"] = None
        self.prober: Optional["StatusProber"] = None
        self.connection: Optional["ServoConnection"] = None
        self.writer: Optional["CommandWriter"] = None
        self.websocket_manager: Optional["WebSocketManager"] = None

    def initialize(
        self,
        config_dir: Optional[Path] = None,
        server_root: Optional[Path] = None,
        handle_factory: Optional[Callable[[str, int], "SerialHandle"]] = None,
        enumerate_ports: Optional[Callable[[], List[str]]] = None,
        environ: Optional[Mapping[str, str]] = None
    ) -> None:
        """Initialize all server components.

        Args:
            config_dir: Directory for configuration files.
            server_root: Directory for static file serving.
            handle_factory: Builds serial handles (default: SerialHandle).
            enumerate_ports: Lists serial device paths (default: pyserial).
            environ: Environment for port overrides (default: os.environ).
        """
        # Import here to avoid circular imports
        from servo_server.api.websocket import WebSocketManager
        from servo_server.config.settings import SettingsManager
        from servo_server.connection.command_writer import CommandWriter
        from servo_server.connection.port_registry import PortRegistry
        from servo_server.connection.port_scanner import StatusProber, enumerate_port_paths
        from servo_server.connection.serial_connection import ServoConnection
        from servo_server.connection.serial_handle import SerialHandle
        from servo_server.utils.logging import log, set_logging_level

        if config_dir:
            self.config_dir = Path(config_dir)
        if server_root:
            self.server_root = Path(server_root)

        # Initialize settings
        self.settings = SettingsManager(self.config_dir, environ=environ)
        try:
            set_logging_level(self.settings.get("loggingLevel", "INFO"))
        except ValueError as e:
            log(f"[ServerState] {e}, keeping current level", "WARNING")

        # Initialize serial components
        self.registry = PortRegistry()
        self.prober = StatusProber(self.registry, enumerate_ports or enumerate_port_paths)
        self.connection = ServoConnection(
            registry=self.registry,
            prober=self.prober,
            handle_factory=handle_factory or SerialHandle,
            on_state_changed=self.broadcast_port_state
        )
        self.writer = CommandWriter(self.connection, self.port_config)

        self.websocket_manager = WebSocketManager(self)

    def port_config(self) -> Tuple[str, int]:
        """Get the (port path, baud rate) to use for the next operation."""
        return self.settings.port_config()

    def probe_status(self) -> Tuple[str, "PortStatus"]:
        """Probe the configured port.

        Returns:
            Tuple of (port path, fresh status).
        """
        path, _ = self.port_config()
        return path, self.prober.probe(path)

    def port_state_data(self) -> dict:
        """Get the configured port's status as a JSON-ready dict."""
        path, status = self.probe_status()
        return {"port": path, **status.to_dict()}

    def broadcast_port_state(self) -> None:
        """Push the current port state to all WebSocket clients."""
        if self.websocket_manager and self.websocket_manager.is_running():
            self.websocket_manager.broadcast_port_state(self.port_state_data())

    def start(self, websocket_port: Optional[int] = None) -> None:
        """Start all background processes.

        Args:
            websocket_port: Port for the WebSocket server (default: from settings).
        """
        if self.websocket_manager:
            port = websocket_port if websocket_port is not None else int(self.settings.get("websocketPort", 8082))
            self.websocket_manager.start(port=port)

    def stop(self) -> None:
        """Stop all background processes and cleanup."""
        if self.websocket_manager:
            self.websocket_manager.stop()
        if self.connection:
            self.connection.close()

    def reset(self) -> None:
        """Reset state for testing purposes."""
        self.stop()
        self.settings = None
        self.registry = None
        self.prober = None
        self.connection = None
        self.writer = None
        self.websocket_manager = None
