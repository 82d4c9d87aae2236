"""HTTP server initialization and lifecycle management.

Provides the main run_server function and server configuration.
"""

from __future__ import annotations

from functools import partial
from http.server import ThreadingHTTPServer
from pathlib import Path
from typing import Any, Optional

from servo_server.utils.logging import log
from servo_server.core.state import ServerState
from servo_server.api.handler import ServoHandler


DEFAULT_PORT = 8081


def run_server(
    port: int = DEFAULT_PORT,
    config_dir: Optional[Path] = None,
    server_root: Optional[Path] = None
) -> None:
    """Start the HTTP server.

    Initializes all components and runs the server until interrupted.

    Args:
        port: The port to listen on (default: 8081).
        config_dir: Directory for configuration files (default: working directory).
        server_root: Directory for static files (default: bundled UI).
    """
    state = ServerState()
    state.initialize(config_dir=config_dir, server_root=server_root)

    # Start background processes
    state.start()

    handler_factory = partial(ServoHandler, state=state)

    # Start HTTP server
    try:
        with ThreadingHTTPServer(("0.0.0.0", port), handler_factory) as httpd:
            path, baud_rate = state.port_config()
            log(f"Serving Servo UI from {state.server_root} at http://localhost:{port}")
            log(f"Servo port: {path} at {baud_rate} baud")
            try:
                httpd.serve_forever()
            except KeyboardInterrupt:
                log("Shutting down...")
    finally:
        state.stop()


def create_test_server(
    port: int = 0,
    config_dir: Optional[Path] = None,
    server_root: Optional[Path] = None,
    **backends: Any
) -> tuple:
    """Create a test server instance without starting it.

    Useful for integration tests that need a real server. The WebSocket
    server is not started.

    Args:
        port: The port to listen on (0 = auto-assign).
        config_dir: Directory for configuration files.
        server_root: Directory for static files.
        **backends: handle_factory / enumerate_ports / environ overrides
            passed to ServerState.initialize().

    Returns:
        Tuple of (server, state, base_url).
    """
    state = ServerState()
    state.initialize(config_dir=config_dir, server_root=server_root, **backends)

    handler_factory = partial(ServoHandler, state=state)

    # Create server with auto-assigned port
    server = ThreadingHTTPServer(("localhost", port), handler_factory)

    base_url = f"http://{server.server_address[0]}:{server.server_address[1]}"

    return server, state, base_url
