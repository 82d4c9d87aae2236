"""HTTP request handler for the servo interface.

Provides the ServoHandler class that serves static files and API endpoints.
"""

from __future__ import annotations

from http import HTTPStatus
from http.server import SimpleHTTPRequestHandler
from typing import Any, TYPE_CHECKING
from urllib.parse import urlparse

from servo_server.api.middleware import send_json, send_cors_headers
from servo_server.api import routes

if TYPE_CHECKING:
    from servo_server.core.state import ServerState


class ServoHandler(SimpleHTTPRequestHandler):
    """HTTP handler for serving static files and the REST API.

    Serves static files from the configured directory and routes
    API requests to the appropriate handlers.
    """

    server_version = "ServoHTTP/1.0"

    GET_ROUTES = {
        "/api/settings": routes.handle_get_settings,
        "/api/servo/ports": routes.handle_get_ports,
        "/api/servo/status": routes.handle_get_status,
    }

    POST_ROUTES = {
        "/api/settings": routes.handle_post_settings,
        "/api/servo/connect": routes.handle_connect,
        "/api/servo/disconnect": routes.handle_disconnect,
        "/api/servo/command": routes.handle_command,
        "/api/servo": routes.handle_command,
    }

    def __init__(
        self,
        *args: Any,
        state: "ServerState",
        directory: str | None = None,
        **kwargs: Any
    ) -> None:
        """Initialize the handler.

        Args:
            state: The server state shared by all handlers.
            directory: The directory to serve static files from.
        """
        # Must be set before super().__init__, which handles the request
        self.state = state
        if directory is None:
            directory = str(state.server_root)
        super().__init__(*args, directory=directory, **kwargs)

    # --- HTTP Method Handlers ---

    def do_OPTIONS(self) -> None:
        """Handle OPTIONS requests for CORS preflight."""
        send_cors_headers(self)

    def do_GET(self) -> None:
        """Handle GET requests."""
        path = urlparse(self.path).path.rstrip("/") or "/"

        route = self.GET_ROUTES.get(path)
        if route:
            route(self, self.state)
            return

        if path.startswith("/api/"):
            send_json(self, {"success": False, "error": "Not Found"}, HTTPStatus.NOT_FOUND)
            return

        # Static file serving
        super().do_GET()

    def do_POST(self) -> None:
        """Handle POST requests."""
        path = urlparse(self.path).path.rstrip("/")

        route = self.POST_ROUTES.get(path)
        if route:
            route(self, self.state)
            return

        send_json(self, {"success": False, "error": "Not Found"}, HTTPStatus.NOT_FOUND)

    def log_message(self, format: str, *args: Any) -> None:
        """Override to suppress logging for status polls.

        Args:
            format: Log message format string.
            args: Format arguments.
        """
        # Filter out status poll logs to keep console clean
        if args and isinstance(args[0], str) and "GET /api/servo/status" in args[0]:
            return

        super().log_message(format, *args)
