"""API route handlers for the servo interface.

Contains all route handler functions for the REST API endpoints.
"""

from http import HTTPStatus
from http.server import BaseHTTPRequestHandler
from typing import TYPE_CHECKING

from servo_server.api.middleware import send_json, read_json_body
from servo_server.connection.errors import ProbeFailed, SerialPortError
from servo_server.connection.port_scanner import list_available_ports
from servo_server.control.servo_commands import command_for
from servo_server.utils.logging import log, get_current_logging_level, set_logging_level

if TYPE_CHECKING:
    from servo_server.core.state import ServerState


# --- Settings Routes ---

def handle_get_settings(handler: BaseHTTPRequestHandler, state: "ServerState") -> None:
    """Handle GET /api/settings - Get all configuration.

    Args:
        handler: The HTTP request handler instance.
        state: The server state.
    """
    settings = state.settings.get_all()
    settings["loggingLevel"] = get_current_logging_level()
    send_json(handler, settings)


def handle_post_settings(handler: BaseHTTPRequestHandler, state: "ServerState") -> None:
    """Handle POST /api/settings - Update configuration.

    Args:
        handler: The HTTP request handler instance.
        state: The server state.
    """
    payload = read_json_body(handler)
    try:
        state.settings.update(payload)
    except ValueError as e:
        send_json(handler, {"success": False, "error": str(e)}, HTTPStatus.BAD_REQUEST)
        return

    if "loggingLevel" in payload:
        set_logging_level(payload["loggingLevel"])

    # The configured port may have changed
    state.broadcast_port_state()

    send_json(handler, {"success": True, "settings": state.settings.get_all()})


# --- Port Routes ---

def handle_get_ports(handler: BaseHTTPRequestHandler, state: "ServerState") -> None:
    """Handle GET /api/servo/ports - List available COM ports.

    Args:
        handler: The HTTP request handler instance.
        state: The server state.
    """
    try:
        ports = list_available_ports()
    except ProbeFailed as e:
        log(f"[Routes] {e}", "ERROR")
        send_json(handler, {"success": False, "error": str(e)}, HTTPStatus.INTERNAL_SERVER_ERROR)
        return
    send_json(handler, {"success": True, "ports": ports})


# --- Status Routes ---

def handle_get_status(handler: BaseHTTPRequestHandler, state: "ServerState") -> None:
    """Handle GET /api/servo/status - Get current port status.

    Args:
        handler: The HTTP request handler instance.
        state: The server state.
    """
    try:
        path, status = state.probe_status()
    except Exception as e:
        log(f"[Routes] Error in handle_get_status: {e}", "ERROR")
        send_json(
            handler,
            {"success": False, "error": f"Failed to check port status: {e}"},
            HTTPStatus.INTERNAL_SERVER_ERROR
        )
        return

    send_json(handler, {"success": True, "port": path, **status.to_dict()})


# --- Connection Routes ---

def handle_connect(handler: BaseHTTPRequestHandler, state: "ServerState") -> None:
    """Handle POST /api/servo/connect - Open the configured port.

    Args:
        handler: The HTTP request handler instance.
        state: The server state.
    """
    path, baud_rate = state.port_config()
    try:
        previous = state.registry.get()
        handle = state.connection.ensure_open(path, baud_rate)
    except SerialPortError as e:
        log(f"[Routes] Error connecting to port: {e}", "WARNING")
        send_json(handler, {"success": False, "error": str(e), "port": path}, HTTPStatus.INTERNAL_SERVER_ERROR)
        return
    except Exception as e:
        log(f"[Routes] Error connecting to port: {e}", "ERROR")
        send_json(
            handler,
            {"success": False, "error": f"Failed to connect: {e}", "port": path},
            HTTPStatus.INTERNAL_SERVER_ERROR
        )
        return

    if not handle.is_open:
        send_json(
            handler,
            {"success": False, "error": f"Failed to open port {path}", "port": path},
            HTTPStatus.INTERNAL_SERVER_ERROR
        )
        return

    if handle is previous:
        message = f"Port {path} is already open"
    else:
        message = f"Port {path} opened successfully"
    send_json(handler, {"success": True, "message": message, "port": path})


def handle_disconnect(handler: BaseHTTPRequestHandler, state: "ServerState") -> None:
    """Handle POST /api/servo/disconnect - Close the port.

    Args:
        handler: The HTTP request handler instance.
        state: The server state.
    """
    try:
        path, status = state.probe_status()
        # Also drops a registered handle the probe no longer sees as open
        state.connection.close()
    except Exception as e:
        log(f"[Routes] Error disconnecting port: {e}", "ERROR")
        send_json(
            handler,
            {"success": False, "error": f"Failed to disconnect: {e}"},
            HTTPStatus.INTERNAL_SERVER_ERROR
        )
        return

    if not status.open:
        send_json(handler, {
            "success": True,
            "message": f"Port {path} is already closed",
            "port": path,
            "wasOpen": False
        })
        return

    send_json(handler, {
        "success": True,
        "message": f"Port {path} disconnected successfully",
        "port": path,
        "wasOpen": True
    })


# --- Control Routes ---

def handle_command(handler: BaseHTTPRequestHandler, state: "ServerState") -> None:
    """Handle POST /api/servo/command - Move the servo.

    Args:
        handler: The HTTP request handler instance.
        state: The server state.
    """
    payload = read_json_body(handler)
    direction = payload.get("direction")
    command = command_for(direction)

    if command is None:
        send_json(handler, {"success": False, "error": "Invalid direction"}, HTTPStatus.BAD_REQUEST)
        return

    try:
        state.writer.send(command)
    except SerialPortError as e:
        log(f"[Routes] Error controlling servo: {e}", "WARNING")
        send_json(handler, {"success": False, "error": str(e)}, HTTPStatus.INTERNAL_SERVER_ERROR)
        return
    except Exception as e:
        log(f"[Routes] Error controlling servo: {e}", "ERROR")
        send_json(
            handler,
            {"success": False, "error": f"Failed to control servo: {e}"},
            HTTPStatus.INTERNAL_SERVER_ERROR
        )
        return

    log(f"[Routes] Servo {direction} - Sent command: {command}")
    send_json(handler, {"success": True, "direction": direction})
