"""HTTP middleware utilities for the API.

Provides helper functions for JSON handling and CORS support.
"""

import json
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler
from typing import Any, Dict


def send_json(
    handler: BaseHTTPRequestHandler,
    payload: Dict[str, Any],
    status: HTTPStatus = HTTPStatus.OK
) -> None:
    """Send a JSON response.

    Args:
        handler: The HTTP request handler instance.
        payload: The dictionary to serialize as JSON.
        status: HTTP status code (default: 200 OK).
    """
    data = json.dumps(payload).encode("utf-8")
    handler.send_response(status)
    handler.send_header("Content-Type", "application/json")
    handler.send_header("Content-Length", str(len(data)))
    handler.send_header("Cache-Control", "no-store")
    handler.send_header("Access-Control-Allow-Origin", "*")
    handler.end_headers()
    handler.wfile.write(data)


def read_json_body(handler: BaseHTTPRequestHandler) -> Dict[str, Any]:
    """Read and parse a JSON object from the request body.

    Args:
        handler: The HTTP request handler instance.

    Returns:
        Parsed JSON object, or empty dict if the body is missing,
        malformed, or not an object.
    """
    try:
        length = int(handler.headers.get("Content-Length", 0))
    except ValueError:
        length = 0
    raw = handler.rfile.read(length) if length > 0 else b"{}"
    try:
        body = json.loads(raw.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


def send_cors_headers(handler: BaseHTTPRequestHandler) -> None:
    """Send CORS preflight response headers.

    Args:
        handler: The HTTP request handler instance.
    """
    handler.send_response(HTTPStatus.NO_CONTENT)
    handler.send_header("Access-Control-Allow-Origin", "*")
    handler.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
    handler.send_header("Access-Control-Allow-Headers", "Content-Type")
    handler.end_headers()
