"""Tests for the WebSocket port state broadcaster."""

import json
import socket
import sys
import time
from pathlib import Path
from unittest.mock import Mock

import pytest
from websockets.sync.client import connect

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from servo_server.api.websocket import WebSocketManager
from servo_server.core.state import ServerState


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def connect_with_retry(url: str, timeout: float = 5.0):
    deadline = time.monotonic() + timeout
    while True:
        try:
            return connect(url, open_timeout=1)
        except OSError:
            if time.monotonic() > deadline:
                raise
            time.sleep(0.05)


@pytest.fixture
def state(tmp_path, backend):
    server_state = ServerState()
    server_state.initialize(
        config_dir=tmp_path,
        handle_factory=backend.handle_factory,
        enumerate_ports=backend.enumerate_ports,
        environ={}
    )
    yield server_state
    server_state.reset()


class TestWebSocketManager:
    """Tests for WebSocketManager without a running server."""

    def test_port_state_message(self):
        message = json.loads(WebSocketManager.port_state_message({"port": "COM6", "open": True}))
        assert message == {"type": "port_state_changed", "data": {"port": "COM6", "open": True}}

    def test_broadcast_before_start_is_noop(self):
        manager = WebSocketManager()
        manager.broadcast_port_state({"port": "COM6"})
        assert not manager.is_running()
        assert manager.get_client_count() == 0

    def test_stop_before_start(self):
        manager = WebSocketManager()
        manager.stop()
        assert not manager.is_running()

    def test_state_skips_broadcast_when_not_running(self, state):
        state.websocket_manager = Mock()
        state.websocket_manager.is_running.return_value = False
        state.connection.ensure_open("COM6", 9600)
        state.websocket_manager.broadcast_port_state.assert_not_called()

    def test_state_broadcasts_on_open_and_close(self, state):
        state.websocket_manager = Mock()
        state.websocket_manager.is_running.return_value = True

        state.connection.ensure_open("COM6", 9600)
        opened = state.websocket_manager.broadcast_port_state.call_args[0][0]
        assert opened["port"] == "COM6"
        assert opened["open"] is True

        state.connection.close()
        closed = state.websocket_manager.broadcast_port_state.call_args[0][0]
        assert closed["open"] is False


class TestWebSocketServer:
    """Tests against a running WebSocket server."""

    def test_initial_state_ping_and_broadcast(self, state):
        port = free_port()
        state.start(websocket_port=port)
        try:
            with connect_with_retry(f"ws://127.0.0.1:{port}") as client:
                initial = json.loads(client.recv(timeout=5))
                assert initial["type"] == "port_state_changed"
                assert initial["data"]["port"] == "COM6"
                assert initial["data"]["open"] is False

                client.send(json.dumps({"type": "ping"}))
                assert json.loads(client.recv(timeout=5)) == {"type": "pong"}

                state.connection.ensure_open("COM6", 9600)
                update = json.loads(client.recv(timeout=5))
                assert update["data"]["open"] is True
        finally:
            state.stop()
