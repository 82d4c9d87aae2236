"""WebSocket handler and broadcast manager.

Pushes serial port state changes to connected browsers so they notice an
unplugged or seized port without waiting for their next status poll.
"""

from __future__ import annotations

import asyncio
import json
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from servo_server.utils.logging import log

if TYPE_CHECKING:
    from servo_server.core.state import ServerState


@dataclass
class WebSocketClient:
    """Represents a connected WebSocket client."""
    websocket: Any
    connected_at: datetime = field(default_factory=datetime.now)


class WebSocketManager:
    """Manages WebSocket connections and broadcasts.

    Runs its own asyncio event loop on a background thread; other threads
    hand messages over with run_coroutine_threadsafe.
    """

    def __init__(self, state: Optional["ServerState"] = None) -> None:
        """Initialize the WebSocket manager.

        Args:
            state: Server state used to build the initial message for new clients.
        """
        self.state = state
        self.clients: Dict[Any, WebSocketClient] = {}
        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._running = False

    def is_running(self) -> bool:
        return self._running

    @staticmethod
    def port_state_message(data: Dict[str, Any]) -> str:
        """Build the JSON message announcing a port state change."""
        return json.dumps({"type": "port_state_changed", "data": data})

    async def _handle_client(self, websocket: Any) -> None:
        """Handle a new WebSocket client connection.

        Args:
            websocket: The WebSocket connection.
        """
        with self._lock:
            self.clients[websocket] = WebSocketClient(websocket=websocket)
            count = len(self.clients)

        log(f"[WebSocket] Client connected. Total clients: {count}")

        try:
            await self._send_initial_state(websocket)

            async for message in websocket:
                await self._handle_message(websocket, message)

        except ConnectionClosed:
            pass
        finally:
            with self._lock:
                self.clients.pop(websocket, None)
                count = len(self.clients)
            log(f"[WebSocket] Client disconnected. Total clients: {count}")

    async def _send_initial_state(self, websocket: Any) -> None:
        """Send the current port state to a newly connected client."""
        if self.state is None:
            return
        try:
            data = await asyncio.get_running_loop().run_in_executor(None, self.state.port_state_data)
            await websocket.send(self.port_state_message(data))
        except ConnectionClosed:
            raise
        except Exception as e:
            log(f"[WebSocket] Error sending initial state: {e}", "WARNING")

    async def _handle_message(self, websocket: Any, message: str) -> None:
        """Handle an incoming WebSocket message.

        Args:
            websocket: The WebSocket connection.
            message: The received message.
        """
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            log(f"[WebSocket] Invalid JSON received: {message[:50]}", "WARNING")
            return

        if isinstance(data, dict) and data.get("type") == "ping":
            await websocket.send(json.dumps({"type": "pong"}))

    def broadcast_port_state(self, data: Dict[str, Any]) -> None:
        """Broadcast a port state change to all clients.

        Args:
            data: Port state as returned by ServerState.port_state_data().
        """
        self._schedule_broadcast(self.port_state_message(data))

    def _schedule_broadcast(self, message: str) -> None:
        """Schedule a broadcast on the event loop.

        Args:
            message: The message to broadcast.
        """
        if self._loop and self._running:
            asyncio.run_coroutine_threadsafe(self._broadcast(message), self._loop)

    async def _broadcast(self, message: str) -> None:
        """Broadcast a message to all connected clients."""
        with self._lock:
            clients = list(self.clients.keys())

        for websocket in clients:
            try:
                await websocket.send(message)
            except ConnectionClosed:
                # Removed by its own handler
                continue

    async def _run_server(self, host: str, port: int) -> None:
        """Run the WebSocket server until stop() is called."""
        try:
            async with websockets.serve(self._handle_client, host, port):
                log(f"[WebSocket] Server started on ws://{host}:{port}")
                while self._running:
                    await asyncio.sleep(0.5)
        except OSError as e:
            log(f"[WebSocket] ERROR: Failed to start server on port {port}: {e}", "ERROR")
            self._running = False

    def start(self, host: str = "0.0.0.0", port: int = 8082) -> None:
        """Start the WebSocket server in a background thread.

        Args:
            host: The host to bind to.
            port: The port to listen on.
        """
        if self._running:
            return

        self._loop = asyncio.new_event_loop()
        self._running = True

        def run_loop() -> None:
            asyncio.set_event_loop(self._loop)
            try:
                self._loop.run_until_complete(self._run_server(host, port))
            finally:
                self._running = False
                self._loop.close()

        self._thread = threading.Thread(target=run_loop, name="websocket-server", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the WebSocket server gracefully."""
        if not self._running:
            return

        log("[WebSocket] Stopping WebSocket server...")
        self._running = False

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=3)
            if self._thread.is_alive():
                log("[WebSocket] Warning: WebSocket thread did not stop within timeout", "WARNING")

        with self._lock:
            self.clients.clear()
        log("[WebSocket] Server stopped")

    def get_client_count(self) -> int:
        """Get the number of connected WebSocket clients."""
        with self._lock:
            return len(self.clients)
