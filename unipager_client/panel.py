"""Local operator panel: JSON state projection and a websocket for actions."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections import defaultdict
from typing import Any

from aiohttp import web

from .auth import TokenAuth, auth_middleware, security_headers_middleware
from .client import ControlClient
from .connection import NotConnectedError
from .envelope import PageRequest

logger = logging.getLogger(__name__)


MAX_WS_MESSAGE_SIZE = 1024 * 100
WS_RATE_LIMIT_MESSAGES = 20
WS_RATE_LIMIT_WINDOW = 1.0
ALLOWED_MESSAGE_TYPES = {
    "authenticate",
    "save_config",
    "reset_config",
    "submit_page",
    "run_test",
    "get_state",
}


class OperatorPanel:
    """HTTP server exposing the client state to a local operator UI."""

    MAX_WEBSOCKET_CONNECTIONS = 10

    def __init__(
        self,
        client: ControlClient,
        host: str = "localhost",
        port: int = 8056,
        config: dict | None = None,
    ):
        """Initialize operator panel.

        Args:
            client: Control client to project and drive
            host: Host to bind to
            port: Port to listen on
            config: Configuration dictionary
        """
        self.client = client
        self.host = host
        self.port = port
        self.config = config or {}
        self.app = web.Application()
        self.websockets: set[web.WebSocketResponse] = set()
        self.ws_message_times: dict[web.WebSocketResponse, list[float]] = defaultdict(list)
        self.runner: web.AppRunner | None = None
        self._unsubscribe = None
        self._broadcasts: set[asyncio.Task[None]] = set()
        self.setup_middlewares()
        self.setup_routes()

    def setup_middlewares(self) -> None:
        """Set up middleware stack."""
        if self.config.get("enable_security_headers", True):
            self.app.middlewares.append(security_headers_middleware)

        if self.config.get("enable_auth", False):
            auth_token = self.config.get("auth_token", "")
            if auth_token:
                self.app["token_auth"] = TokenAuth(auth_token)
                self.app.middlewares.append(auth_middleware)
                logger.info("Panel authentication enabled")
            else:
                logger.warning(
                    "Authentication enabled but no auth_token configured. Disabling auth."
                )

    def setup_routes(self) -> None:
        """Set up HTTP routes."""
        self.app.router.add_get("/api/state", self.state_handler)
        self.app.router.add_get("/ws", self.websocket_handler)

    async def state_handler(self, _request: web.Request) -> web.Response:
        """Return the current state projection."""
        return web.json_response(self.client.snapshot())

    def handle_action(self, data: dict[str, Any]) -> dict[str, Any]:
        """Run an operator action requested by a panel client.

        Args:
            data: Action message from the panel websocket

        Returns:
            Reply message
        """
        msg_type = data.get("type")

        try:
            if msg_type == "authenticate":
                secret = data.get("secret")
                if not isinstance(secret, str):
                    return {"type": "error", "error": "secret must be a string"}
                self.client.authenticate(secret)
            elif msg_type == "save_config":
                document = data.get("config")
                if document is not None:
                    self.client.edit_config(document)
                if not self.client.save_config():
                    return {"type": "error", "error": "No configuration loaded"}
            elif msg_type == "reset_config":
                self.client.reset_config()
            elif msg_type == "submit_page":
                page = PageRequest.from_dict(
                    data.get("page", {}), defaults=self.client.default_page_request()
                )
                self.client.submit_page(page)
            elif msg_type == "run_test":
                self.client.run_test()
            elif msg_type == "get_state":
                return {"type": "state", "topic": None, "state": self.client.snapshot()}
            else:
                logger.warning("Unknown message type: %s", msg_type)
                return {"type": "error", "error": f"Unknown message type: {msg_type}"}
        except NotConnectedError:
            return {"type": "error", "error": "Not connected to UniPager"}
        except (TypeError, ValueError) as e:
            return {"type": "error", "error": str(e)}

        return {"type": "ok", "action": msg_type}

    def handle_message(self, raw: str) -> dict[str, Any]:
        """Validate a raw panel message and run the action it names."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Invalid JSON from panel WebSocket: %s", e)
            return {"type": "error", "error": "Invalid JSON format"}
        if not isinstance(data, dict):
            return {"type": "error", "error": "Message must be a JSON object"}
        msg_type = data.get("type")
        if not isinstance(msg_type, str) or msg_type not in ALLOWED_MESSAGE_TYPES:
            logger.warning("Invalid panel message type: %r", msg_type)
            return {"type": "error", "error": "Invalid message type"}
        return self.handle_action(data)

    def _rate_limited(self, ws: web.WebSocketResponse) -> bool:
        now = time.monotonic()
        recent = [t for t in self.ws_message_times[ws] if now - t < WS_RATE_LIMIT_WINDOW]
        self.ws_message_times[ws] = recent
        if len(recent) >= WS_RATE_LIMIT_MESSAGES:
            return True
        recent.append(now)
        return False

    async def websocket_handler(self, request: web.Request) -> web.StreamResponse:
        """Push state to a panel client and answer its action messages."""
        ws = web.WebSocketResponse(max_msg_size=MAX_WS_MESSAGE_SIZE)
        await ws.prepare(request)

        if len(self.websockets) >= self.MAX_WEBSOCKET_CONNECTIONS:
            logger.warning("Panel connection rejected, %d clients open", len(self.websockets))
            await ws.send_json({"type": "error", "error": "Panel is at maximum capacity"})
            await ws.close()
            return ws

        self.websockets.add(ws)
        logger.info("Panel client connected (total: %d)", len(self.websockets))
        try:
            await ws.send_json({"type": "state", "topic": None, "state": self.client.snapshot()})
            async for msg in ws:
                if msg.type == web.WSMsgType.ERROR:
                    logger.error("Panel WebSocket error: %s", ws.exception())
                elif msg.type != web.WSMsgType.TEXT:
                    continue
                elif self._rate_limited(ws):
                    await ws.send_json({"type": "error", "error": "Rate limit exceeded"})
                else:
                    await ws.send_json(self.handle_message(msg.data))
        except ConnectionResetError:
            logger.info("Panel WebSocket connection reset by client")
        finally:
            self.websockets.discard(ws)
            self.ws_message_times.pop(ws, None)
            logger.info("Panel client disconnected")

        return ws

    def _on_change(self, topic: str) -> None:
        task = asyncio.ensure_future(
            self.broadcast({"type": "state", "topic": topic, "state": self.client.snapshot()})
        )
        self._broadcasts.add(task)
        task.add_done_callback(self._broadcasts.discard)

    async def broadcast(self, data: dict) -> None:
        """Broadcast data to all connected panel clients.

        Args:
            data: Data to broadcast
        """
        message = json.dumps(data)

        disconnected = set()
        for ws in list(self.websockets):
            try:
                await ws.send_str(message)
            except (ConnectionResetError, RuntimeError) as e:
                logger.error("Error broadcasting to panel WebSocket: %s", e)
                disconnected.add(ws)

        self.websockets -= disconnected

    async def start(self) -> None:
        """Start the panel server and follow client state changes."""
        self._unsubscribe = self.client.subscribe(self._on_change)

        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        site = web.TCPSite(self.runner, self.host, self.port)
        await site.start()

        logger.info("Operator panel started on http://%s:%d", self.host, self.port)

    async def stop(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

        for ws in list(self.websockets):
            await ws.close()

        if self.runner is not None:
            await self.runner.cleanup()
            self.runner = None
