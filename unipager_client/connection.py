"""Connection manager for the UniPager control socket.

Thread-Safety:
    Everything here runs on a single asyncio event loop. Lifecycle hooks
    (on_open, on_frame, on_close) and the reconnect timer are invoked from
    that loop one at a time, so the state they touch needs no locking.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from enum import Enum
from typing import Any, Protocol

import aiohttp

from .codec import MAX_FRAME_SIZE, encode
from .constants import RECONNECT_DELAY_S
from .envelope import Envelope

logger = logging.getLogger(__name__)


class ClientError(RuntimeError):
    """Base exception for control client failures."""


class NotConnectedError(ClientError):
    """Raised when an envelope is sent while the socket is not open."""


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"


class Transport(Protocol):
    """An open, message-oriented text socket."""

    @property
    def closed(self) -> bool: ...

    def send_text(self, data: str) -> None: ...

    def __aiter__(self) -> AsyncIterator[str]: ...

    async def close(self) -> None: ...


class Cancellable(Protocol):
    def cancel(self) -> None: ...


Opener = Callable[[str], Awaitable[Transport]]
Scheduler = Callable[[float, Callable[[], None]], Cancellable]


class WebSocketTransport:
    """Transport over an aiohttp client websocket."""

    def __init__(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        self.ws = ws
        self._pending: set[asyncio.Future[Any]] = set()

    @property
    def closed(self) -> bool:
        return self.ws.closed

    def send_text(self, data: str) -> None:
        """Hand a text frame to the socket without waiting for it to flush.

        Raises:
            NotConnectedError: If the websocket is already closed
        """
        if self.ws.closed:
            raise NotConnectedError("websocket is closed")
        fut = asyncio.ensure_future(self.ws.send_str(data))
        self._pending.add(fut)
        fut.add_done_callback(self._send_done)

    def _send_done(self, fut: asyncio.Future[Any]) -> None:
        self._pending.discard(fut)
        if fut.cancelled():
            return
        exc = fut.exception()
        if exc is not None:
            logger.warning("Failed to send frame: %s", exc)

    async def __aiter__(self) -> AsyncIterator[str]:
        async for msg in self.ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                yield msg.data
            elif msg.type == aiohttp.WSMsgType.BINARY:
                try:
                    yield msg.data.decode("utf-8")
                except UnicodeDecodeError as e:
                    logger.debug("Dropping undecodable binary frame: %s", e)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                logger.error("WebSocket error: %s", msg.data)

    async def close(self) -> None:
        await self.ws.close()


class ConnectionManager:
    """Owns the single control socket and keeps it alive.

    After every close a single reconnect attempt is scheduled after a fixed
    delay. There is no backoff and no attempt cap.
    """

    def __init__(
        self,
        url: str,
        *,
        reconnect_delay_s: float = RECONNECT_DELAY_S,
        connect_timeout_s: float = 10.0,
        max_frame_size: int = MAX_FRAME_SIZE,
        opener: Opener | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        """Initialize connection manager.

        Args:
            url: Fixed websocket endpoint
            reconnect_delay_s: Delay between a close and the next attempt
            connect_timeout_s: Timeout for the websocket handshake
            max_frame_size: Largest inbound frame accepted by the socket
            opener: Coroutine function opening a transport (aiohttp by default)
            scheduler: ``call_later``-style function (event loop by default)
        """
        self.url = url
        self.reconnect_delay_s = reconnect_delay_s
        self.connect_timeout_s = connect_timeout_s
        self.max_frame_size = max_frame_size
        self._opener = opener or self._open_websocket
        self._scheduler = scheduler or self._call_later

        self.state = ConnectionState.DISCONNECTED
        self.transport: Transport | None = None
        self.attempts = 0

        self._http: aiohttp.ClientSession | None = None
        self._task: asyncio.Task[None] | None = None
        self._reconnect_handle: Cancellable | None = None
        self._stopped = False

        self.on_open: Callable[[], None] | None = None
        self.on_frame: Callable[[str], None] | None = None
        self.on_close: Callable[[bool], None] | None = None

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.OPEN

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    # --------------------------
    # Connection lifecycle
    # --------------------------

    def connect(self) -> None:
        """Start opening the socket unless one is already open or pending."""
        if self.state is not ConnectionState.DISCONNECTED:
            logger.debug("connect() ignored, connection is %s", self.state.value)
            return

        self._stopped = False
        self.state = ConnectionState.CONNECTING
        self.attempts += 1
        logger.info("Connecting to %s (attempt %d)", self.url, self.attempts)
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        try:
            transport = await self._opener(self.url)
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
            logger.warning("Failed to connect to %s: %s", self.url, e)
            self.handle_close()
            return
        except Exception as e:
            logger.exception("Unexpected error connecting to %s: %s", self.url, e)
            self.handle_close()
            return

        self.handle_open(transport)
        try:
            async for data in transport:
                self.handle_frame(data)
        except (aiohttp.ClientError, OSError) as e:
            logger.warning("Connection to %s failed: %s", self.url, e)
        except Exception as e:
            logger.exception("Unexpected error reading from %s: %s", self.url, e)
        finally:
            self.handle_close()

    async def _open_websocket(self, url: str) -> Transport:
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession()
        ws = await asyncio.wait_for(
            self._http.ws_connect(url, max_msg_size=self.max_frame_size),
            timeout=self.connect_timeout_s,
        )
        return WebSocketTransport(ws)

    def handle_open(self, transport: Transport) -> None:
        """Transport open event."""
        self.transport = transport
        self.state = ConnectionState.OPEN
        logger.info("Connected to %s", self.url)

        if self.on_open:
            try:
                self.on_open()
            except Exception as e:
                logger.exception("Error in on_open callback: %s", e)

    def handle_frame(self, data: str) -> None:
        """Transport message event."""
        if self.on_frame:
            try:
                self.on_frame(data)
            except Exception as e:
                logger.exception("Error in on_frame callback: %s", e)

    def handle_close(self) -> None:
        """Transport close event; always schedules exactly one reconnect."""
        was_connected = self.state is ConnectionState.OPEN
        self.transport = None
        self.state = ConnectionState.DISCONNECTED
        if was_connected:
            logger.info("Disconnected from %s", self.url)

        if self.on_close:
            try:
                self.on_close(was_connected)
            except Exception as e:
                logger.exception("Error in on_close callback: %s", e)

        if self._stopped:
            return
        logger.debug("Reconnecting in %.1fs", self.reconnect_delay_s)
        self._reconnect_handle = self._scheduler(self.reconnect_delay_s, self._reconnect)

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        self.connect()

    def _call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        return asyncio.get_running_loop().call_later(delay, callback)

    # --------------------------
    # Outbound
    # --------------------------

    def send(self, envelope: Envelope) -> None:
        """Serialize and transmit an envelope.

        Never waits and never queues.

        Raises:
            NotConnectedError: If the socket is not open
        """
        transport = self.transport
        if self.state is not ConnectionState.OPEN or transport is None or transport.closed:
            raise NotConnectedError(f"Not connected to {self.url}, cannot send {envelope.kind}")

        transport.send_text(encode(envelope.to_wire()))
        logger.debug("Sent %s", envelope.kind)

    # --------------------------
    # Shutdown
    # --------------------------

    async def close(self) -> None:
        """Stop reconnecting and release the socket and HTTP session."""
        self._stopped = True
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

        transport = self.transport
        if transport is not None:
            try:
                await transport.close()
            except (aiohttp.ClientError, OSError) as e:
                logger.debug("Error closing transport: %s", e)

        task = self._task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
        self.transport = None
        self.state = ConnectionState.DISCONNECTED

        if self._http is not None:
            await self._http.close()
            self._http = None
