import asyncio
import json

import pytest

from unipager_client.client import ControlClient
from unipager_client.connection import ConnectionManager, NotConnectedError
from unipager_client.settings import SettingsStore

URL = "ws://unipager.test:8055"


class FakeTransport:
    """In-memory transport recording decoded outbound frames."""

    def __init__(self) -> None:
        self.sent = []
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue()

    def send_text(self, data: str) -> None:
        if self.closed:
            raise NotConnectedError("closed")
        self.sent.append(json.loads(data))

    def feed(self, frame) -> None:
        self._queue.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))

    def finish(self) -> None:
        self._queue.put_nowait(None)

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        while True:
            item = await self._queue.get()
            if item is None:
                return
            yield item

    async def close(self) -> None:
        self.closed = True
        self.finish()


class FakeHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Records call_later requests instead of running them."""

    def __init__(self) -> None:
        self.calls = []

    def __call__(self, delay, callback):
        handle = FakeHandle()
        self.calls.append((delay, callback, handle))
        return handle

    @property
    def delays(self):
        return [delay for delay, _cb, _handle in self.calls]


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def settings(tmp_path):
    return SettingsStore(tmp_path / "settings.json")


@pytest.fixture
def connection(scheduler):
    return ConnectionManager(URL, scheduler=scheduler)


@pytest.fixture
def client(connection, settings):
    return ControlClient(settings=settings, connection=connection)


@pytest.fixture
def open_client(client, transport):
    """Client whose socket is open and whose Authenticate has been sent."""
    client.connection.handle_open(transport)
    return client
