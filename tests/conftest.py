"""
Shared pytest fixtures.

Uses in-memory fake connections so the transport, dispatcher and viewer
can be exercised with no server and no network.
"""

import asyncio
import json

import pytest
import pytest_asyncio

from tailview.command import CommandState
from tailview.dispatcher import CommandDispatcher
from tailview.line_buffer import LineBuffer, LogEntry, RenderSink
from tailview.transport import Connection, Connector, TransportSession

_CLOSE = object()


# ── Fake transport ────────────────────────────────────────────────────────────


class FakeConnection(Connection):
    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self._inbound: asyncio.Queue = asyncio.Queue()

    async def send(self, text: str) -> None:
        if self.closed:
            raise OSError("connection closed")
        self.sent.append(text)

    async def messages(self):
        while True:
            item = await self._inbound.get()
            if item is _CLOSE:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    async def close(self) -> None:
        self.closed = True
        self._inbound.put_nowait(_CLOSE)

    def push(self, payload) -> None:
        """Queue an inbound frame; dicts are JSON-encoded."""
        self._inbound.put_nowait(payload if isinstance(payload, (str, bytes)) else json.dumps(payload))

    def drop(self, exc: BaseException | None = None) -> None:
        """Simulate the peer going away."""
        self._inbound.put_nowait(exc if exc is not None else _CLOSE)

    @property
    def sent_json(self) -> list[dict]:
        return [json.loads(s) for s in self.sent]


class FakeConnector(Connector):
    def __init__(self, failures: int = 0, always_fail: bool = False) -> None:
        self.failures = failures
        self.always_fail = always_fail
        self.attempts = 0
        self.connections: list[FakeConnection] = []

    async def connect(self) -> Connection:
        self.attempts += 1
        if self.always_fail or self.attempts <= self.failures:
            raise OSError("connection refused")
        conn = FakeConnection()
        self.connections.append(conn)
        return conn

    @property
    def last(self) -> FakeConnection:
        return self.connections[-1]


class RecordingSink(RenderSink):
    def __init__(self) -> None:
        self.events: list[tuple] = []

    def on_append(self, added: list[LogEntry], evicted: list[LogEntry], previous: LogEntry | None) -> None:
        self.events.append(("append", [e.content for e in added], [e.content for e in evicted]))

    def on_clear(self) -> None:
        self.events.append(("clear",))

    @property
    def clears(self) -> int:
        return sum(1 for e in self.events if e[0] == "clear")


async def _wait_until(predicate, timeout: float = 1.0) -> None:
    """Yield to the event loop until *predicate* holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)


# ── Components ────────────────────────────────────────────────────────────────


@pytest.fixture
def buffer() -> LineBuffer:
    return LineBuffer(capacity=2000)


@pytest.fixture
def sink(buffer: LineBuffer) -> RecordingSink:
    s = RecordingSink()
    buffer.subscribe(s)
    return s


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def state() -> CommandState:
    return CommandState(tail_lines=60)


@pytest_asyncio.fixture
async def session(connector: FakeConnector, buffer: LineBuffer):
    s = TransportSession(connector, buffer, retries=3, delay=0)
    yield s
    await s.stop()


@pytest_asyncio.fixture
async def dispatcher(state: CommandState, session: TransportSession, buffer: LineBuffer):
    d = CommandDispatcher(state, session, buffer)
    yield d
    await d.wait_idle()


@pytest_asyncio.fixture
async def running(session: TransportSession, connector: FakeConnector):
    """Run the session in the background and wait until it is open."""
    task = asyncio.create_task(session.run())
    await _wait_until(lambda: session.is_open)
    yield connector.last
    await session.stop()
    await asyncio.wait_for(task, timeout=1.0)


# ── Helpers ───────────────────────────────────────────────────────────────────


@pytest.fixture
def wait_until():
    return _wait_until


@pytest.fixture
def make_connector():
    return FakeConnector


@pytest.fixture
def make_sink():
    return RecordingSink
