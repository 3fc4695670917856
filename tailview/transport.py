"""Duplex connection to the log-streaming server.

States:  connecting → open → closed
From ``closed`` the session reconnects after a fixed delay while it has
retries left, then stays closed for good.  Reconnecting swaps the
underlying connection but keeps the same session object, so state
subscribers register once.

Inbound frames are decoded into ``LogEntry`` objects and appended to the
line buffer in the order the connection delivers them.
"""

from __future__ import annotations

import asyncio
import html
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from enum import Enum

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from tailview.line_buffer import LineBuffer, LogEntry
from tailview.schemas import (
    ErrorNotice,
    InboundMessage,
    LinesBatch,
    MalformedMessage,
    TruncatedNotice,
    parse_inbound,
)
from tailview.text import escape_html, strip_newline, timestamp

logger = logging.getLogger(__name__)

CONNECTION_ERRORS = (OSError, asyncio.TimeoutError, ConnectionClosed, InvalidHandshake, InvalidURI)


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class InvalidState(RuntimeError):
    """Operation not allowed in the session's current connection state."""


# ── Connection interfaces ─────────────────────────────────────────────────────


class Connection(ABC):
    @abstractmethod
    async def send(self, text: str) -> None: ...  # pragma: no cover

    @abstractmethod
    def messages(self) -> AsyncIterator[str | bytes]:
        """Yield inbound frames until the peer closes."""
        ...  # pragma: no cover

    @abstractmethod
    async def close(self) -> None: ...  # pragma: no cover


class Connector(ABC):
    @abstractmethod
    async def connect(self) -> Connection: ...  # pragma: no cover


class WebSocketConnection(Connection):
    def __init__(self, ws) -> None:
        self._ws = ws

    async def send(self, text: str) -> None:
        await self._ws.send(text)

    async def messages(self) -> AsyncIterator[str | bytes]:
        async for message in self._ws:
            yield message

    async def close(self) -> None:
        await self._ws.close()


class WebSocketConnector(Connector):
    def __init__(self, url: str, open_timeout: float = 10.0) -> None:
        self.url = url
        self.open_timeout = open_timeout

    async def connect(self) -> Connection:
        ws = await ws_connect(self.url, open_timeout=self.open_timeout)
        return WebSocketConnection(ws)


# ── Session ───────────────────────────────────────────────────────────────────

StateListener = Callable[[ConnectionState], None]


class TransportSession:
    def __init__(
        self,
        connector: Connector,
        buffer: LineBuffer,
        *,
        retries: int = 10,
        delay: float = 1.0,
    ) -> None:
        self._connector = connector
        self._buffer = buffer
        self._delay = delay
        self._connection: Connection | None = None
        self._listeners: list[StateListener] = []
        self._stop = asyncio.Event()
        self.state = ConnectionState.CLOSED
        self.retries_remaining = retries
        self.connect_count = 0

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _set_state(self, state: ConnectionState) -> None:
        if state is self.state:
            return
        self.state = state
        for listener in list(self._listeners):
            listener(state)

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def run(self) -> None:
        """Connect, pump messages, and reconnect until out of retries or stopped."""
        while not self._stop.is_set():
            await self._run_once()

            if self._stop.is_set():
                break
            if self.retries_remaining <= 0:
                logger.warning("Connection closed and no retries left; giving up")
                break

            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._delay)
            except asyncio.TimeoutError:
                pass
            else:
                break
            self.retries_remaining -= 1
            logger.info("Reconnecting (%d retries left)", self.retries_remaining)

    async def _run_once(self) -> None:
        self._set_state(ConnectionState.CONNECTING)
        self.connect_count += 1
        try:
            self._connection = await self._connector.connect()
        except CONNECTION_ERRORS as exc:
            logger.info("Connection attempt failed: %s", exc)
            self._set_state(ConnectionState.CLOSED)
            return

        if self._stop.is_set():
            await self._connection.close()
            self._connection = None
            self._set_state(ConnectionState.CLOSED)
            return

        logger.info("Connection open")
        self._set_state(ConnectionState.OPEN)
        connection = self._connection
        frames = connection.messages()
        try:
            while True:
                # Only the receive is a connection failure; decode and
                # render errors propagate to the caller.
                try:
                    raw = await anext(frames)
                except StopAsyncIteration:
                    break
                except CONNECTION_ERRORS as exc:
                    logger.info("Connection lost: %s", exc)
                    break
                self.handle_message(raw)
        finally:
            self._connection = None
            await frames.aclose()
            try:
                await connection.close()
            except CONNECTION_ERRORS as exc:
                logger.debug("Error closing connection: %s", exc)
            self._set_state(ConnectionState.CLOSED)

    async def stop(self) -> None:
        """Close the connection and suppress any further reconnects."""
        self._stop.set()
        if self._connection is not None:
            await self._connection.close()

    # ── Outbound ──────────────────────────────────────────────────────────────

    async def send(self, message: str) -> None:
        if self.state is not ConnectionState.OPEN or self._connection is None:
            raise InvalidState(f"cannot send while {self.state.value}")
        try:
            await self._connection.send(message)
        except CONNECTION_ERRORS as exc:
            raise InvalidState("connection lost while sending") from exc
        logger.debug("sent %s", message)

    # ── Inbound ───────────────────────────────────────────────────────────────

    def handle_message(self, raw: str | bytes) -> list[LogEntry]:
        """Decode one frame and append its entries to the buffer."""
        try:
            message = parse_inbound(raw)
        except MalformedMessage as exc:
            logger.warning("Dropping malformed message: %s", exc)
            entries = [self._buffer.make_notice(f"{timestamp()} - dropped malformed message")]
        else:
            entries = self.decode(message)
        return self._buffer.append(entries)

    def decode(self, message: InboundMessage) -> list[LogEntry]:
        buffer = self._buffer
        if isinstance(message, TruncatedNotice):
            return [buffer.make_notice(_notice_text(f"{timestamp()} - {message.fn} - truncated"))]
        if isinstance(message, ErrorNotice):
            return [buffer.make_notice(_notice_text(line)) for line in message.err]
        if isinstance(message, LinesBatch):
            return [
                buffer.make_entry(escape_html(strip_newline(line)))
                for lines in message.root.values()
                for line in lines
            ]
        raise TypeError(f"unhandled message type: {type(message).__name__}")


def _notice_text(text: str) -> str:
    # Notices come from the server itself; keep paths readable.
    return html.escape(text, quote=False)
