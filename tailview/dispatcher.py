"""Turns command changes into requests on the transport.

The dispatcher keeps a single pending slot.  Each change overwrites it,
so only the latest command is sent once the connection is open; missed
intermediate commands are coalesced, never replayed.  Every send clears
the line buffer first, and sends are serialized so a burst of changes
cannot go out of order.
"""

from __future__ import annotations

import asyncio
import logging

from tailview.command import Command, CommandState
from tailview.line_buffer import LineBuffer
from tailview.schemas import CommandRequest
from tailview.transport import ConnectionState, InvalidState, TransportSession

logger = logging.getLogger(__name__)


class CommandDispatcher:
    def __init__(
        self,
        state: CommandState,
        session: TransportSession,
        buffer: LineBuffer,
        *,
        resend_on_reconnect: bool = True,
    ) -> None:
        self._state = state
        self._session = session
        self._buffer = buffer
        self._resend_on_reconnect = resend_on_reconnect
        self._pending: Command | None = None
        self._lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()
        self._opened_before = False
        self.last_sent: CommandRequest | None = None

        state.subscribe(self._on_command_changed)
        session.subscribe(self._on_state_changed)

    @property
    def pending(self) -> Command | None:
        return self._pending

    # ── Notifications ─────────────────────────────────────────────────────────

    def _on_command_changed(self, command: Command) -> None:
        if command.source is None:
            self._pending = None
            self._buffer.clear()
            return
        self._pending = command
        if self._session.is_open:
            self._schedule_flush()

    def _on_state_changed(self, state: ConnectionState) -> None:
        if state is not ConnectionState.OPEN:
            return
        reopened = self._opened_before
        self._opened_before = True
        active = self._state.command
        if (
            self._pending is None
            and reopened
            and self._resend_on_reconnect
            and self.last_sent is not None
            and active.source is not None
        ):
            logger.info("Reconnected; re-issuing the active command")
            self._pending = active
        if self._pending is not None:
            self._schedule_flush()

    def _schedule_flush(self) -> None:
        task = asyncio.get_running_loop().create_task(self.flush())
        self._tasks.add(task)
        task.add_done_callback(self._flush_done)

    def _flush_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Command flush failed", exc_info=exc)

    # ── Sending ───────────────────────────────────────────────────────────────

    async def flush(self) -> bool:
        """Send the pending command if the session is open; return True if sent."""
        async with self._lock:
            command = self._pending
            if command is None or not self._session.is_open:
                return False
            self._pending = None

            if command.source is None:
                self._buffer.clear()
                return False
            if command.awaiting_input:
                logger.debug("mode %r is waiting for a script", command.mode)
                return False

            request = command.to_request()
            self._buffer.clear()
            try:
                await self._session.send(request.dumps())
            except InvalidState as exc:
                logger.info("Send failed (%s); will retry once the connection reopens", exc)
                if self._pending is None:
                    self._pending = command
                return False

            self.last_sent = request
            return True

    async def wait_idle(self) -> None:
        """Wait for every scheduled flush to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
