"""Application context: wires buffer, command state, session and dispatcher."""

import logging

from tailview.command import CommandState
from tailview.config import Settings, settings
from tailview.dispatcher import CommandDispatcher
from tailview.fetch import LogFetcher
from tailview.line_buffer import LineBuffer
from tailview.transport import Connector, TransportSession, WebSocketConnector

# Single console handler shared by every configure_logging call.
log_handler = logging.StreamHandler()
log_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if log_handler not in root.handlers:
        root.addHandler(log_handler)
    root.setLevel(level.upper())
    # Quiet down noisy third-party loggers
    for name in ("websockets", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


class Viewer:
    def __init__(self, config: Settings | None = None, connector: Connector | None = None) -> None:
        self.config = config or settings
        self.buffer = LineBuffer(
            capacity=self.config.history_lines,
            threshold=self.config.autoscroll_threshold,
        )
        self.command = CommandState(tail_lines=self.config.tail_lines)
        self.session = TransportSession(
            connector or WebSocketConnector(self.config.ws_url),
            self.buffer,
            retries=self.config.reconnect_retries,
            delay=self.config.reconnect_delay,
        )
        self.dispatcher = CommandDispatcher(
            self.command,
            self.session,
            self.buffer,
            resend_on_reconnect=self.config.resend_on_reconnect,
        )
        self.fetcher = LogFetcher(self.config.http_url)

    def clear(self) -> None:
        self.buffer.clear()

    async def run(self) -> None:
        try:
            await self.session.run()
        finally:
            await self.dispatcher.wait_idle()

    async def stop(self) -> None:
        await self.session.stop()
        await self.fetcher.aclose()
