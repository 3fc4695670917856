import asyncio

import pytest

from tailview.app import Viewer, configure_logging, log_handler
from tailview.cli import build_parser, make_viewer
from tailview.config import Settings
from tailview.line_buffer import EntryKind
from tailview.projection import HtmlProjection


def _settings(**overrides) -> Settings:
    base = {"reconnect_delay": 0, "reconnect_retries": 1, "history_lines": 3}
    base.update(overrides)
    return Settings(_env_file=None, **base)


@pytest.mark.asyncio
async def test_viewer_streams_end_to_end(wait_until, make_connector):
    connector = make_connector()
    viewer = Viewer(_settings(), connector=connector)
    view = HtmlProjection()
    viewer.buffer.subscribe(view)
    viewer.command.set(source="/var/log/a.log")

    task = asyncio.create_task(viewer.run())
    await wait_until(lambda: viewer.session.is_open)
    await viewer.dispatcher.wait_idle()
    conn = connector.last
    assert conn.sent_json == [{"tail": "/var/log/a.log", "last": 60}]

    conn.push({"/var/log/a.log": ["one\n", "two\n", "three\n", "four\n"]})
    conn.push({"err": "truncated", "fn": "/var/log/a.log"})
    await wait_until(lambda: viewer.buffer.current is not None and viewer.buffer.current.kind is EntryKind.NOTICE)

    assert [e.content for e in viewer.buffer][:2] == ["three", "four"]
    assert len(viewer.buffer) == 3
    assert view.spans[-1].startswith('<span class="log-entry log-notice log-entry-current">')

    viewer.clear()
    assert len(viewer.buffer) == 0

    await viewer.stop()
    await asyncio.wait_for(task, timeout=1.0)


@pytest.mark.asyncio
async def test_viewer_gives_up_after_retries(make_connector):
    connector = make_connector(always_fail=True)
    viewer = Viewer(_settings(reconnect_retries=2), connector=connector)
    await asyncio.wait_for(viewer.run(), timeout=1.0)
    assert connector.attempts == 3
    await viewer.stop()


def test_configure_logging_is_idempotent():
    import logging

    configure_logging("debug")
    configure_logging("info")
    root = logging.getLogger()
    assert root.handlers.count(log_handler) == 1
    assert root.level == logging.INFO
    assert logging.getLogger("websockets").level == logging.WARNING


@pytest.mark.asyncio
async def test_cli_builds_command(monkeypatch):
    monkeypatch.delenv("TAILVIEW_WS_URL", raising=False)
    args = build_parser().parse_args(["--mode", "grep", "--lines", "10", "--url", "ws://h/ws", "/var/log/a.log"])
    viewer = make_viewer(args)
    cmd = viewer.command.command
    assert (cmd.source, cmd.mode, cmd.script, cmd.tail_lines) == ("/var/log/a.log", "grep", ".*", 10)
    assert viewer.config.ws_url == "ws://h/ws"
    assert viewer.dispatcher.pending == cmd
    await viewer.stop()
