"""Render sinks driven off ``LineBuffer`` changes."""

from __future__ import annotations

import html
import sys
from collections import OrderedDict
from typing import TextIO

from tailview.line_buffer import EntryKind, LogEntry, RenderSink


def render_entry(entry: LogEntry, current: bool = False) -> str:
    classes = ["log-entry"]
    if entry.kind is EntryKind.NOTICE:
        classes.append("log-notice")
    if current:
        classes.append("log-entry-current")
    return f'<span class="{" ".join(classes)}">{entry.content}</span>'


class HtmlProjection(RenderSink):
    """Keeps one rendered span per buffered entry.

    Appends render only the new entries; the previous tail is re-rendered
    once to drop its current marker.
    """

    def __init__(self) -> None:
        self._spans: OrderedDict[int, str] = OrderedDict()
        self._current: LogEntry | None = None

    def on_append(self, added: list[LogEntry], evicted: list[LogEntry], previous: LogEntry | None) -> None:
        for entry in evicted:
            self._spans.pop(entry.sequence, None)
        if previous is not None and previous.sequence in self._spans:
            self._spans[previous.sequence] = render_entry(previous)
        for entry in added:
            self._spans[entry.sequence] = render_entry(entry)
        if added:
            self._current = added[-1]
            self._spans[self._current.sequence] = render_entry(self._current, current=True)

    def on_clear(self) -> None:
        self._spans.clear()
        self._current = None

    @property
    def spans(self) -> list[str]:
        return list(self._spans.values())

    def html(self) -> str:
        return "".join(self._spans.values())


class TerminalProjection(RenderSink):
    """Writes new entries to a text stream as plain lines."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout

    def on_append(self, added: list[LogEntry], evicted: list[LogEntry], previous: LogEntry | None) -> None:
        for entry in added:
            text = html.unescape(entry.content)
            if entry.kind is EntryKind.NOTICE:
                text = f"-- {text}"
            self.stream.write(text + "\n")
        self.stream.flush()
