"""Bounded, append-only history of rendered log lines.

The buffer keeps the most recent *capacity* entries (0 keeps everything),
marks the newest entry as "current" and decides after every append
whether the viewport should snap to the bottom.  It knows nothing about
commands or connections: the transport appends, the dispatcher clears.

Rendering is a separate projection.  Sinks subscribe to the buffer and
receive only the entries an append added (plus whatever it evicted), so
prior content never has to be re-rendered.
"""

from __future__ import annotations

import itertools
from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum

DEFAULT_CAPACITY = 2000
DEFAULT_THRESHOLD = 40


class EntryKind(str, Enum):
    NORMAL = "normal"
    NOTICE = "notice"


@dataclass(frozen=True)
class LogEntry:
    content: str  # already escaped, safe to render as markup
    kind: EntryKind = EntryKind.NORMAL
    sequence: int = 0


@dataclass
class Viewport:
    """Scroll geometry of whatever displays the buffer.

    ``scroll_top`` is the offset of the visible window from the top of
    the content; the content is ``line_height`` units per entry.
    """

    height: float = 0.0
    line_height: float = 1.0
    scroll_top: float = 0.0


class RenderSink:
    """Receives incremental buffer changes.  Override what you need."""

    def on_append(self, added: list[LogEntry], evicted: list[LogEntry], previous: LogEntry | None) -> None:
        pass

    def on_clear(self) -> None:
        pass


class LineBuffer:
    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        *,
        auto_scroll: bool = True,
        threshold: float = DEFAULT_THRESHOLD,
        viewport: Viewport | None = None,
    ) -> None:
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        self.capacity = capacity
        self.auto_scroll = auto_scroll
        self.threshold = threshold
        self.viewport = viewport or Viewport()
        self._entries: deque[LogEntry] = deque()
        self._current: LogEntry | None = None
        self._sequence = itertools.count(1)
        self._sinks: list[RenderSink] = []

    # ── Entry construction ────────────────────────────────────────────────────

    def make_entry(self, content: str) -> LogEntry:
        return LogEntry(content=content, kind=EntryKind.NORMAL, sequence=next(self._sequence))

    def make_notice(self, content: str) -> LogEntry:
        return LogEntry(content=content, kind=EntryKind.NOTICE, sequence=next(self._sequence))

    # ── Read access ───────────────────────────────────────────────────────────

    @property
    def entries(self) -> tuple[LogEntry, ...]:
        return tuple(self._entries)

    @property
    def current(self) -> LogEntry | None:
        return self._current

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(tuple(self._entries))

    @property
    def scroll_height(self) -> float:
        return len(self._entries) * self.viewport.line_height

    @property
    def bottom(self) -> float:
        """Scroll offset at which the last line is visible."""
        return max(0.0, self.scroll_height - self.viewport.height)

    def scroll_to(self, offset: float) -> None:
        """Record a user-driven scroll position."""
        self.viewport.scroll_top = min(max(0.0, offset), self.bottom)

    # ── Subscriptions ─────────────────────────────────────────────────────────

    def subscribe(self, sink: RenderSink) -> None:
        self._sinks.append(sink)

    def unsubscribe(self, sink: RenderSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    # ── Mutation ──────────────────────────────────────────────────────────────

    def append(self, entries: Iterable[LogEntry]) -> list[LogEntry]:
        """Append *entries* in order and return the ones that were kept.

        Evicts from the head until the capacity holds, snaps the viewport
        to the bottom if it was following, and moves the current marker
        to the new tail.
        """
        batch = list(entries)
        if not batch:
            return []

        follow = self.auto_scroll and abs(self.bottom - self.viewport.scroll_top) <= self.threshold

        held = len(self._entries)
        overflow = max(0, held + len(batch) - self.capacity) if self.capacity else 0

        self._entries.extend(batch)
        evicted = [self._entries.popleft() for _ in range(overflow)]

        # A batch larger than the capacity evicts some of its own entries;
        # those were never shown, so sinks see neither an add nor an evict.
        old_evicted = min(overflow, held)
        added = batch[overflow - old_evicted:]
        evicted = evicted[:old_evicted]

        if follow:
            self.viewport.scroll_top = self.bottom

        previous = self._current
        self._current = self._entries[-1]

        for sink in list(self._sinks):
            sink.on_append(added, evicted, previous)
        return added

    def clear(self) -> None:
        self._entries.clear()
        self._current = None
        self.viewport.scroll_top = 0.0
        for sink in list(self._sinks):
            sink.on_clear()
