"""Text helpers used when composing rendered entries."""

import re
from datetime import datetime

_ESCAPE_MAP = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    "/": "&#x2F;",
}
_ESCAPE_RE = re.compile(r"[&<>/]")

_UNITS = ("B", "KB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB")


def escape_html(text: str) -> str:
    """Neutralize the markup-significant characters ``& < > /``."""
    return _ESCAPE_RE.sub(lambda m: _ESCAPE_MAP[m.group(0)], str(text))


def strip_newline(line: str) -> str:
    """Drop at most one trailing newline."""
    return line[:-1] if line.endswith("\n") else line


def format_bytes(size: float) -> str:
    i = 0
    while size >= 1024 and i < len(_UNITS) - 1:
        size /= 1024
        i += 1
    return f"{size:.1f} {_UNITS[i]}"


def timestamp(now: datetime | None = None) -> str:
    # ISO-8601 with the local UTC offset, e.g. 2024-01-15T12:00:00+01:00
    now = now or datetime.now().astimezone()
    return now.isoformat(timespec="seconds")
