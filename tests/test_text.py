from datetime import datetime, timedelta, timezone

from tailview.text import escape_html, format_bytes, strip_newline, timestamp


def test_escape_html():
    assert escape_html("<b>&x</b>") == "&lt;b&gt;&amp;x&lt;&#x2F;b&gt;"
    assert escape_html("plain text") == "plain text"


def test_strip_newline_removes_at_most_one():
    assert strip_newline("a\n") == "a"
    assert strip_newline("a\n\n") == "a\n"
    assert strip_newline("a") == "a"


def test_format_bytes():
    assert format_bytes(0) == "0.0 B"
    assert format_bytes(1536) == "1.5 KB"
    assert format_bytes(5 * 1024**3) == "5.0 GB"


def test_timestamp():
    now = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone(timedelta(hours=1)))
    assert timestamp(now) == "2024-01-15T12:00:00+01:00"
