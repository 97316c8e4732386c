"""Approximate token counting and the segment line format."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

CHARS_PER_TOKEN = 4

_CONTENT_MARKER = ", content: "


def estimate_tokens(text: str) -> int:
    """Estimate the token count of ``text`` (characters / CHARS_PER_TOKEN)."""
    return len(text) // CHARS_PER_TOKEN


def sanitize_content(text: str) -> str:
    """Flatten line breaks so one message always occupies one line.

    Each break character becomes a single space, so the length (and therefore
    the token estimate) is unchanged.
    """
    return text.replace("\r", " ").replace("\n", " ")


def format_line(timestamp: datetime | str, author: str, content: str) -> str:
    """Format one message as a segment line (without the trailing newline)."""
    if isinstance(timestamp, datetime):
        timestamp = timestamp.isoformat()
    # The first content marker on a line must be the one before the message.
    author = sanitize_content(author).replace(_CONTENT_MARKER, " content: ")
    return (
        f"timestamp: {timestamp}, author: {author}"
        f"{_CONTENT_MARKER}{sanitize_content(content)}"
    )


def line_content(line: str) -> str | None:
    """Return the message text of a segment line, or None if it has none."""
    _, sep, content = line.partition(_CONTENT_MARKER)
    return content if sep else None


def estimate_segment_tokens(lines: Iterable[str]) -> int:
    """Replay segment lines through the estimator.

    Counts each message separately, exactly as the batcher accumulates them
    while appending, so a replayed count always matches the live one.
    """
    total = 0
    for line in lines:
        content = line_content(line)
        if content is not None:
            total += estimate_tokens(content)
    return total
