"""Messages passed between pipeline stages over bounded queues."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class MessageEvent:
    """A chat message from an allowed channel."""

    channel_id: int
    author_name: str
    text: str
    timestamp: datetime


@dataclass(frozen=True)
class SummarizeRequest:
    """Ask the summary worker to summarize a closed segment."""

    index: int
