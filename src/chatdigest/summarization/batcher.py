"""Append incoming messages to the active segment and rotate on overflow."""

from __future__ import annotations

import asyncio
import logging

from .events import MessageEvent, SummarizeRequest
from .segments import OpenSegment, SegmentStore
from .tokens import estimate_tokens, format_line

_LOG = logging.getLogger(__name__)


class MessageBatcher:
    """Owns the active segment and emits a summarize request per closed one.

    Rotation happens before the message that triggered it is written, so the
    triggering message always lands in the new segment and every request
    names a complete segment. A ``None`` on the inbound queue means the
    producer has shut down.
    """

    def __init__(
        self,
        segments: SegmentStore,
        inbound: asyncio.Queue[MessageEvent | None],
        outbound: asyncio.Queue[SummarizeRequest],
        token_threshold: int,
    ):
        """
        Initialize batcher.

        Args:
            segments: Segment directory the batcher appends to
            inbound: Queue of message events (``None`` closes it)
            outbound: Bounded queue of summarize requests
            token_threshold: Maximum estimated tokens per segment
        """
        self.segments = segments
        self.inbound = inbound
        self.outbound = outbound
        self.token_threshold = token_threshold
        self._active: OpenSegment | None = None
        self.token_count = 0

    @property
    def active_index(self) -> int | None:
        return self._active.index if self._active else None

    def open(self) -> int:
        """Recover the active segment from disk and return its index.

        Raises OSError if the segment directory can't be listed or the active
        segment can't be opened.
        """
        index = self.segments.discover_active_index()
        self._active = self.segments.open_segment(index)
        self.token_count = self._active.token_count
        _LOG.info(
            "Active segment is %d with %d tokens (threshold %d)",
            index,
            self.token_count,
            self.token_threshold,
        )
        return index

    def close(self) -> None:
        if self._active is not None:
            self._active.close()

    async def _rotate(self) -> bool:
        """Close the active segment, open the next one and request a summary."""
        if self._active is None:
            raise RuntimeError("No active segment to rotate; call open() first")
        old = self._active
        try:
            new = self.segments.rotate(old.index)
        except OSError as e:
            _LOG.error("Could not open segment %d for rotation: %s", old.index + 1, e)
            return False

        old.close()
        self._active = new
        self.token_count = new.token_count
        _LOG.warning(
            "Segment %d reached the token threshold, rotated to segment %d",
            old.index,
            new.index,
        )
        # Suspends while the summary worker is behind.
        await self.outbound.put(SummarizeRequest(old.index))
        return True

    async def ingest(self, event: MessageEvent) -> bool:
        """Append one message, rotating first if it would overflow the segment.

        Returns False if the message was dropped.
        """
        if self._active is None:
            self.open()

        incoming = estimate_tokens(event.text)
        if self.token_count + incoming > self.token_threshold:
            if not await self._rotate():
                _LOG.error(
                    "Dropping message from %s: no segment available (%s)",
                    event.author_name,
                    event.text[:120],
                )
                return False

        line = format_line(event.timestamp, event.author_name, event.text)
        try:
            self._active.append(line)
        except OSError as e:
            _LOG.error(
                "Could not write message with content %r to segment %d: %s",
                event.text[:120],
                self._active.index,
                e,
            )
            return False

        self.token_count += incoming
        _LOG.debug(
            "Processed message, segment %d has %d tokens",
            self._active.index,
            self.token_count,
        )
        return True

    async def run(self) -> None:
        """Consume message events until the inbound queue is closed."""
        if self._active is None:
            self.open()
        try:
            while True:
                event = await self.inbound.get()
                try:
                    if event is None:
                        _LOG.info("Message queue closed, stopping batcher")
                        return
                    await self.ingest(event)
                except Exception:
                    _LOG.exception("Unexpected error while batching message")
                finally:
                    self.inbound.task_done()
        finally:
            self.close()
