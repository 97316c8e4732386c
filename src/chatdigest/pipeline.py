"""Wire the batcher, summary worker and recap aggregator together."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable

from chatdigest.digest_db import DigestStore
from chatdigest.settings import Settings
from chatdigest.summarization import (
    MessageBatcher,
    MessageEvent,
    RecapAggregator,
    SegmentStore,
    SummarizeRequest,
    Summarizer,
    SummaryWorker,
)

_LOG = logging.getLogger(__name__)


async def supervise(name: str, awaitable: Awaitable[object]) -> None:
    """Run one long-lived task, logging how it ended without stopping the others."""
    _LOG.info("Running %s", name)
    try:
        await awaitable
    except asyncio.CancelledError:
        _LOG.info("%s cancelled", name)
        raise
    except Exception:
        _LOG.exception("%s ended abnormally", name)
    else:
        _LOG.warning("%s stopped", name)


class Pipeline:
    """Owns the two bounded queues and the three stages reading them."""

    def __init__(self, settings: Settings, store: DigestStore, summarizer: Summarizer):
        self.segments = SegmentStore(settings.message_log_dir)
        self.messages: asyncio.Queue[MessageEvent | None] = asyncio.Queue(maxsize=settings.queue_size)
        self.requests: asyncio.Queue[SummarizeRequest] = asyncio.Queue(maxsize=settings.queue_size)
        self.batcher = MessageBatcher(
            self.segments,
            self.messages,
            self.requests,
            settings.max_request_tokens,
        )
        self.worker = SummaryWorker(self.segments, self.requests, store, summarizer)
        self.recap = RecapAggregator(store, summarizer, settings.digest_interval_seconds)

    def open(self) -> list[int]:
        """Recover the active segment and list closed segments left on disk.

        Raises OSError if the segment directory is missing or unreadable.
        """
        active = self.batcher.open()
        orphans = self.segments.orphaned_indices(active)
        if orphans:
            _LOG.warning(
                "Found %d segment(s) pending summarization: %s",
                len(orphans),
                ", ".join(str(i) for i in orphans),
            )
        return orphans

    async def start(self) -> list[asyncio.Task]:
        """Start every stage; pending segments are queued before new messages."""
        orphans = self.open()
        tasks = [asyncio.create_task(supervise("summary worker", self.worker.run()))]
        for index in orphans:
            await self.requests.put(SummarizeRequest(index))
        tasks.append(asyncio.create_task(supervise("message batcher", self.batcher.run())))
        tasks.append(asyncio.create_task(supervise("daily digest service", self.recap.run())))
        return tasks

    async def close_messages(self) -> None:
        """Signal the batcher that no more messages will arrive."""
        await self.messages.put(None)
