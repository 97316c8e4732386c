"""Background worker turning closed segments into stored summaries."""

from __future__ import annotations

import asyncio
import logging

from chatdigest.digest_db import DigestStore, StoreError

from .events import SummarizeRequest
from .segments import SegmentStore
from .summarizer import OracleError, Summarizer

_LOG = logging.getLogger(__name__)


class SummaryWorker:
    """Summarizes segments named by requests, one at a time, in order.

    A segment file is deleted only after its summary has been committed, so a
    failure at any step leaves the messages on disk.
    """

    def __init__(
        self,
        segments: SegmentStore,
        requests: asyncio.Queue[SummarizeRequest],
        store: DigestStore,
        summarizer: Summarizer,
    ):
        """
        Initialize worker.

        Args:
            segments: Segment directory to read from and delete in
            requests: Queue of summarize requests
            store: Store the summaries are written to
            summarizer: Summarizer for generating summaries
        """
        self.segments = segments
        self.requests = requests
        self.store = store
        self.summarizer = summarizer

    async def process(self, request: SummarizeRequest) -> int | None:
        """
        Summarize one segment.

        Args:
            request: Request naming the closed segment

        Returns:
            Id of the stored summary, or None if the request was skipped
        """
        index = request.index
        _LOG.info("Summarizing contents of segment %d", index)

        try:
            contents = self.segments.read(index)
        except OSError as e:
            _LOG.error("Could not read segment %d to summarize: %s", index, e)
            return None

        if not contents.strip():
            _LOG.warning("Segment %d is empty, removing it without a summary", index)
            self._delete(index)
            return None

        try:
            summary = await self.summarizer.summarize(contents)
        except OracleError as e:
            _LOG.error("Could not summarize segment %d, leaving it on disk: %s", index, e)
            return None

        try:
            summary_id = await asyncio.to_thread(self.store.insert_summary, summary)
        except StoreError as e:
            _LOG.error(
                "Could not insert summary of segment %d, leaving it on disk: %s (summary: %s)",
                index,
                e,
                summary[:120],
            )
            return None
        _LOG.info("Wrote summary %d for segment %d", summary_id, index)

        self._delete(index)
        return summary_id

    def _delete(self, index: int) -> None:
        try:
            self.segments.delete(index)
        except OSError as e:
            _LOG.error("Could not delete segment %d: %s", index, e)
            return
        _LOG.info("Deleted segment %d", index)

    async def run(self) -> None:
        """Consume summarize requests for the lifetime of the process."""
        while True:
            request = await self.requests.get()
            try:
                await self.process(request)
            except Exception:
                _LOG.exception("Unexpected error while summarizing segment %d", request.index)
            finally:
                self.requests.task_done()
