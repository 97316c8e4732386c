"""Periodic roll-up of new summaries into a daily digest."""

from __future__ import annotations

import asyncio
import logging

from chatdigest.digest_db import DigestStore, StoreError, utcnow

from .summarizer import OracleError, Summarizer

_LOG = logging.getLogger(__name__)


class RecapAggregator:
    """Builds a digest from every summary at or after the previous digest.

    All state lives in the store: each tick re-reads the newest digest
    timestamp as its watermark, so ticks are independent and restart-safe.
    """

    def __init__(self, store: DigestStore, summarizer: Summarizer, interval_seconds: float):
        self.store = store
        self.summarizer = summarizer
        self.interval_seconds = interval_seconds
        self._stopped = asyncio.Event()

    async def run_once(self) -> int | None:
        """Run one recap. Returns the new digest id, or None if nothing was written."""
        _LOG.info("Running daily recap of summaries...")
        # Summaries committed after this instant stay eligible for the next digest.
        selected_at = utcnow()

        try:
            watermark = await asyncio.to_thread(self.store.latest_digest_timestamp)
            summaries = await asyncio.to_thread(self.store.fetch_summaries_since, watermark)
        except StoreError as e:
            _LOG.error("Could not load summaries for daily recap: %s", e)
            return None

        if not summaries:
            _LOG.info("No summaries to recap")
            return None

        summary_ids = [s.id for s in summaries]
        combined = " ".join(s.text for s in summaries)
        try:
            digest = await self.summarizer.summarize(combined)
        except OracleError as e:
            _LOG.error("Could not summarize daily digest of %d summaries: %s", len(summary_ids), e)
            return None
        _LOG.info("Obtained a summarized daily digest: %s", digest[:120])

        try:
            digest_id = await asyncio.to_thread(
                self.store.insert_daily_digest, digest, summary_ids, timestamp=selected_at
            )
        except StoreError as e:
            _LOG.error("Could not insert daily digest into DB: %s", e)
            return None
        _LOG.info("Saved daily digest %d covering %d summaries", digest_id, len(summary_ids))
        return digest_id

    async def _tick(self) -> None:
        try:
            await self.run_once()
        except Exception:
            _LOG.exception("Unexpected error during daily recap")

    async def run(self) -> None:
        """Tick every ``interval_seconds`` until :meth:`stop` is called.

        The first tick fires immediately. A tick that overruns the interval
        is followed by exactly one tick right after it; missed intervals are
        not replayed.
        """
        loop = asyncio.get_running_loop()
        while not self._stopped.is_set():
            started = loop.time()
            await self._tick()
            delay = max(0.0, self.interval_seconds - (loop.time() - started))
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass

    def stop(self) -> None:
        self._stopped.set()
