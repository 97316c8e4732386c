"""Read-only HTTP API over stored summaries and daily digests.

Store failures are not surfaced: every endpoint degrades to an empty list.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime

from fastapi import FastAPI, Query
from pydantic import BaseModel

from chatdigest.digest_db import DigestStore


class SummaryOut(BaseModel):
    id: int
    daily_digest_id: int | None = None
    text: str
    timestamp: datetime


class DailyDigestOut(BaseModel):
    id: int
    text: str
    timestamp: datetime
    summaries: list[SummaryOut]


def create_app(store: DigestStore) -> FastAPI:
    """Build the API bound to ``store``."""
    app = FastAPI(title="Chat Digest API")

    @app.get("/summaries", response_model=list[SummaryOut])
    def summaries(
        count: int | None = Query(default=None, ge=1),
        page: int | None = Query(default=None, ge=1),
    ) -> list[SummaryOut]:
        """All summaries, or one page of the newest ones when ``count`` is given."""
        if count is not None:
            rows = store.fetch_latest_summaries(count, page or 1)
        else:
            rows = store.fetch_summaries()
        return [SummaryOut(**asdict(s)) for s in rows]

    @app.get("/daily_digests", response_model=list[DailyDigestOut])
    def daily_digests() -> list[DailyDigestOut]:
        """All digests with their summaries nested."""
        return [DailyDigestOut(**asdict(d)) for d in store.fetch_daily_digests()]

    return app
