"""SQLite persistence for summaries and daily digests.

A summary is created once by the summary worker and may later be linked to
exactly one daily digest. Digests and their links are written in a single
transaction so a digest never exists half-linked.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

_LOG = logging.getLogger(__name__)

# Timestamps are stored as naive UTC text in a fixed-width format so that
# SQL comparisons on the column order the same way the datetimes do.
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


class StoreError(RuntimeError):
    """Raised when a store operation fails (including aborted transactions)."""


@dataclass
class Summary:
    """Summary of one closed message segment."""

    id: int
    daily_digest_id: int | None
    text: str
    timestamp: datetime


@dataclass
class DailyDigest:
    """Aggregate of the summaries linked to it."""

    id: int
    text: str
    timestamp: datetime
    summaries: list[Summary] = field(default_factory=list)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_timestamp(ts: datetime) -> str:
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(raw: str) -> datetime:
    return datetime.fromisoformat(raw)


class DigestStore:
    """Database interface shared by the pipeline stages and the HTTP API."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)

    # ==================== Database Connection ====================

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and rolls back on error.

        Any ``sqlite3.Error`` raised inside the block is re-raised as
        :class:`StoreError`.
        """
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise StoreError(f"Could not open database {self.db_path}: {e}") from e
        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create required tables if they don't exist."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        with self._get_connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS daily_digests (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    text TEXT NOT NULL,
                    timestamp TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS summaries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    daily_digest_id INTEGER,
                    text TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    FOREIGN KEY (daily_digest_id) REFERENCES daily_digests(id)
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_summaries_timestamp ON summaries(timestamp)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_daily_digests_timestamp ON daily_digests(timestamp)"
            )

    # ==================== Summaries ====================

    def insert_summary(self, text: str, timestamp: datetime | None = None) -> int:
        """Insert an unlinked summary and return its id."""
        ts = format_timestamp(timestamp or utcnow())
        with self._get_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO summaries (daily_digest_id, text, timestamp) VALUES (?, ?, ?)",
                (None, text, ts),
            )
            return cursor.lastrowid

    def fetch_summaries_since(self, watermark: datetime | None) -> list[Summary]:
        """Return summaries at or after ``watermark`` (all when None), oldest first."""
        with self._get_connection() as conn:
            if watermark is None:
                cursor = conn.execute(
                    "SELECT * FROM summaries ORDER BY timestamp ASC, id ASC"
                )
            else:
                cursor = conn.execute(
                    """
                    SELECT * FROM summaries
                    WHERE timestamp >= ?
                    ORDER BY timestamp ASC, id ASC
                    """,
                    (format_timestamp(watermark),),
                )
            return [self._row_to_summary(row) for row in cursor.fetchall()]

    def fetch_summaries(self) -> list[Summary]:
        """All summaries; an unavailable store yields an empty list."""
        try:
            return self.fetch_summaries_since(None)
        except StoreError as e:
            _LOG.error("Could not fetch summaries: %s", e)
            return []

    def fetch_latest_summaries(self, count: int, page: int) -> list[Summary]:
        """Page ``page`` (1-indexed) of ``count`` summaries, newest first."""
        offset = count * (page - 1)
        try:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    """
                    SELECT * FROM summaries
                    ORDER BY timestamp DESC, id DESC
                    LIMIT ? OFFSET ?
                    """,
                    (count, offset),
                )
                return [self._row_to_summary(row) for row in cursor.fetchall()]
        except StoreError as e:
            _LOG.error("Could not fetch summaries page %d (count %d): %s", page, count, e)
            return []

    def _row_to_summary(self, row: sqlite3.Row) -> Summary:
        return Summary(
            id=row["id"],
            daily_digest_id=row["daily_digest_id"],
            text=row["text"],
            timestamp=parse_timestamp(row["timestamp"]),
        )

    # ==================== Daily Digests ====================

    def latest_digest_timestamp(self) -> datetime | None:
        """Timestamp of the most recent digest, or None if there is none yet."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT timestamp FROM daily_digests ORDER BY timestamp DESC, id DESC LIMIT 1"
            )
            row = cursor.fetchone()
            return parse_timestamp(row["timestamp"]) if row else None

    def insert_daily_digest(
        self,
        text: str,
        summary_ids: Iterable[int],
        timestamp: datetime | None = None,
    ) -> int:
        """Insert a digest and link ``summary_ids`` to it in one transaction.

        Only summaries without a digest are linked; a summary that already
        belongs to a digest keeps its link. On any failure nothing is written.
        """
        ts = format_timestamp(timestamp or utcnow())
        with self._get_connection() as conn:
            digest_id = conn.execute(
                "INSERT INTO daily_digests (text, timestamp) VALUES (?, ?)",
                (text, ts),
            ).lastrowid
            for summary_id in summary_ids:
                conn.execute(
                    """
                    UPDATE summaries SET daily_digest_id = ?
                    WHERE id = ? AND daily_digest_id IS NULL
                    """,
                    (digest_id, summary_id),
                )
            return digest_id

    def fetch_daily_digests(self) -> list[DailyDigest]:
        """All digests with their linked summaries; empty list on store failure."""
        try:
            with self._get_connection() as conn:
                digests = [
                    DailyDigest(
                        id=row["id"],
                        text=row["text"],
                        timestamp=parse_timestamp(row["timestamp"]),
                    )
                    for row in conn.execute(
                        "SELECT id, text, timestamp FROM daily_digests ORDER BY timestamp ASC, id ASC"
                    ).fetchall()
                ]
                by_id = {d.id: d for d in digests}
                cursor = conn.execute(
                    """
                    SELECT * FROM summaries
                    WHERE daily_digest_id IS NOT NULL
                    ORDER BY timestamp ASC, id ASC
                    """
                )
                for row in cursor.fetchall():
                    digest = by_id.get(row["daily_digest_id"])
                    if digest is not None:
                        digest.summaries.append(self._row_to_summary(row))
                return digests
        except StoreError as e:
            _LOG.error("Could not fetch daily digests: %s", e)
            return []
