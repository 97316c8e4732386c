"""Runtime configuration read from the environment.

Secrets (Discord token, API keys) stay in .env / the process environment and
are picked up by the client libraries themselves. Everything the pipeline
needs is collected once into an immutable :class:`Settings` at startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_DB = Path(__file__).resolve().with_name("chatdigest.db")
DEFAULT_MESSAGE_LOG_DIR = Path("message_logs")


def _ids_from_env(name: str) -> frozenset[int]:
    raw = os.getenv(name, "") or ""
    return frozenset(int(x.strip()) for x in raw.split(",") if x.strip().isdigit())


def _int_from_env(name: str, default: int) -> int:
    raw = (os.getenv(name, "") or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    """Values consumed by the summarization pipeline and its outer surfaces."""

    message_log_dir: Path = DEFAULT_MESSAGE_LOG_DIR
    db_path: Path = DEFAULT_DB
    max_request_tokens: int = 6000
    digest_interval_seconds: int = 24 * 60 * 60
    queue_size: int = 100
    channel_ids: frozenset[int] = field(default_factory=frozenset)
    summarizer_api: str = "openai"
    summarizer_model: str = "gpt-4o"
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        return cls(
            message_log_dir=Path(os.getenv("MESSAGE_LOG_DIR", str(DEFAULT_MESSAGE_LOG_DIR))).expanduser(),
            db_path=Path(os.getenv("DIGEST_DB_PATH", str(DEFAULT_DB))).expanduser(),
            max_request_tokens=_int_from_env("MAX_REQUEST_TOKENS", 6000),
            digest_interval_seconds=_int_from_env("DIGEST_INTERVAL_SECONDS", 24 * 60 * 60),
            queue_size=_int_from_env("PIPELINE_QUEUE_SIZE", 100),
            channel_ids=_ids_from_env("SUMMARY_CHANNEL_IDS"),
            summarizer_api=os.getenv("SUMMARIZER_API", "openai").strip().lower(),
            summarizer_model=os.getenv("SUMMARIZER_MODEL", "gpt-4o").strip(),
            api_host=os.getenv("API_HOST", "0.0.0.0"),
            api_port=_int_from_env("API_PORT", 8080),
        )
