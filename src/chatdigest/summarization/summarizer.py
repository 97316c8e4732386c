"""Summary generation through an LLM backend."""

from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence

_LOG = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a summarizer of large amount of content for a technical team. "
    "Summarize the following thoroughly:"
)


class OracleError(RuntimeError):
    """Raised when the summarization backend fails for any reason."""


class LLMProtocol(Protocol):
    """Protocol for LLM interface."""

    async def generate(self, prompt: str | Sequence[dict[str, Any]]) -> str:
        """Generate text from a prompt or a list of role/content messages."""
        ...


class Summarizer:
    """Wraps an LLM backend with the fixed summarization instruction.

    Every failure (transport, status, rate limit, unusable response) surfaces
    as :class:`OracleError`. Calls are never retried here; the caller keeps
    its input around so a later attempt is possible.
    """

    def __init__(self, llm: LLMProtocol, system_prompt: str = SYSTEM_PROMPT):
        """
        Initialize summarizer.

        Args:
            llm: LLM instance that implements generate() method
            system_prompt: Instruction sent ahead of every text
        """
        self.llm = llm
        self.system_prompt = system_prompt

    def build_messages(self, text: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": text},
        ]

    async def summarize(self, text: str) -> str:
        """
        Summarize arbitrary-length text.

        Args:
            text: Content to summarize

        Returns:
            Summary text

        Raises:
            OracleError: If the backend call fails or returns nothing usable
        """
        try:
            result = await self.llm.generate(self.build_messages(text))
        except OracleError:
            raise
        except Exception as e:
            raise OracleError(f"Summarization request failed: {e}") from e

        if not isinstance(result, str):
            raise OracleError(f"Malformed summarization response: {type(result).__name__}")
        summary = result.strip()
        if not summary:
            raise OracleError("Summarization response was empty")
        return summary
