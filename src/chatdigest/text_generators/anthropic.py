"""Text-generation backend that calls Anthropic's Claude models."""
from __future__ import annotations

import logging
import os
from typing import Dict, Sequence, Union, TypedDict, Any, List

from anthropic import AsyncAnthropic, APIError, APIConnectionError, RateLimitError

from .base import TextGeneratorAPI

_log = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
# A single shared client is plenty; reuse it across all requests              #
# --------------------------------------------------------------------------- #
_CLIENT_CACHE: Dict[str, AsyncAnthropic] = {}


class _Message(TypedDict):
    role: str
    content: str


class AnthropicTextGenerator(TextGeneratorAPI):
    """Generate text using Anthropic's Claude models.

    The class relies on the ``anthropic`` package and an ``ANTHROPIC_API_KEY``
    environment variable being present.

    ``prompt`` may be either a single user string or a list of role/content
    messages. Messages with role "system" are moved to the top-level
    ``system`` parameter as the Messages API requires. ``max_tokens`` comes
    from ANTHROPIC_MAX_TOKENS (4096 by default).
    """

    def __init__(self, model: str = "claude-sonnet-4-5") -> None:
        self.model = model

    # ---------------------------------------------------------------- helpers

    def _get_client(self) -> AsyncAnthropic:
        """Return (and cache) a shared ``AsyncAnthropic`` client instance."""
        if "default" not in _CLIENT_CACHE:
            _CLIENT_CACHE["default"] = AsyncAnthropic(max_retries=0)  # picks up API key
        return _CLIENT_CACHE["default"]

    @staticmethod
    def _split_system(messages: Sequence[_Message]) -> tuple[str | None, List[Dict[str, Any]]]:
        system_parts: List[str] = []
        cleaned: List[Dict[str, Any]] = []
        for m in messages:
            role = (m.get("role") or "").lower()
            if role == "system":
                system_parts.append(str(m.get("content") or ""))
            else:
                cleaned.append({"role": role, "content": m.get("content")})
        system_text = "\n\n".join(p for p in system_parts if p).strip() or None
        return system_text, cleaned

    # ---------------------------------------------------------------- public

    async def generate(
        self,
        prompt: Union[str, Sequence[_Message]],
        temperature: float = 1.0,
    ) -> str:
        """Return Claude's reply for *prompt* as a plain string."""
        if isinstance(prompt, str):
            messages: List[_Message] = [{"role": "user", "content": prompt}]
        elif isinstance(prompt, Sequence):
            if not all(isinstance(m, dict) and "role" in m and "content" in m for m in prompt):
                raise TypeError("Each message must be a dict with 'role' and 'content' keys")
            messages = list(prompt)  # type: ignore[arg-type]
        else:
            raise TypeError("prompt must be either a string or a sequence of message dicts")

        system_text, cleaned = self._split_system(messages)
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": int(os.getenv("ANTHROPIC_MAX_TOKENS", "4096")),
            "messages": cleaned,
            "temperature": temperature,
        }
        if system_text:
            kwargs["system"] = system_text

        client = self._get_client()
        try:
            response = await client.messages.create(**kwargs)
        except RateLimitError as e:
            _log.warning("Anthropic rate limit hit for model %s: %s", self.model, e)
            raise
        except APIConnectionError as e:
            _log.error("Anthropic connection error for model %s: %s", self.model, e)
            raise
        except APIError as e:
            _log.error("Anthropic API error for model %s: %s", self.model, e.message)
            raise

        # SDK returns a list of content blocks; aggregate text blocks.
        parts: List[str] = []
        for block in getattr(response, "content", []) or []:
            text = getattr(block, "text", None)
            if text:
                parts.append(text)
        return "".join(parts).strip()
