# text_generators/openai_chatgpt.py
from __future__ import annotations

from typing import Dict, Sequence, TypedDict, Union, List
import logging
import os

from openai import AsyncOpenAI, APIConnectionError, APIStatusError, RateLimitError

from .base import TextGeneratorAPI

_CLIENT_CACHE: Dict[str, AsyncOpenAI] = {}
_LOG = logging.getLogger(__name__)


class _Message(TypedDict):
    role: str
    content: str


def _normalize(prompt: Union[str, Sequence[_Message]]) -> List[_Message]:
    if isinstance(prompt, str):
        return [{"role": "user", "content": prompt}]
    if isinstance(prompt, Sequence):
        if not all(isinstance(m, dict) and "role" in m and "content" in m for m in prompt):
            raise TypeError("Each message must be a dict with 'role' and 'content' keys")
        return list(prompt)  # type: ignore[arg-type]
    raise TypeError("prompt must be a string or a sequence of message dicts")


class OpenAIChatTextGenerator(TextGeneratorAPI):
    """Text-generation backend for OpenAI chat models (default: gpt-4o).

    Requires OPENAI_API_KEY in the environment. The completion length is capped
    by OPENAI_MAX_TOKENS (default 4096).
    """

    def __init__(self, model: str = "gpt-4o") -> None:
        self.model = model

    def _get_client(self) -> AsyncOpenAI:
        if "default" not in _CLIENT_CACHE:
            # Retries are left to the caller.
            _CLIENT_CACHE["default"] = AsyncOpenAI(max_retries=0)  # picks up OPENAI_API_KEY
        return _CLIENT_CACHE["default"]

    async def generate(
        self,
        prompt: Union[str, Sequence[_Message]],
        *,
        temperature: float = 1.0,
    ) -> str:
        messages = _normalize(prompt)
        client = self._get_client()
        max_tokens = int(os.getenv("OPENAI_MAX_TOKENS", "4096"))

        try:
            resp = await client.chat.completions.create(
                model=self.model,
                messages=messages,  # type: ignore[arg-type]
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except RateLimitError as e:
            _LOG.warning("OpenAI rate limit hit for model %s: %s", self.model, e)
            raise
        except APIConnectionError as e:
            _LOG.error("OpenAI connection error for model %s: %s", self.model, e)
            raise
        except APIStatusError as e:
            _LOG.error("OpenAI API error for model %s (status %s): %s", self.model, e.status_code, e.message)
            raise

        if not resp.choices:
            raise ValueError(f"OpenAI returned no choices for model {self.model}")
        choice = resp.choices[0]
        return (choice.message.content or "").strip()
