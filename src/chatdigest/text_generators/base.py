from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence, Union


class TextGeneratorAPI(ABC):
    """Abstract base class for text generator providers."""

    @abstractmethod
    async def generate(self, prompt: Union[str, Sequence[dict[str, Any]]]) -> str:
        """Return generated text for a prompt or a list of role/content messages."""
        raise NotImplementedError
