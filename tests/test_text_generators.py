"""Tests for the OpenAI and Anthropic text generator backends."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chatdigest.summarization import Summarizer, OracleError
from chatdigest.text_generators import (
    AnthropicTextGenerator,
    OpenAIChatTextGenerator,
    get_text_generator,
)

MESSAGES = [
    {"role": "system", "content": "Summarize:"},
    {"role": "user", "content": "chat log"},
]


def openai_response(content):
    response = MagicMock()
    choice = MagicMock()
    choice.message.content = content
    response.choices = [choice]
    return response


def anthropic_response(*texts):
    response = MagicMock()
    blocks = []
    for text in texts:
        block = MagicMock()
        block.text = text
        blocks.append(block)
    response.content = blocks
    return response


class TestFactory:
    def test_openai(self):
        gen = get_text_generator("openai", "gpt-4o")
        assert isinstance(gen, OpenAIChatTextGenerator)
        assert gen.model == "gpt-4o"

    def test_anthropic(self):
        gen = get_text_generator("anthropic", "claude-sonnet-4-5")
        assert isinstance(gen, AnthropicTextGenerator)

    def test_unknown(self):
        with pytest.raises(ValueError):
            get_text_generator("carrier-pigeon", "x")


class TestOpenAI:
    @pytest.mark.asyncio
    async def test_passes_messages_through(self):
        gen = OpenAIChatTextGenerator("gpt-4o")
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=openai_response(" summary "))

        with patch.object(gen, "_get_client", return_value=client):
            result = await gen.generate(MESSAGES)

        assert result == "summary"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["messages"] == MESSAGES
        assert kwargs["max_tokens"] == 4096

    @pytest.mark.asyncio
    async def test_string_prompt_becomes_user_message(self):
        gen = OpenAIChatTextGenerator()
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=openai_response("ok"))

        with patch.object(gen, "_get_client", return_value=client):
            await gen.generate("hello")

        assert client.chat.completions.create.call_args.kwargs["messages"] == [
            {"role": "user", "content": "hello"}
        ]

    @pytest.mark.asyncio
    async def test_invalid_message_format_raises(self):
        with pytest.raises(TypeError):
            await OpenAIChatTextGenerator().generate([{"content": "missing role"}])

    @pytest.mark.asyncio
    async def test_connection_error_surfaces_as_oracle_error(self):
        from openai import APIConnectionError

        gen = OpenAIChatTextGenerator()
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            side_effect=APIConnectionError(message="Connection failed", request=MagicMock())
        )

        with patch.object(gen, "_get_client", return_value=client):
            with pytest.raises(APIConnectionError):
                await gen.generate("hello")
            with pytest.raises(OracleError):
                await Summarizer(gen).summarize("hello")

    @pytest.mark.asyncio
    async def test_no_choices_is_an_error(self):
        gen = OpenAIChatTextGenerator()
        client = MagicMock()
        empty = MagicMock()
        empty.choices = []
        client.chat.completions.create = AsyncMock(return_value=empty)

        with patch.object(gen, "_get_client", return_value=client):
            with pytest.raises(OracleError):
                await Summarizer(gen).summarize("hello")


class TestAnthropic:
    @pytest.mark.asyncio
    async def test_system_message_moves_to_top_level(self):
        gen = AnthropicTextGenerator("claude-sonnet-4-5")
        client = MagicMock()
        client.messages.create = AsyncMock(return_value=anthropic_response("Part one. ", "Part two."))

        with patch.object(gen, "_get_client", return_value=client):
            result = await gen.generate(MESSAGES)

        assert result == "Part one. Part two."
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["system"] == "Summarize:"
        assert kwargs["messages"] == [{"role": "user", "content": "chat log"}]

    @pytest.mark.asyncio
    async def test_rate_limit_error_propagates(self):
        from anthropic import RateLimitError

        gen = AnthropicTextGenerator()
        client = MagicMock()
        client.messages.create = AsyncMock(
            side_effect=RateLimitError("Rate limit exceeded", response=MagicMock(), body=None)
        )

        with patch.object(gen, "_get_client", return_value=client):
            with pytest.raises(RateLimitError):
                await gen.generate("Hello")

    @pytest.mark.asyncio
    async def test_empty_response_is_oracle_error(self):
        gen = AnthropicTextGenerator()
        client = MagicMock()
        client.messages.create = AsyncMock(return_value=anthropic_response())

        with patch.object(gen, "_get_client", return_value=client):
            with pytest.raises(OracleError):
                await Summarizer(gen).summarize("Hello")


class TestClientRetries:
    """The backends must not retry on their own; the pipeline decides."""

    def test_openai_client_does_not_retry(self, monkeypatch):
        from chatdigest.text_generators import openai_chatgpt

        monkeypatch.setenv("OPENAI_API_KEY", "test-key")
        monkeypatch.setattr(openai_chatgpt, "_CLIENT_CACHE", {})
        assert OpenAIChatTextGenerator()._get_client().max_retries == 0

    def test_anthropic_client_does_not_retry(self, monkeypatch):
        from chatdigest.text_generators import anthropic as anthropic_generator

        monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
        monkeypatch.setattr(anthropic_generator, "_CLIENT_CACHE", {})
        assert AnthropicTextGenerator()._get_client().max_retries == 0
