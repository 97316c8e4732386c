"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from chatdigest.digest_db import DigestStore
from chatdigest.summarization import SegmentStore, Summarizer


class DummyLLM:
    """Dummy LLM for testing."""

    def __init__(self, fail: bool = False):
        self.call_count = 0
        self.prompts = []
        self.fail = fail

    async def generate(self, prompt) -> str:
        """Generate a dummy summary, or fail like an unreachable backend."""
        self.call_count += 1
        self.prompts.append(prompt)
        if self.fail:
            raise ConnectionError("backend unreachable")
        return f"Summary #{self.call_count}"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def segment_dir(temp_dir):
    """Pre-provisioned segment directory."""
    path = temp_dir / "message_logs"
    path.mkdir()
    return path


@pytest.fixture
def segments(segment_dir):
    return SegmentStore(segment_dir)


@pytest.fixture
def temp_db(temp_dir):
    """Create a temporary database file."""
    yield str(temp_dir / "test.db")


@pytest.fixture
def store(temp_db):
    """Initialized digest store."""
    s = DigestStore(temp_db)
    s.init_db()
    return s


@pytest.fixture
def dummy_llm():
    return DummyLLM()


@pytest.fixture
def failing_llm():
    return DummyLLM(fail=True)


@pytest.fixture
def summarizer(dummy_llm):
    return Summarizer(dummy_llm)
