"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import itertools
import sys
from pathlib import Path
from typing import List

import pytest
from langchain_core.messages import AIMessage

# Ensure the project root is on the import path (for local runs without installing)
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from forum.agents import AgentBackend  # noqa: E402
from forum.manager import ConversationManager  # noqa: E402
from forum.ratelimit import RateLimiter  # noqa: E402
from forum.store import ConversationStore  # noqa: E402


class SpyChat:
    """Chat model stand-in that records every request and answers in order."""

    def __init__(self, replies: List[str] | None = None):
        self.replies = list(replies or [])
        self.calls: list[list] = []

    async def ainvoke(self, messages):
        self.calls.append(list(messages))
        n = len(self.calls)
        if self.replies:
            return AIMessage(content=self.replies.pop(0))
        return AIMessage(content=f"PUBLIC RESPONSE:\nreply {n}\n\nPRIVATE THOUGHTS:\nthought {n}")


class FailingChat:
    def __init__(self, error: Exception | None = None):
        self.error = error or ConnectionError("connection refused")
        self.calls = 0

    async def ainvoke(self, messages):
        self.calls += 1
        raise self.error


class FakeClock:
    """Injectable monotonic clock whose sleep just advances time."""

    def __init__(self, start: float = 0.0):
        self.t = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.t

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.t += seconds


@pytest.fixture
def store():
    s = ConversationStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def spy_chat() -> SpyChat:
    return SpyChat()


@pytest.fixture
def ms_clock():
    """Millisecond clock advancing one second per reading."""
    counter = itertools.count(1_700_000_000_000, 1000)
    return lambda: next(counter)


@pytest.fixture
def make_manager(store, ms_clock):
    def _make(chat=None, **kwargs) -> ConversationManager:
        backend = AgentBackend(chat or SpyChat(), RateLimiter(1000), provider_label="test")
        return ConversationManager(store, backend, clock=ms_clock, **kwargs)

    return _make
