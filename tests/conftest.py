"""Shared fixtures: deterministic ids and a controllable clock."""

from datetime import datetime, timedelta, timezone

import pytest

from chat_history.services.conversation_store import ConversationStore


class SequentialIds:
    """Id generator yielding ``<prefix>-1``, ``<prefix>-2``, ..."""

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix
        self.count = 0

    def next(self) -> str:
        self.count += 1
        return f"{self.prefix}-{self.count}"


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1.0) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store_kwargs(clock):
    return {
        "conversation_ids": SequentialIds("C"),
        "message_ids": SequentialIds("M"),
        "clock": clock,
    }


@pytest.fixture
def store(store_kwargs) -> ConversationStore:
    return ConversationStore(**store_kwargs)


@pytest.fixture
def events(store):
    """Every state the store emits, in order."""
    received = []
    store.subscribe(received.append)
    return received
