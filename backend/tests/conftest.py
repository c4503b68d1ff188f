"""Shared fixtures: in-memory store, stepping clock and mock generators."""

from datetime import datetime, timedelta, timezone

import pytest

from chat_models import MAIN_BRANCH_ID, MessageRole
from forkchat.clock import MonotonicClock
from forkchat.container import build_services
from forkchat.db import MemoryStore
from forkchat.errors import StorageFault
from forkchat.services.llm_mock import MockReplyGenerator, MockTitleGenerator

START = datetime(2025, 1, 1, tzinfo=timezone.utc)


class SteppingSource:
    """Wall clock stand-in that advances one second per reading."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        self.current += self.step
        return self.current


class FaultyStore(MemoryStore):
    """MemoryStore that fails writes under a path prefix after a quota is used up."""

    def __init__(self):
        super().__init__()
        self.fail_prefix: tuple[str, ...] | None = None
        self.writes_allowed = 0

    def fail_after(self, prefix: tuple[str, ...], writes_allowed: int = 0):
        self.fail_prefix = prefix
        self.writes_allowed = writes_allowed

    def _maybe_fail(self, path):
        if self.fail_prefix and path[: len(self.fail_prefix)] == self.fail_prefix:
            if self.writes_allowed <= 0:
                raise StorageFault(f"Injected fault writing {'/'.join(path)}")
            self.writes_allowed -= 1

    async def set(self, path, record):
        self._maybe_fail(path)
        await super().set(path, record)

    async def update(self, path, fields):
        self._maybe_fail(path)
        await super().update(path, fields)


@pytest.fixture
def clock():
    return MonotonicClock(SteppingSource())


@pytest.fixture
def store():
    return FaultyStore()


@pytest.fixture
def reply_generator():
    return MockReplyGenerator()


@pytest.fixture
def title_generator():
    return MockTitleGenerator()


@pytest.fixture
def services(store, clock, reply_generator, title_generator):
    return build_services(store, reply_generator, title_generator, clock)


@pytest.fixture
def seed_branch(services):
    """Create a conversation with a main branch holding alternating user/assistant messages."""

    async def _seed(conversation_id: str, owner: str, contents: list[str]):
        await services.conversations.get_or_create(conversation_id, owner)
        await services.branches.get_or_create(conversation_id, MAIN_BRANCH_ID)
        messages = []
        for i, content in enumerate(contents):
            role = MessageRole.USER if i % 2 == 0 else MessageRole.ASSISTANT
            messages.append(
                await services.messages.append(conversation_id, MAIN_BRANCH_ID, role, content)
            )
        return messages

    return _seed
