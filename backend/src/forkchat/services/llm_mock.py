"""Mock reply and title generators for fast testing without API calls.

Responses are canned and deterministic so chat flows can be exercised
end to end offline.
"""

import logging
import re
from typing import Sequence

from chat_models import ChatMessage
from forkchat.errors import GenerationError

logger = logging.getLogger(__name__)

GREETING_PATTERNS = [
    r"^(hi|hello|hey|greetings|good\s+(morning|afternoon|evening))[\s!.,]*$",
]

TITLE_WORDS = 5


class MockReplyGenerator:
    """Provides predictable mock replies for testing."""

    def __init__(self, replies: Sequence[str] | None = None, fail: bool = False):
        self._replies = list(replies or [])
        self.fail = fail
        self.calls: list[list[ChatMessage]] = []

    async def generate(self, history: Sequence[ChatMessage]) -> str:
        self.calls.append(list(history))
        if self.fail:
            raise GenerationError("Mock reply generator configured to fail")
        if self._replies:
            return self._replies.pop(0)

        latest = history[-1].content.strip() if history else ""
        if any(re.match(p, latest, re.IGNORECASE) for p in GREETING_PATTERNS):
            return "Hi there"
        logger.debug(f"[MOCK] Echoing reply for {len(history)} messages")
        return f"You said: {latest}"


class MockTitleGenerator:
    """Derives a title from the first words of the seed text."""

    def __init__(self, title: str | None = None, fail: bool = False):
        self._title = title
        self.fail = fail
        self.calls: list[str] = []

    async def summarize(self, seed_text: str) -> str:
        self.calls.append(seed_text)
        if self.fail:
            raise GenerationError("Mock title generator configured to fail")
        if self._title is not None:
            return self._title
        words = re.findall(r"\w+", seed_text)[:TITLE_WORDS]
        return " ".join(words).capitalize() or "New conversation"
