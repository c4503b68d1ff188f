"""Fire-and-forget conversation title synthesis.

Titles are generated in background tasks so a chat turn returns without
waiting on the title generator.
"""

import asyncio
import logging
from typing import Sequence

from chat_models import MAIN_BRANCH_ID, ChatMessage, Conversation, MessageRole
from forkchat.services.conversations import ConversationManager

logger = logging.getLogger(__name__)


def needs_title(
    conversation: Conversation, branch_id: str, prior_history: Sequence[ChatMessage]
) -> bool:
    """True when the next user message is the first on main of an untitled conversation."""
    if conversation.title or branch_id != MAIN_BRANCH_ID:
        return False
    return not any(message.role == MessageRole.USER for message in prior_history)


class TitleSynthesizer:
    """Spawns title synthesis tasks that are never joined by the requester."""

    def __init__(self, conversations: ConversationManager):
        self._conversations = conversations
        self._tasks: set[asyncio.Task] = set()

    def trigger(self, conversation_id: str, seed_text: str) -> asyncio.Task:
        """Schedule title synthesis and return immediately.

        The task is independent of the caller: cancelling the request that
        triggered it does not cancel the title update.
        """
        task = asyncio.create_task(
            self._conversations.maybe_synthesize_title(conversation_id, seed_text),
            name=f"title-{conversation_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug(f"Scheduled title synthesis for conversation {conversation_id}")
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for all outstanding title tasks (shutdown and tests)."""
        while self._tasks:
            tasks = list(self._tasks)
            await asyncio.gather(*tasks, return_exceptions=True)
            self._tasks.difference_update(tasks)
