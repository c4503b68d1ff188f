"""Append-only message storage within a branch."""

import logging
import uuid

from chat_models import Message, MessageRole
from forkchat.clock import MonotonicClock
from forkchat.db.paths import message_path, messages_collection
from forkchat.db.store import DocumentStore, Record
from forkchat.errors import NotFound
from forkchat.services.branches import BranchStore
from forkchat.services.conversations import ConversationManager

logger = logging.getLogger(__name__)


class MessageStore:
    """Appends messages to a branch and reads them back in timestamp order."""

    def __init__(
        self,
        store: DocumentStore,
        clock: MonotonicClock,
        branches: BranchStore,
        conversations: ConversationManager,
    ):
        self._store = store
        self._clock = clock
        self._branches = branches
        self._conversations = conversations

    async def append(
        self,
        conversation_id: str,
        branch_id: str,
        role: MessageRole | str,
        content: str,
    ) -> Message:
        """Append a message with a fresh ID and timestamp.

        The branch and conversation ``updated_at`` are bumped to the message
        timestamp afterwards, as separate writes.
        """
        role = MessageRole(role)
        message_id = str(uuid.uuid4())
        timestamp = self._clock.now()
        await self._store.set(
            message_path(conversation_id, branch_id, message_id),
            {"role": role.value, "content": content, "timestamp": timestamp},
        )
        logger.debug(f"Appended {role.value} message {message_id} to {conversation_id}/{branch_id}")

        await self._branches.touch(conversation_id, branch_id, at=timestamp)
        await self._conversations.touch(conversation_id, at=timestamp)

        return Message(
            id=message_id,
            conversation_id=conversation_id,
            branch_id=branch_id,
            role=role,
            content=content,
            timestamp=timestamp,
        )

    async def load_ordered(self, conversation_id: str, branch_id: str) -> list[Message]:
        """All messages of a branch, oldest first. Empty for a never-written branch."""
        return [message for _, message in await self.load_ordered_with_ids(conversation_id, branch_id)]

    async def load_ordered_with_ids(
        self, conversation_id: str, branch_id: str
    ) -> list[tuple[str, Message]]:
        """Like load_ordered, paired with each message ID for fork-point lookups."""
        try:
            children = await self._store.list_children_ordered(
                messages_collection(conversation_id, branch_id), "timestamp"
            )
        except NotFound:
            logger.debug(f"No messages yet for {conversation_id}/{branch_id}")
            return []
        return [
            (message_id, self._to_message(conversation_id, branch_id, message_id, record))
            for message_id, record in children
        ]

    def _to_message(
        self, conversation_id: str, branch_id: str, message_id: str, record: Record
    ) -> Message:
        return Message(
            id=message_id,
            conversation_id=conversation_id,
            branch_id=branch_id,
            role=MessageRole(record["role"]),
            content=record["content"],
            timestamp=record["timestamp"],
        )
