"""Conversation lifecycle: get-or-create, listing, touch, title and cascading delete."""

import logging
from datetime import datetime

from chat_models import Conversation
from forkchat.clock import MonotonicClock
from forkchat.db.paths import (
    branch_path,
    branches_collection,
    conversation_path,
    conversations_collection,
    message_path,
    messages_collection,
)
from forkchat.db.store import DocumentStore, Record
from forkchat.errors import NotFound, OwnershipViolation
from forkchat.services.llm import TitleGenerator

logger = logging.getLogger(__name__)


class ConversationManager:
    """Owns Conversation records and the teardown of their branch/message trees."""

    def __init__(
        self,
        store: DocumentStore,
        clock: MonotonicClock,
        title_generator: TitleGenerator | None = None,
    ):
        self._store = store
        self._clock = clock
        self._title_generator = title_generator

    async def get_or_create(self, conversation_id: str, owner_user_id: str) -> Conversation:
        """Return the conversation, creating it for owner_user_id if absent.

        Raises:
            OwnershipViolation: the conversation exists and belongs to someone else.
        """
        path = conversation_path(conversation_id)
        record = await self._store.get(path)
        if record is None:
            now = self._clock.now()
            record = {
                "owner_user_id": owner_user_id,
                "title": None,
                "created_at": now,
                "updated_at": now,
            }
            if await self._store.create(path, record):
                logger.info(f"Created conversation {conversation_id} for user {owner_user_id}")
                return self._to_conversation(conversation_id, record)
            # Lost a creation race; re-read and check the winner
            record = await self._store.get(path)
            if record is None:
                raise NotFound(path)

        if record["owner_user_id"] != owner_user_id:
            raise OwnershipViolation(conversation_id, owner_user_id)
        return self._to_conversation(conversation_id, record)

    async def get(self, conversation_id: str) -> Conversation | None:
        record = await self._store.get(conversation_path(conversation_id))
        if record is None:
            return None
        return self._to_conversation(conversation_id, record)

    async def list_for_user(self, user_id: str) -> list[Conversation]:
        """Conversations owned by user_id, most recently active first."""
        children = await self._store.list_children(
            conversations_collection(), where={"owner_user_id": user_id}
        )
        conversations = [self._to_conversation(cid, record) for cid, record in children]
        conversations.sort(key=lambda c: c.updated_at, reverse=True)
        return conversations

    async def touch(self, conversation_id: str, at: datetime | None = None):
        await self._store.update(
            conversation_path(conversation_id),
            {"updated_at": at or self._clock.now()},
        )

    async def set_title(self, conversation_id: str, title: str) -> bool:
        """Store a title. Returns False if the conversation no longer exists."""
        try:
            await self._store.update(conversation_path(conversation_id), {"title": title})
        except NotFound:
            return False
        return True

    async def delete(self, conversation_id: str, requesting_user_id: str):
        """Delete a conversation with all of its branches and messages.

        Messages go first, then branches, then the conversation record.
        A fault part-way leaves the remaining records in place; nothing is
        rolled back. Deleting a conversation that is already gone is a no-op.
        """
        record = await self._store.get(conversation_path(conversation_id))
        if record is None:
            logger.info(f"Conversation {conversation_id} already deleted")
            return
        if record["owner_user_id"] != requesting_user_id:
            raise OwnershipViolation(conversation_id, requesting_user_id)

        branches = await self._store.list_children(branches_collection(conversation_id))
        deleted_messages = 0
        for branch_id, _ in branches:
            messages = await self._store.list_children(
                messages_collection(conversation_id, branch_id)
            )
            for message_id, _ in messages:
                await self._store.delete(message_path(conversation_id, branch_id, message_id))
                deleted_messages += 1

        for branch_id, _ in branches:
            await self._store.delete(branch_path(conversation_id, branch_id))

        await self._store.delete(conversation_path(conversation_id))
        logger.info(
            f"Deleted conversation {conversation_id}: "
            f"{len(branches)} branches, {deleted_messages} messages"
        )

    async def maybe_synthesize_title(self, conversation_id: str, seed_text: str) -> None:
        """Generate and store a title if the conversation is still untitled.

        Runs detached from the request that triggered it. Failures are logged
        and dropped, and a conversation deleted in the meantime is left alone.
        """
        try:
            conversation = await self.get(conversation_id)
            if conversation is None:
                logger.debug(f"Conversation {conversation_id} gone before title synthesis")
                return
            if conversation.title or self._title_generator is None:
                return

            title = (await self._title_generator.summarize(seed_text)).strip()
            if not title:
                logger.warning(f"Empty title generated for conversation {conversation_id}")
                return

            if await self.set_title(conversation_id, title):
                logger.info(f"Titled conversation {conversation_id}: {title!r}")
            else:
                logger.debug(f"Conversation {conversation_id} deleted before title was stored")
        except Exception as e:
            logger.error(f"Title synthesis failed for conversation {conversation_id}: {e}")

    def _to_conversation(self, conversation_id: str, record: Record) -> Conversation:
        return Conversation(
            id=conversation_id,
            owner_user_id=record["owner_user_id"],
            title=record.get("title"),
            created_at=record["created_at"],
            updated_at=record["updated_at"],
        )
