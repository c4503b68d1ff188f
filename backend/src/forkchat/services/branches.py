"""Branch records: the main branch and its forks."""

import logging
from datetime import datetime

from chat_models import MAIN_BRANCH_ID, Branch
from forkchat.clock import MonotonicClock
from forkchat.db.paths import branch_path, branches_collection
from forkchat.db.store import DocumentStore, Record

logger = logging.getLogger(__name__)


class BranchStore:
    """Creates, reads and touches branches within a conversation."""

    def __init__(self, store: DocumentStore, clock: MonotonicClock):
        self._store = store
        self._clock = clock

    async def get_or_create(
        self,
        conversation_id: str,
        branch_id: str,
        parent_branch_id: str | None = None,
        parent_message_id: str | None = None,
    ) -> Branch:
        """Return the branch, creating it if absent.

        An existing branch is returned unchanged; parent arguments only apply
        on creation.
        """
        if (parent_branch_id is None) != (parent_message_id is None):
            raise ValueError("parent_branch_id and parent_message_id must be given together")
        if branch_id == MAIN_BRANCH_ID and parent_branch_id is not None:
            raise ValueError("the main branch cannot have a parent")

        path = branch_path(conversation_id, branch_id)
        existing = await self._store.get(path)
        if existing is not None:
            return self._to_branch(conversation_id, branch_id, existing)

        now = self._clock.now()
        record = {
            "parent_branch_id": parent_branch_id,
            "parent_message_id": parent_message_id,
            "created_at": now,
            "updated_at": now,
        }
        if not await self._store.create(path, record):
            # Created concurrently; the stored record wins
            record = await self._store.get(path) or record
        else:
            logger.info(f"Created branch {branch_id} in conversation {conversation_id}")
        return self._to_branch(conversation_id, branch_id, record)

    async def get(self, conversation_id: str, branch_id: str) -> Branch | None:
        record = await self._store.get(branch_path(conversation_id, branch_id))
        if record is None:
            return None
        return self._to_branch(conversation_id, branch_id, record)

    async def list_for_conversation(self, conversation_id: str) -> list[Branch]:
        """All branches of a conversation, in no particular order."""
        children = await self._store.list_children(branches_collection(conversation_id))
        return [self._to_branch(conversation_id, bid, record) for bid, record in children]

    async def touch(self, conversation_id: str, branch_id: str, at: datetime | None = None):
        await self._store.update(
            branch_path(conversation_id, branch_id),
            {"updated_at": at or self._clock.now()},
        )

    def _to_branch(self, conversation_id: str, branch_id: str, record: Record) -> Branch:
        return Branch(
            id=branch_id,
            conversation_id=conversation_id,
            parent_branch_id=record.get("parent_branch_id"),
            parent_message_id=record.get("parent_message_id"),
            created_at=record["created_at"],
            updated_at=record["updated_at"],
        )
