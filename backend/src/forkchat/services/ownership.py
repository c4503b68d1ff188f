"""Single-owner access checks for conversations."""

import logging

from forkchat.db.paths import conversation_path
from forkchat.db.store import DocumentStore
from forkchat.errors import OwnershipViolation

logger = logging.getLogger(__name__)


class OwnershipGuard:
    """Decides whether an authenticated user may access a conversation."""

    def __init__(self, store: DocumentStore):
        self._store = store

    async def is_owner(self, conversation_id: str, user_id: str) -> bool:
        """True if user_id owns the conversation. False if it does not exist."""
        record = await self._store.get(conversation_path(conversation_id))
        if record is None:
            return False
        return record["owner_user_id"] == user_id

    async def require_owner(self, conversation_id: str, user_id: str) -> None:
        if not await self.is_owner(conversation_id, user_id):
            logger.warning(f"User {user_id} denied access to conversation {conversation_id}")
            raise OwnershipViolation(conversation_id, user_id)
