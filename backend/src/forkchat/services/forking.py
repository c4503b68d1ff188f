"""Copy-on-branch forking of a conversation at a chosen message."""

import logging
import re
from datetime import datetime

from chat_models import Branch
from forkchat.clock import MonotonicClock
from forkchat.errors import MessageNotFound
from forkchat.services.branches import BranchStore
from forkchat.services.messages import MessageStore

logger = logging.getLogger(__name__)

DEFAULT_BRANCH_PREFIX = "branch"
MAX_SLUG_LENGTH = 40
MESSAGE_ID_FRAGMENT = 8


def slugify(name: str) -> str:
    """Lowercase name reduced to [a-z0-9-], trimmed to MAX_SLUG_LENGTH."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug[:MAX_SLUG_LENGTH].rstrip("-")


def generate_branch_id(cut_message_id: str, name: str | None, now: datetime) -> str:
    """Build a legible branch ID from the thread name, time and cut message.

    Example: ``greeting-1760860800000-3f2a9c1b``. Uniqueness is not checked.
    """
    prefix = slugify(name) if name else ""
    millis = int(now.timestamp() * 1000)
    return f"{prefix or DEFAULT_BRANCH_PREFIX}-{millis}-{cut_message_id[:MESSAGE_ID_FRAGMENT]}"


class BranchForker:
    """Creates a branch whose history is a copy of another branch's prefix."""

    def __init__(self, branches: BranchStore, messages: MessageStore, clock: MonotonicClock):
        self._branches = branches
        self._messages = messages
        self._clock = clock

    async def fork(
        self,
        conversation_id: str,
        source_branch_id: str,
        cut_message_id: str,
        *,
        branch_id: str | None = None,
        name: str | None = None,
    ) -> Branch:
        """Fork source_branch_id at cut_message_id (inclusive).

        The new branch gets copies of every message up to and including the
        cut point, with new IDs and timestamps and the original order. If a
        copy fails the branch is left partially populated.

        Raises:
            MessageNotFound: cut_message_id is not in the source branch.
            ValueError: an explicit branch_id names a branch that already exists.
        """
        history = await self._messages.load_ordered_with_ids(conversation_id, source_branch_id)
        cut_index = next(
            (i for i, (message_id, _) in enumerate(history) if message_id == cut_message_id),
            None,
        )
        if cut_index is None:
            raise MessageNotFound(cut_message_id, source_branch_id)
        if branch_id and await self._branches.get(conversation_id, branch_id) is not None:
            raise ValueError(f"Branch {branch_id} already exists in conversation {conversation_id}")

        new_branch_id = branch_id or generate_branch_id(cut_message_id, name, self._clock.now())
        branch = await self._branches.get_or_create(
            conversation_id,
            new_branch_id,
            parent_branch_id=source_branch_id,
            parent_message_id=cut_message_id,
        )

        for _, message in history[: cut_index + 1]:
            await self._messages.append(
                conversation_id, new_branch_id, message.role, message.content
            )

        logger.info(
            f"Forked {conversation_id}/{source_branch_id} at {cut_message_id} "
            f"into {new_branch_id} ({cut_index + 1} messages)"
        )
        return branch
