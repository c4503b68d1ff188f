"""User-facing chat and branch flows with ownership checks."""

import logging
import uuid
from dataclasses import dataclass

from chat_models import (
    MAIN_BRANCH_ID,
    Branch,
    ChatMessage,
    Conversation,
    Message,
    MessageRole,
)
from forkchat.services.branches import BranchStore
from forkchat.services.conversations import ConversationManager
from forkchat.services.forking import BranchForker
from forkchat.services.llm import ReplyGenerator
from forkchat.services.messages import MessageStore
from forkchat.services.ownership import OwnershipGuard
from forkchat.services.titles import TitleSynthesizer, needs_title

logger = logging.getLogger(__name__)


@dataclass
class ChatResult:
    """Result of one chat turn."""

    conversation: Conversation
    branch_id: str
    user_message: Message
    assistant_message: Message


class ChatHandler:
    """Entry points for the routing layer. user_id is already authenticated."""

    def __init__(
        self,
        guard: OwnershipGuard,
        conversations: ConversationManager,
        branches: BranchStore,
        messages: MessageStore,
        forker: BranchForker,
        titles: TitleSynthesizer,
        reply_generator: ReplyGenerator,
    ):
        self._guard = guard
        self._conversations = conversations
        self._branches = branches
        self._messages = messages
        self._forker = forker
        self._titles = titles
        self._reply_generator = reply_generator

    async def send_message(
        self,
        user_id: str,
        content: str,
        conversation_id: str | None = None,
        branch_id: str = MAIN_BRANCH_ID,
    ) -> ChatResult:
        """Run a chat turn: load history, generate a reply, persist both messages.

        Nothing is written if the reply generator fails. The title is
        synthesized in the background after the first user message on main.
        """
        conversation_id = conversation_id or str(uuid.uuid4())
        conversation = await self._conversations.get_or_create(conversation_id, user_id)
        await self._branches.get_or_create(conversation_id, MAIN_BRANCH_ID)
        if branch_id != MAIN_BRANCH_ID:
            await self._branches.get_or_create(conversation_id, branch_id)

        history = await self._messages.load_ordered(conversation_id, branch_id)
        reply = await self._reply_generator.generate(
            [*history, ChatMessage(role=MessageRole.USER, content=content)]
        )

        user_message = await self._messages.append(
            conversation_id, branch_id, MessageRole.USER, content
        )
        if needs_title(conversation, branch_id, history):
            self._titles.trigger(conversation_id, content)
        assistant_message = await self._messages.append(
            conversation_id, branch_id, MessageRole.ASSISTANT, reply
        )

        conversation = await self._conversations.get(conversation_id) or conversation
        return ChatResult(
            conversation=conversation,
            branch_id=branch_id,
            user_message=user_message,
            assistant_message=assistant_message,
        )

    async def create_branch(
        self,
        user_id: str,
        conversation_id: str,
        parent_branch_id: str,
        parent_message_id: str,
        branch_id: str | None = None,
        name: str | None = None,
    ) -> Branch:
        await self._guard.require_owner(conversation_id, user_id)
        return await self._forker.fork(
            conversation_id,
            parent_branch_id,
            parent_message_id,
            branch_id=branch_id,
            name=name,
        )

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        return await self._conversations.list_for_user(user_id)

    async def list_branches(self, user_id: str, conversation_id: str) -> list[Branch]:
        """Branches oldest first. Empty for a conversation that does not exist yet."""
        if await self._conversations.get(conversation_id) is None:
            return []
        await self._guard.require_owner(conversation_id, user_id)
        branches = await self._branches.list_for_conversation(conversation_id)
        return sorted(branches, key=lambda b: (b.created_at, b.id))

    async def get_branch_messages(
        self, user_id: str, conversation_id: str, branch_id: str
    ) -> list[Message]:
        """Messages of a branch, oldest first. Empty for a conversation that does not exist yet."""
        if await self._conversations.get(conversation_id) is None:
            return []
        await self._guard.require_owner(conversation_id, user_id)
        return await self._messages.load_ordered(conversation_id, branch_id)

    async def delete_conversation(self, user_id: str, conversation_id: str):
        await self._conversations.delete(conversation_id, user_id)
