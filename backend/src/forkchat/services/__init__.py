"""Conversation store services."""

from forkchat.services.branches import BranchStore
from forkchat.services.chat_handler import ChatHandler, ChatResult
from forkchat.services.conversations import ConversationManager
from forkchat.services.forking import BranchForker, generate_branch_id
from forkchat.services.messages import MessageStore
from forkchat.services.ownership import OwnershipGuard
from forkchat.services.titles import TitleSynthesizer, needs_title

__all__ = [
    "BranchForker",
    "BranchStore",
    "ChatHandler",
    "ChatResult",
    "ConversationManager",
    "MessageStore",
    "OwnershipGuard",
    "TitleSynthesizer",
    "generate_branch_id",
    "needs_title",
]
