"""Shared Pydantic models for forkchat."""

from chat_models.conversation import (
    MAIN_BRANCH_ID,
    Branch,
    ChatMessage,
    Conversation,
    Message,
    MessageRole,
)

__all__ = [
    "MAIN_BRANCH_ID",
    "Branch",
    "ChatMessage",
    "Conversation",
    "Message",
    "MessageRole",
]
