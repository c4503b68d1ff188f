"""Conversation, branch and message models."""

from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field, model_validator

# Root branch of every conversation
MAIN_BRANCH_ID = "main"


class MessageRole(str, Enum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    """A role/content pair, as handed to the reply generator."""

    role: MessageRole = Field(..., description="Message role")
    content: str = Field(..., description="Message content")


class Message(ChatMessage):
    """A persisted message in a branch. Never updated after append."""

    id: str = Field(..., description="Message ID, assigned at append time")
    conversation_id: str = Field(..., description="Owning conversation ID")
    branch_id: str = Field(..., description="Owning branch ID")
    timestamp: datetime = Field(..., description="Append time, the ordering key within a branch")


class Branch(BaseModel):
    """One linear sequence of messages inside a conversation."""

    id: str = Field(..., description="Branch ID, unique within the conversation")
    conversation_id: str = Field(..., description="Owning conversation ID")
    parent_branch_id: str | None = Field(None, description="Branch this one was forked from")
    parent_message_id: str | None = Field(None, description="Message the fork was taken at")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last append timestamp")

    @model_validator(mode="after")
    def _check_parent(self) -> "Branch":
        if (self.parent_branch_id is None) != (self.parent_message_id is None):
            raise ValueError("parent_branch_id and parent_message_id must be set together")
        if self.id == MAIN_BRANCH_ID and self.parent_branch_id is not None:
            raise ValueError("the main branch cannot have a parent")
        return self

    @property
    def is_fork(self) -> bool:
        return self.parent_branch_id is not None


class Conversation(BaseModel):
    """A conversation tree owned by a single user."""

    id: str = Field(..., description="Unique conversation ID")
    owner_user_id: str = Field(..., description="Owning user ID, immutable")
    title: str | None = Field(None, description="Conversation title, synthesized lazily")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last activity timestamp")
