"""API-specific request and response models."""

from pydantic import BaseModel, Field

from chat_models import MAIN_BRANCH_ID, Conversation, Message


class ChatRequest(BaseModel):
    """Request model for sending a message."""

    message: str = Field(..., min_length=1, description="User message")
    conversation_id: str | None = Field(None, description="Existing or pre-allocated conversation ID")
    branch_id: str = Field(MAIN_BRANCH_ID, min_length=1, description="Branch to continue")


class ChatResponse(BaseModel):
    """Response model for chat interaction."""

    conversation_id: str
    branch_id: str
    user_message: Message
    message: Message


class ConversationListResponse(BaseModel):
    """Response model for list of conversations."""

    conversations: list[Conversation]
    total: int


class NewConversationResponse(BaseModel):
    """A pre-allocated conversation ID; the record is created on the first message."""

    id: str
    user_id: str
    message: str = "Conversation will be created when the first message is sent"


class CreateBranchRequest(BaseModel):
    """Request model for forking a branch at a message."""

    conversation_id: str = Field(..., min_length=1)
    parent_branch_id: str = Field(..., min_length=1)
    parent_message_id: str = Field(..., min_length=1)
    branch_id: str | None = Field(None, description="Explicit ID for the new branch")
    name: str | None = Field(None, description="Thread name, used in the generated branch ID")
