"""Reply and title generation via the Claude Agent SDK."""

import logging
from typing import Protocol, Sequence

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ResultMessage,
    TextBlock,
    query,
)

from chat_models import ChatMessage, MessageRole
from forkchat.errors import GenerationError

logger = logging.getLogger(__name__)

_ROLE_LABELS = {
    MessageRole.USER: "User",
    MessageRole.ASSISTANT: "Assistant",
    MessageRole.SYSTEM: "System",
}


class ReplyGenerator(Protocol):
    async def generate(self, history: Sequence[ChatMessage]) -> str:
        """Produce the assistant reply to an ordered history ending in a user message."""
        ...


class TitleGenerator(Protocol):
    async def summarize(self, seed_text: str) -> str:
        """Produce a short conversation title from its first user message."""
        ...


def format_conversation_history(messages: Sequence[ChatMessage]) -> str:
    """Format conversation history for inclusion in prompt."""
    return "\n\n".join(f"{_ROLE_LABELS[msg.role]}: {msg.content}" for msg in messages)


def build_reply_prompt(history: Sequence[ChatMessage]) -> str:
    """Build the prompt for the latest message with earlier turns as context."""
    if not history:
        raise ValueError("history must contain at least the new user message")
    *earlier, latest = history
    if not earlier:
        return latest.content
    return f"""Continue this conversation naturally, taking into account the full context above.

[Conversation so far]
{format_conversation_history(earlier)}

{_ROLE_LABELS[latest.role]}: {latest.content}

Respond to the user's latest message."""


def clean_title(raw: str, max_length: int) -> str:
    """First non-empty line, without quotes or a "Title:" label, capped at max_length."""
    line = next((part.strip() for part in raw.splitlines() if part.strip()), "")
    if line.lower().startswith("title:"):
        line = line[len("title:"):].strip()
    line = line.strip("\"'*# ").strip()
    if len(line) > max_length:
        line = line[: max_length - 1].rstrip() + "…"
    return line


async def collect_text(prompt: str, model: str) -> str:
    """Run a single-turn query and join the assistant text blocks."""
    options = ClaudeAgentOptions(
        model=model,
        permission_mode="bypassPermissions",
        max_turns=1,
    )

    collected_text: list[str] = []
    try:
        async for msg in query(prompt=prompt, options=options):
            if isinstance(msg, AssistantMessage):
                for block in msg.content:
                    if isinstance(block, TextBlock):
                        collected_text.append(block.text)
            elif isinstance(msg, ResultMessage):
                if msg.is_error:
                    raise GenerationError(msg.result or "Unknown error")
    except GenerationError:
        raise
    except Exception as e:
        raise GenerationError(f"Claude Agent SDK error: {e}") from e

    return "\n".join(collected_text)


class ClaudeReplyGenerator:
    """ReplyGenerator backed by Claude."""

    def __init__(self, model: str):
        self.model = model

    async def generate(self, history: Sequence[ChatMessage]) -> str:
        text = await collect_text(build_reply_prompt(history), self.model)
        if not text.strip():
            raise GenerationError("Empty response from Claude")
        logger.info(f"Generated reply ({len(text)} chars) for {len(history)} messages")
        return text


class ClaudeTitleGenerator:
    """TitleGenerator backed by Claude."""

    def __init__(self, model: str, max_length: int = 80):
        self.model = model
        self.max_length = max_length

    async def summarize(self, seed_text: str) -> str:
        prompt = f"""Write a short title (at most six words) for a conversation that begins with the message below.
Reply with the title only, without quotes or punctuation at the end.

Message:
{seed_text}"""
        return clean_title(await collect_text(prompt, self.model), self.max_length)
