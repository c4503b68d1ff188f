"""Service wiring around a single, explicitly owned store handle."""

import logging
from dataclasses import dataclass

from forkchat.clock import MonotonicClock
from forkchat.config import Settings
from forkchat.db import DocumentStore, create_store
from forkchat.services import (
    BranchForker,
    BranchStore,
    ChatHandler,
    ConversationManager,
    MessageStore,
    OwnershipGuard,
    TitleSynthesizer,
)
from forkchat.services.llm import (
    ClaudeReplyGenerator,
    ClaudeTitleGenerator,
    ReplyGenerator,
    TitleGenerator,
)
from forkchat.services.llm_mock import MockReplyGenerator, MockTitleGenerator

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Every component of the conversation store, sharing one store and clock."""

    store: DocumentStore
    clock: MonotonicClock
    guard: OwnershipGuard
    conversations: ConversationManager
    branches: BranchStore
    messages: MessageStore
    forker: BranchForker
    titles: TitleSynthesizer
    chat: ChatHandler

    async def start(self):
        """Open the store and create its tables."""
        await self.store.connect()
        await self.store.ensure_tables_exist()

    async def stop(self):
        """Let pending title tasks finish, then close the store."""
        await self.titles.drain()
        await self.store.disconnect()


def build_services(
    store: DocumentStore,
    reply_generator: ReplyGenerator,
    title_generator: TitleGenerator | None = None,
    clock: MonotonicClock | None = None,
) -> Services:
    clock = clock or MonotonicClock()
    guard = OwnershipGuard(store)
    conversations = ConversationManager(store, clock, title_generator)
    branches = BranchStore(store, clock)
    messages = MessageStore(store, clock, branches, conversations)
    forker = BranchForker(branches, messages, clock)
    titles = TitleSynthesizer(conversations)
    chat = ChatHandler(guard, conversations, branches, messages, forker, titles, reply_generator)
    return Services(
        store=store,
        clock=clock,
        guard=guard,
        conversations=conversations,
        branches=branches,
        messages=messages,
        forker=forker,
        titles=titles,
        chat=chat,
    )


def build_services_from_settings(settings: Settings) -> Services:
    """Build services with the configured store and LLM backends."""
    if settings.use_mock_llm:
        logger.info("Using mock reply and title generators")
        reply_generator: ReplyGenerator = MockReplyGenerator()
        title_generator: TitleGenerator = MockTitleGenerator()
    else:
        reply_generator = ClaudeReplyGenerator(settings.claude_model)
        title_generator = ClaudeTitleGenerator(
            settings.claude_title_model, max_length=settings.title_max_length
        )
    return build_services(create_store(settings), reply_generator, title_generator)
