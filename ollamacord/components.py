"""
Core component factory.

Centralises the construction of the dispatch and conversation core from
settings, so the Discord bot, the CLI and tests wire things the same way.
"""

from __future__ import annotations

import httpx

from ollamacord.config.settings import Settings
from ollamacord.conversation.store import ContextStore
from ollamacord.dispatch.dispatcher import Dispatcher
from ollamacord.dispatch.pool import BackendPool
from ollamacord.llm.client import OllamaClient
from ollamacord.llm.orchestrator import ConversationOrchestrator


class CoreComponents:
    """
    Factory for building the core from settings.

    Example::

        factory = CoreComponents(settings)
        async with factory.create_dispatcher() as dispatcher:
            orchestrator = factory.create_orchestrator(dispatcher, ContextStore())
            segments = await orchestrator.handle_message(channel_id, "hello")

    Args:
        settings: Full application settings
        transport: Optional httpx transport passed to the dispatcher (tests)
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self._transport = transport

    def create_pool(self) -> BackendPool:
        """Create a BackendPool from the configured servers."""
        return BackendPool(self.settings.ollama.servers)

    def create_dispatcher(self, pool: BackendPool | None = None) -> Dispatcher:
        """Create a Dispatcher (an async context manager owning the HTTP client)."""
        ollama = self.settings.ollama
        return Dispatcher(
            pool or self.create_pool(),
            poll_interval=ollama.poll_interval,
            request_timeout=ollama.request_timeout,
            connect_timeout=ollama.connect_timeout,
            transport=self._transport,
        )

    def create_client(self, dispatcher: Dispatcher) -> OllamaClient:
        return OllamaClient(dispatcher, model=self.settings.ollama.model)

    def create_orchestrator(
        self,
        dispatcher: Dispatcher,
        store: ContextStore,
        max_segment_length: int | None = None,
    ) -> ConversationOrchestrator:
        """Create a ConversationOrchestrator on top of an open dispatcher."""
        return ConversationOrchestrator(
            client=self.create_client(dispatcher),
            store=store,
            settings=self.settings.ollama,
            max_segment_length=max_segment_length or self.settings.bot.message_limit,
        )
