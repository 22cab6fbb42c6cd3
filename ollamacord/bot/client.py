"""
OllamaCordBot — discord.py bot client.

Manages the full bot lifecycle:
- Builds the dispatch and conversation core once at startup
- Loads the ChatCog
- Syncs slash commands (guild-local for dev, global for production)
- Closes the HTTP client on shutdown via AsyncExitStack
"""

from __future__ import annotations

import discord
from contextlib import AsyncExitStack

from discord.ext import commands

from ollamacord.components import CoreComponents
from ollamacord.config.logging import get_logger
from ollamacord.config.settings import Settings
from ollamacord.conversation.store import ContextStore
from ollamacord.llm import ConversationOrchestrator

logger = get_logger(__name__)


class OllamaCordBot(commands.Bot):
    """
    Discord bot that answers through a pool of Ollama servers.

    Holds shared application state (context store, orchestrator) and exposes
    it to cogs. The dispatcher's HTTP client is managed via AsyncExitStack so
    it's closed when the bot shuts down.

    Args:
        settings: Full application settings (bot token, Ollama servers, etc.)
        components: Optional pre-built factory (tests inject a mock transport)
    """

    def __init__(self, settings: Settings, components: CoreComponents | None = None) -> None:
        intents = discord.Intents.default()
        intents.message_content = True  # Required to read message text
        super().__init__(
            command_prefix=settings.bot.command_prefix,
            intents=intents,
            allowed_mentions=discord.AllowedMentions.none(),
        )
        self.settings = settings
        self.components = components or CoreComponents(settings)
        self.store = ContextStore()
        self.orchestrator: ConversationOrchestrator | None = None
        self._exit_stack = AsyncExitStack()

    async def setup_hook(self) -> None:
        """
        Called after login, before connecting to the Gateway.

        Builds the core, loads cogs, and syncs slash commands.
        """
        # --- 1. Dispatcher (long-lived; one HTTP client for the bot's lifetime) ---
        pool = self.components.create_pool()
        logger.info(f"Backend pool: {', '.join(str(b.endpoint) for b in pool)}")
        dispatcher = await self._exit_stack.enter_async_context(
            self.components.create_dispatcher(pool)
        )

        # --- 2. Orchestrator ---
        self.orchestrator = self.components.create_orchestrator(dispatcher, self.store)
        logger.info(f"Orchestrator ready (model: {self.settings.ollama.model})")

        # --- 3. Load cogs ---
        from ollamacord.bot.cogs.chat import ChatCog
        await self.add_cog(ChatCog(self))
        logger.info("Cogs loaded")

        # --- 4. Sync slash commands ---
        try:
            if self.settings.bot.dev_guild_id:
                guild = discord.Object(id=self.settings.bot.dev_guild_id)
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)
                logger.info(f"Slash commands synced to dev guild {self.settings.bot.dev_guild_id} (instant)")
            else:
                await self.tree.sync()
                logger.info("Slash commands synced globally (may take up to 1 hour to propagate)")
        except discord.errors.Forbidden:
            logger.warning(
                "Could not sync slash commands (403 Forbidden). "
                "Re-invite the bot with both 'bot' and 'applications.commands' scopes. "
                "The bot still answers messages; only /reset is unavailable."
            )
        except Exception as e:
            logger.warning(f"Slash command sync failed: {e}. The bot will still start.")

    async def on_ready(self) -> None:
        """Called when the bot successfully connects to Discord."""
        await self.change_presence(activity=None, status=discord.Status.online)
        logger.info(f"Logged in as {self.user} (id: {self.user.id})")
        logger.info(f"Connected to {len(self.guilds)} guild(s)")

    async def close(self) -> None:
        """Graceful shutdown — close the HTTP client before disconnecting."""
        logger.info("Shutting down OllamaCord...")
        await self._exit_stack.aclose()
        await super().close()

    def is_allowed_channel(self, channel_id: int) -> bool:
        """
        Return True if the bot should respond in this guild channel.

        If `allowed_channel_ids` is empty (the default), the bot responds everywhere.
        If it's non-empty, the bot only responds in the listed channel IDs.
        """
        allowed = self.settings.bot.allowed_channel_ids
        return not allowed or channel_id in allowed
