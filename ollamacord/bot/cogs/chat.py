"""
ChatCog — conversations via plain messages and reply chains.

Entry points:
  - Any message in an allowed channel or DM (optionally requiring an @mention
    in guilds) starts or continues the channel's conversation.
  - Replying to one of the bot's messages continues from that exact message.
  - ".clear" / ".reset" (configurable) or /reset forgets the conversation.

Replies to messages the bot is not tracking are ignored rather than starting
a fresh conversation.
"""

from __future__ import annotations

import re

import discord
from discord import app_commands
from discord.ext import commands

from ollamacord.config.logging import get_logger
from ollamacord.errors import UnknownReplyTargetError

logger = get_logger(__name__)

ERROR_REPLY = "Error, please check the console"


class ChatCog(commands.Cog):
    """Turns Discord messages into Ollama exchanges."""

    def __init__(self, bot) -> None:
        self.bot = bot

    # ------------------------------------------------------------------
    # Slash command
    # ------------------------------------------------------------------

    @app_commands.command(name="reset", description="Clear this channel's conversation")
    async def reset(self, interaction: discord.Interaction) -> None:
        """/reset — forget the conversation in the current channel."""
        cleared = self.bot.orchestrator.reset_conversation(interaction.channel_id)
        if cleared > 0:
            text = f"Cleared conversation of {cleared} messages"
        else:
            text = "There is no conversation to clear."
        await interaction.response.send_message(text, ephemeral=True)

    # ------------------------------------------------------------------
    # Message listener
    # ------------------------------------------------------------------

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        """
        Answer a message if it passes the gate.

        Ignores:
        - Messages from bots (including ourselves)
        - Guild messages in non-allowed channels (DMs are always allowed)
        - Empty messages and non-default, non-reply message types
        - Replies to anything but a tracked bot message
        - Plain guild messages that do not mention the bot (or its role) when
          mentions are required; @everyone does not count
        """
        if message.author.bot:
            return
        if message.guild is not None and not self.bot.is_allowed_channel(message.channel.id):
            return
        if not message.content:
            return

        reply_to = None
        if message.type == discord.MessageType.reply:
            reply_to = await self._resolve_reply_target(message)
            if reply_to is None:
                return
        elif message.type != discord.MessageType.default:
            return
        elif (
            self.bot.settings.bot.requires_mention
            and message.guild is not None
            and not self._is_addressed(message)
        ):
            return

        channel_id = message.channel.id
        user_input = _strip_mention(message.clean_content, self.bot.user, message.guild)

        if user_input in self.bot.settings.bot.reset_commands:
            cleared = self.bot.orchestrator.reset_conversation(channel_id)
            if cleared > 0:
                await message.reply(f"Cleared conversation of {cleared} messages")
            return

        if not user_input:
            return

        logger.debug(f"{_describe_channel(message)} - {message.author.name}: {user_input}")

        try:
            async with message.channel.typing():
                await self.bot.orchestrator.handle_message(
                    channel_id,
                    user_input,
                    reply_to=reply_to,
                    deliver=_deliverer(message),
                    intro=self._intro(message),
                )
        except UnknownReplyTargetError as e:
            logger.debug(f"Ignoring reply: {e}")
        except Exception as e:
            logger.exception(f"Exchange failed in channel {channel_id}: {e}")
            try:
                await message.reply(ERROR_REPLY)
            except discord.HTTPException as reply_error:
                logger.debug(f"Could not report the error to the user: {reply_error}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _is_addressed(self, message: discord.Message) -> bool:
        """
        True if the message mentions the bot directly or its managed role.

        @everyone and @here do not count.
        """
        if self.bot.user in message.mentions:
            return True
        role = message.guild.self_role if message.guild is not None else None
        return role is not None and role in message.role_mentions

    async def _resolve_reply_target(self, message: discord.Message) -> int | None:
        """
        Return the ID of the bot message being replied to, if it is tracked.

        Uses the cached referenced message when discord.py already resolved
        it, otherwise fetches it.
        """
        reference = message.reference
        if reference is None or reference.message_id is None:
            return None

        target = reference.resolved
        if not isinstance(target, discord.Message):
            try:
                target = await message.channel.fetch_message(reference.message_id)
            except discord.HTTPException as e:
                logger.debug(f"Could not fetch referenced message {reference.message_id}: {e}")
                return None

        if target.author.id != self.bot.user.id:
            return None
        if not self.bot.store.is_tracked_reply(message.channel.id, target.id):
            return None
        return target.id

    def _intro(self, message: discord.Message) -> str | None:
        """Hint shown at the top of the first answer in a conversation."""
        settings = self.bot.settings.bot
        if not settings.show_intro or not settings.reset_commands:
            return None
        mention = f"<@{self.bot.user.id}> " if message.guild is not None else ""
        return (
            f'> This is the beginning of the conversation, type '
            f'"{mention}{settings.reset_commands[0]}" to clear the conversation.'
        )


def _deliverer(message: discord.Message):
    """Build the deliver callback: first segment as a reply, the rest as follow-ups."""

    async def deliver(segments: list[str]) -> list[int]:
        sent: list[int] = []
        for index, content in enumerate(segments):
            if index == 0:
                reply = await message.reply(content, suppress_embeds=True)
            else:
                reply = await message.channel.send(content, suppress_embeds=True)
            sent.append(reply.id)
        return sent

    return deliver


def _describe_channel(message: discord.Message) -> str:
    if message.guild is None:
        return "DMs"
    return f"#{message.channel.name}"


def _strip_mention(
    text: str,
    bot_user: discord.ClientUser,
    guild: discord.Guild | None = None,
) -> str:
    """
    Remove the bot's own mentions from text and return the trimmed remainder.

    Handles the raw forms (<@ID>, <@!ID>, <@&ROLE_ID>) and the rendered
    clean_content forms: @Username, @GuildNickname and @ManagedRoleName.
    Mentions of other users are left alone.
    """
    text = re.sub(rf"<@!?{bot_user.id}>", "", text)
    names = [bot_user.display_name, bot_user.name]

    if guild is not None:
        if guild.me is not None:
            names.append(guild.me.display_name)
        role = guild.self_role
        if role is not None:
            text = text.replace(f"<@&{role.id}>", "")
            names.append(role.name)

    # Longest first so "@Bot" is not left as "t" after stripping "@Bo"
    for name in sorted(filter(None, names), key=len, reverse=True):
        text = text.replace(f"@{name}", "")
    return text.strip()
