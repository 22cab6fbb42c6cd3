"""
Conversation Context Store.

Maps each channel's reply graph to the opaque continuation tokens Ollama hands
back after every generation. Replying to one of the bot's messages continues
from that message's token; a plain message continues from the channel's most
recent exchange.

State lives only in memory and is never evicted except by reset(). Threads
grow for as long as a channel keeps talking.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, Field

# Opaque continuation state returned by Ollama (a list of ints today).
# Never inspected, only stored and replayed.
Token = Any


class ConversationThread(BaseModel):
    """Per-channel conversation record."""

    channel_id: int = Field(description="Discord channel (or DM channel) ID")
    turn_count: int = Field(default=0, ge=0, description="Completed exchanges in this thread")
    last_context: Token = Field(
        default=None, description="Token from the most recent completed exchange"
    )
    replies: dict[int, Token] = Field(
        default_factory=dict,
        description="Bot message ID -> token of the exchange that produced it",
    )


class ContextStore:
    """
    In-memory mapping of channels to conversation threads.

    Example:
        >>> store = ContextStore()
        >>> store.record_exchange(1, [100, 101], [7, 8, 9])
        >>> store.resolve_context(1, 101)
        [7, 8, 9]
        >>> store.reset(1)
        1
    """

    def __init__(self) -> None:
        self._threads: dict[int, ConversationThread] = {}
        self._locks: dict[int, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._threads)

    def __contains__(self, channel_id: int) -> bool:
        return channel_id in self._threads

    def get_thread(self, channel_id: int) -> ConversationThread | None:
        return self._threads.get(channel_id)

    def create_thread(self, channel_id: int) -> ConversationThread:
        """Install an empty thread for the channel, or return the existing one."""
        thread = self._threads.get(channel_id)
        if thread is None:
            thread = ConversationThread(channel_id=channel_id)
            self._threads[channel_id] = thread
        return thread

    def is_tracked_reply(self, channel_id: int, message_id: int) -> bool:
        thread = self._threads.get(channel_id)
        return thread is not None and message_id in thread.replies

    def resolve_context(self, channel_id: int, reply_to: int | None = None) -> Token | None:
        """
        Pick the token a new message should continue from.

        Args:
            channel_id: Channel the message arrived in
            reply_to: ID of the message being replied to, if any

        Returns:
            The token recorded for `reply_to` when it is a tracked bot message;
            the channel's last token when `reply_to` is None; otherwise None.
            An untracked `reply_to` never falls back to the last token.
        """
        thread = self._threads.get(channel_id)
        if thread is None:
            return None
        if reply_to is not None:
            return thread.replies.get(reply_to)
        return thread.last_context

    def record_exchange(self, channel_id: int, message_ids: Iterable[int], token: Token) -> None:
        """Associate the delivered message IDs with `token` and advance the thread."""
        thread = self.create_thread(channel_id)
        for message_id in message_ids:
            thread.replies[message_id] = token
        thread.last_context = token
        thread.turn_count += 1

    def reset(self, channel_id: int) -> int:
        """Drop the channel's thread. Returns how many turns it held (0 if none)."""
        thread = self._threads.pop(channel_id, None)
        return thread.turn_count if thread is not None else 0

    def lock(self, channel_id: int) -> asyncio.Lock:
        """Per-channel lock serialising exchanges within one channel."""
        lock = self._locks.get(channel_id)
        if lock is None:
            lock = self._locks[channel_id] = asyncio.Lock()
        return lock
