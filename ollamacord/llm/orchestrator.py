"""
Conversation Orchestrator — runs one exchange end to end.

This module sits between the Discord bot layer and the dispatch core. It
receives a user message plus the reply it answers (if any), looks up the
continuation token, asks Ollama for a completion, splits the answer into
Discord-sized segments, hands them to the caller for delivery, and records
the new token against the delivered message IDs.

Data flow:
    ChatCog.on_message → handle_message(channel, text, reply_to, deliver)
                                   ↓
        ContextStore.resolve_context()      OllamaClient.show_model() (cached)
                                   ↓
                       OllamaClient.generate()  →  Dispatcher (failover)
                                   ↓
                       segment()  →  deliver()  →  message IDs
                                   ↓
                       ContextStore.record_exchange()

Nothing is written to the store unless generation and delivery both succeed.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from email.utils import format_datetime

from ollamacord.config.settings import OllamaSettings
from ollamacord.conversation.store import ContextStore
from ollamacord.errors import UnknownReplyTargetError
from ollamacord.llm.client import OllamaClient
from ollamacord.llm.models import ModelInfo
from ollamacord.text.segmenter import DISCORD_MESSAGE_LIMIT, segment

logger = logging.getLogger(__name__)

# Sends the segments to the platform and returns the IDs of the messages created.
Deliver = Callable[[list[str]], Awaitable[list[int]]]

_DATE_RE = re.compile(r"<date>", re.IGNORECASE)


def decode_system_message(raw: str, now: datetime | None = None) -> str:
    """
    Decode a system message as written in a .env file.

    Each line is read as the body of a JSON string, so escapes such as \\n and
    \\" work. Every <date> placeholder becomes the current UTC date in HTTP
    date format (e.g. "Mon, 06 May 2024 12:00:00 GMT").

    Raises:
        ValueError: If a line is not a valid JSON string body
    """
    lines = []
    for line in re.split(r"[\r\n]+", raw):
        try:
            decoded = json.loads(f'"{line}"')
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid syntax in system message: {line!r}") from e
        lines.append(decoded)
    message = "\n".join(lines)

    now = now or datetime.now(timezone.utc)
    date = format_datetime(now.astimezone(timezone.utc), usegmt=True)
    return _DATE_RE.sub(date, message)


class ConversationOrchestrator:
    """
    Coordinates the context store, Ollama client and segmenter for each message.

    Exchanges within one channel are serialised by the store's per-channel
    lock; different channels proceed concurrently.

    Args:
        client: Ollama client (owns backend selection via its dispatcher)
        store: Conversation context store
        settings: Ollama settings (system message flags)
        max_segment_length: Maximum characters per delivered segment
    """

    def __init__(
        self,
        client: OllamaClient,
        store: ContextStore,
        settings: OllamaSettings,
        max_segment_length: int = DISCORD_MESSAGE_LIMIT,
    ):
        self._client = client
        self._store = store
        self._settings = settings
        self._max_segment_length = max_segment_length
        self._model_info: ModelInfo | None = None

        self._user_system_message: str | None = None
        if settings.system is not None:
            self._user_system_message = decode_system_message(settings.system)

    @property
    def store(self) -> ContextStore:
        return self._store

    async def model_info(self) -> ModelInfo:
        """Fetch /api/show once; later calls reuse the first successful result."""
        if self._model_info is None:
            self._model_info = await self._client.show_model()
        return self._model_info

    def build_system_message(self, model_info: ModelInfo) -> str:
        """Join the enabled system messages (model first, then custom) with a blank line."""
        parts: list[str] = []
        if self._settings.use_model_system:
            parts.append(model_info.system or "")
        if self._settings.use_system and self._user_system_message:
            parts.append(self._user_system_message)
        return "\n\n".join(parts)

    async def handle_message(
        self,
        channel_id: int,
        user_input: str,
        reply_to: int | None = None,
        deliver: Deliver | None = None,
        intro: str | None = None,
    ) -> list[str]:
        """
        Run one exchange and return the delivered segments.

        Args:
            channel_id: Channel the message arrived in
            user_input: Cleaned user text (the prompt)
            reply_to: ID of the bot message being replied to, if any
            deliver: Callback that sends the segments and returns the new
                message IDs. Without it the exchange is still recorded, with
                no reply IDs, so it can be continued implicitly.
            intro: Text prefixed to the answer on the first turn of a thread

        Returns:
            The response segments, in delivery order

        Raises:
            UnknownReplyTargetError: If `reply_to` is not a tracked bot message
            ExhaustedBackendsError: If no backend could serve a request
            MalformedResponseError: If a backend response could not be parsed
        """
        async with self._store.lock(channel_id):
            if reply_to is not None and not self._store.is_tracked_reply(channel_id, reply_to):
                raise UnknownReplyTargetError(channel_id, reply_to)

            thread = self._store.create_thread(channel_id)
            first_turn = thread.turn_count == 0

            info = await self.model_info()
            context = self._store.resolve_context(channel_id, reply_to)
            system = self.build_system_message(info)

            result = await self._client.generate(user_input, system=system, context=context)
            logger.debug(f"Response: {result.text}")

            text = result.text
            if first_turn and intro:
                text = f"{intro}\n\n{text}"
            segments = segment(text, self._max_segment_length)

            message_ids = await deliver(segments) if deliver is not None else []
            self._store.record_exchange(channel_id, message_ids, result.context)
            return segments

    def reset_conversation(self, channel_id: int) -> int:
        """Forget the channel's conversation. Returns the number of turns cleared."""
        cleared = self._store.reset(channel_id)
        if cleared:
            logger.info(f"Cleared {cleared} turn(s) in channel {channel_id}")
        return cleared
