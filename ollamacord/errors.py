"""
Error types raised by the dispatch and conversation core.

They form a small hierarchy rooted at OllamaCordError so the bot layer can
catch everything in one place. The dispatcher retries BackendRequestError
internally and only ever surfaces ExhaustedBackendsError.
"""

from __future__ import annotations


class OllamaCordError(Exception):
    """Base class for all errors raised by the core."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class BackendRequestError(OllamaCordError):
    """A single request against one backend failed (transport error or non-2xx)."""

    def __init__(
        self,
        message: str,
        endpoint: str,
        method: str,
        path: str,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, cause=cause)
        self.endpoint = endpoint
        self.method = method
        self.path = path
        self.status_code = status_code


class ExhaustedBackendsError(OllamaCordError):
    """Every backend attempted for a call failed, or none could be tried."""

    def __init__(self, message: str, errors: list[BackendRequestError] | None = None):
        self.errors = list(errors or [])
        self.last_error = self.errors[-1] if self.errors else None
        super().__init__(message, cause=self.last_error)


class MalformedResponseError(OllamaCordError):
    """A backend answered, but the body could not be interpreted."""


class UnknownReplyTargetError(OllamaCordError):
    """A reply points at a message this bot is not tracking for the channel."""

    def __init__(self, channel_id: int, message_id: int):
        super().__init__(
            f"Message {message_id} is not part of a tracked conversation in channel {channel_id}"
        )
        self.channel_id = channel_id
        self.message_id = message_id
