"""Text helpers for fitting model output into Discord messages."""

from ollamacord.text.segmenter import DISCORD_MESSAGE_LIMIT, normalize, segment

__all__ = ["DISCORD_MESSAGE_LIMIT", "normalize", "segment"]
