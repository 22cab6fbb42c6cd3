"""
Discord Bot Layer.

Handles the Discord gateway side: message gating, reply-chain lookup,
typing indicator, and delivery of segmented answers for the OllamaCord bot.
"""

from ollamacord.bot.client import OllamaCordBot

__all__ = ["OllamaCordBot"]
