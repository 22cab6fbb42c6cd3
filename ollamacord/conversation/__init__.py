"""
Conversation Context Store.

Tracks, per channel, which continuation token belongs to each message the bot
sent, so a reply can pick up exactly where that message left off.
"""

from ollamacord.conversation.store import ContextStore, ConversationThread, Token

__all__ = ["ContextStore", "ConversationThread", "Token"]
