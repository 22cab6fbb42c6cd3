"""
OllamaCord - Discord bot that chats through a pool of Ollama servers.

Messages are dispatched to one of several interchangeable Ollama backends with
failover, and conversations continue through Discord reply chains using
Ollama's context tokens.
"""

__version__ = "0.1.0"
