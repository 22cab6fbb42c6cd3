"""
Backend Dispatch Layer.

Spreads requests across a fixed pool of Ollama servers with random selection,
at most one in-flight request per server, and failover to the next server
when a request fails.
"""

from ollamacord.dispatch.dispatcher import Dispatcher
from ollamacord.dispatch.pool import Backend, BackendPool

__all__ = ["Backend", "BackendPool", "Dispatcher"]
