"""
Ollama Orchestration Layer.

Talks to Ollama servers through the Dispatcher and turns one Discord message
into one exchange:

    ChatCog  →  ConversationOrchestrator.handle_message()
                        ↓
                OllamaClient (/api/show, /api/generate)
                        ↓
                Dispatcher  →  BackendPool (one request per server at a time)

The orchestrator is stateful only through the ContextStore: Ollama's opaque
`context` token is what carries the conversation from one turn to the next.
"""

from ollamacord.errors import (
    BackendRequestError,
    ExhaustedBackendsError,
    MalformedResponseError,
    OllamaCordError,
    UnknownReplyTargetError,
)
from ollamacord.llm.client import OllamaClient, parse_model_info, parse_stream
from ollamacord.llm.models import GenerateResult, ModelInfo
from ollamacord.llm.orchestrator import ConversationOrchestrator, decode_system_message

__all__ = [
    "ConversationOrchestrator",
    "OllamaClient",
    "GenerateResult",
    "ModelInfo",
    "OllamaCordError",
    "BackendRequestError",
    "ExhaustedBackendsError",
    "MalformedResponseError",
    "UnknownReplyTargetError",
    "decode_system_message",
    "parse_model_info",
    "parse_stream",
]
