"""
Response models for the Ollama API.

The error types live in ollamacord.errors and are re-exported here and from
ollamacord.llm for convenience.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ollamacord.conversation.store import Token
from ollamacord.errors import (
    BackendRequestError,
    ExhaustedBackendsError,
    MalformedResponseError,
    OllamaCordError,
    UnknownReplyTargetError,
)

__all__ = [
    "GenerateResult",
    "ModelInfo",
    "Token",
    "OllamaCordError",
    "BackendRequestError",
    "ExhaustedBackendsError",
    "MalformedResponseError",
    "UnknownReplyTargetError",
]


class ModelInfo(BaseModel):
    """Subset of the /api/show payload we care about. Other fields are kept as extras."""

    system: str | None = Field(None, description="System message baked into the model")
    template: str | None = Field(None, description="Prompt template")
    parameters: str | None = Field(None, description="Model parameters as a raw string")

    model_config = ConfigDict(extra="allow")


class GenerateResult(BaseModel):
    """The reduced form of an /api/generate NDJSON stream."""

    text: str = Field(description="Concatenation of every non-null 'response' field, trimmed")
    context: Token = Field(None, description="Continuation token from the final 'done' line")
    model: str | None = Field(None, description="Model name reported by the backend")
    chunks: int = Field(0, ge=0, description="Number of stream lines parsed")
