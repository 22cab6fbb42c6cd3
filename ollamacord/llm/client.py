"""
Ollama HTTP API client built on the Dispatcher.

Only two endpoints are used:
    POST /api/show      {name}                           -> model info object
    POST /api/generate  {model, prompt, system, context} -> NDJSON stream

The generate stream is buffered in full by the dispatcher and reduced here
into a single GenerateResult.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from ollamacord.dispatch.dispatcher import Dispatcher
from ollamacord.errors import MalformedResponseError
from ollamacord.llm.models import GenerateResult, ModelInfo, Token

logger = logging.getLogger(__name__)


def parse_model_info(body: str) -> ModelInfo:
    """
    Parse an /api/show body.

    Some proxies double-encode the payload as a JSON string, so a decoded
    string is decoded once more before giving up.

    Raises:
        MalformedResponseError: If the body is not JSON or not an object
    """
    try:
        data: Any = json.loads(body)
        if isinstance(data, str):
            data = json.loads(data)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Model info is not valid JSON: {e}", cause=e) from e

    if not isinstance(data, dict):
        raise MalformedResponseError(
            f"Failed to fetch model information: expected an object, got {type(data).__name__}"
        )
    try:
        return ModelInfo.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(f"Unexpected model information: {e}", cause=e) from e


def parse_stream(body: str) -> GenerateResult:
    """
    Reduce a newline-delimited JSON generate stream into one result.

    Text is the concatenation of every non-null `response` field. The
    continuation token comes from the last line with `done` set and a
    `context` present.

    Raises:
        MalformedResponseError: If any non-blank line is not a JSON object, or
            the stream ends without a `done` line carrying a `context`
    """
    parts: list[str] = []
    context: Token = None
    model: str | None = None
    chunks = 0

    for line_number, line in enumerate(body.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            item = json.loads(line)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(
                f"Invalid JSON on line {line_number} of generate stream: {e}", cause=e
            ) from e
        if not isinstance(item, dict):
            raise MalformedResponseError(
                f"Line {line_number} of generate stream is not an object"
            )

        chunks += 1
        if item.get("response") is not None:
            parts.append(item["response"])
        if item.get("model"):
            model = item["model"]
        if item.get("done") and item.get("context") is not None:
            context = item["context"]

    if context is None:
        raise MalformedResponseError(
            f"Generate stream ended after {chunks} line(s) without a final context"
        )
    return GenerateResult(text="".join(parts).strip(), context=context, model=model, chunks=chunks)


class OllamaClient:
    """
    Thin Ollama API wrapper.

    Args:
        dispatcher: Dispatcher used for every request (handles backend choice)
        model: Model identifier, e.g. "llama3"
    """

    def __init__(self, dispatcher: Dispatcher, model: str):
        self._dispatcher = dispatcher
        self.model = model

    async def show_model(self) -> ModelInfo:
        body = await self._dispatcher.dispatch("/api/show", "post", {"name": self.model})
        return parse_model_info(body)

    async def generate(
        self,
        prompt: str,
        system: str = "",
        context: Token | None = None,
    ) -> GenerateResult:
        """
        Run one generation, continuing from `context` when given.

        Returns:
            GenerateResult with the full text and the new continuation token
        """
        body = await self._dispatcher.dispatch(
            "/api/generate",
            "post",
            {
                "model": self.model,
                "prompt": prompt,
                "system": system,
                "context": context,
            },
        )
        result = parse_stream(body)
        logger.debug(f"Generate stream reduced from {result.chunks} line(s)")
        return result
