"""
Dispatcher — runs one logical HTTP request against some free backend.

Selection and failover:
    1. Wait until at least one backend is free.
    2. Shuffle the backend indices (fresh permutation every call).
    3. Walk the permutation, skipping busy backends. Claim the first free one,
       send the request, and release the backend in a `finally` block.
    4. Return the body on the first success.
    5. On failure, log and move to the next candidate.
    6. If nothing succeeded, raise ExhaustedBackendsError.

Each backend serves at most one request at a time, so the pool acts as simple
admission control: a busy server is never handed a second request by us.

A failed backend is released immediately with no cooldown and will be tried
again on the very next call.
"""

from __future__ import annotations

import logging
import random
from typing import Any

import httpx

from ollamacord.dispatch.pool import Backend, BackendPool
from ollamacord.errors import BackendRequestError, ExhaustedBackendsError

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Load-balancing, single-flight-per-backend HTTP dispatcher.

    Owns one httpx.AsyncClient for its lifetime. Use as an async context
    manager, or call close() explicitly.

    Args:
        pool: Backends to dispatch across
        poll_interval: Upper bound (seconds) between availability re-checks
            while every backend is busy
        request_timeout: Read/write timeout per request. None waits indefinitely.
        connect_timeout: Connection timeout per request
        transport: Optional httpx transport (tests inject httpx.MockTransport)
    """

    def __init__(
        self,
        pool: BackendPool,
        poll_interval: float = 1.0,
        request_timeout: float | None = None,
        connect_timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.pool = pool
        self.poll_interval = poll_interval
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(request_timeout, connect=connect_timeout),
            transport=transport,
        )

    async def __aenter__(self) -> Dispatcher:
        return self

    async def __aexit__(self, *_args) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def dispatch(self, path: str, method: str = "POST", payload: Any = None) -> str:
        """
        Perform one request on the first backend that answers successfully.

        Args:
            path: API path, e.g. "/api/generate"
            method: HTTP method
            payload: JSON-serialisable request body (omitted if None)

        Returns:
            The response body as text

        Raises:
            ExhaustedBackendsError: If every attempted backend failed, or no
                backend could be claimed during this call
        """
        await self.pool.wait_until_available(self.poll_interval)

        order = list(range(len(self.pool)))
        random.shuffle(order)

        errors: list[BackendRequestError] = []
        for index in order:
            backend = self.pool[index]
            if not backend.try_acquire():
                continue
            try:
                return await self._send(backend, path, method, payload)
            except BackendRequestError as e:
                errors.append(e)
                logger.error(str(e))
            finally:
                self.pool.release(backend)

        if not errors:
            raise ExhaustedBackendsError("No servers available")
        raise ExhaustedBackendsError(
            f"All {len(errors)} backend attempt(s) failed for {method.upper()} {path}",
            errors=errors,
        ) from errors[-1]

    async def _send(self, backend: Backend, path: str, method: str, payload: Any) -> str:
        url = backend.url_for(path)
        method = method.upper()
        logger.debug(f"Making request to {url}")

        try:
            response = await self._client.request(method, url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise BackendRequestError(
                _describe_status_error(e.response, method, url.path),
                endpoint=str(backend.endpoint),
                method=method,
                path=url.path,
                status_code=e.response.status_code,
                cause=e,
            ) from e
        except httpx.HTTPError as e:
            raise BackendRequestError(
                f"{type(e).__name__} from {backend.endpoint}: {method} {url.path}: {e}",
                endpoint=str(backend.endpoint),
                method=method,
                path=url.path,
                cause=e,
            ) from e

        return response.text


def _describe_status_error(response: httpx.Response, method: str, path: str) -> str:
    """Format "Error 404 Not Found: POST /api/show: model 'x' not found"."""
    message = f"Error {response.status_code} {response.reason_phrase}: {method} {path}"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        message += f": {body['error']}"
    return message
