"""
Backend pool — the set of Ollama servers and their exclusivity flags.

Each Backend carries an `available` flag that doubles as a lock: it is cleared
while a request is in flight on that server and set again when the request
finishes, whatever the outcome. Only the Dispatcher flips these flags, through
try_acquire() / BackendPool.release().

All of this runs on a single asyncio event loop, so try_acquire() is atomic:
there is no await between the check and the set.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Iterator

import httpx

logger = logging.getLogger(__name__)


class Backend:
    """One inference server endpoint plus its in-flight flag."""

    def __init__(self, endpoint: str | httpx.URL):
        self.endpoint = httpx.URL(str(endpoint))
        self.available = True

    def try_acquire(self) -> bool:
        """Claim the backend for one request. Returns False if it is already busy."""
        if not self.available:
            return False
        self.available = False
        return True

    def url_for(self, path: str) -> httpx.URL:
        """
        Join an API path onto the endpoint without touching the stored URL.

        A leading slash on `path` is ignored and the endpoint's own path is
        preserved, so "http://host/ollama" + "/api/show" gives
        "http://host/ollama/api/show".
        """
        base_path = self.endpoint.path
        if not base_path.endswith("/"):
            base_path += "/"
        return self.endpoint.copy_with(path=base_path + path.lstrip("/"))

    def __repr__(self) -> str:
        state = "available" if self.available else "busy"
        return f"Backend({str(self.endpoint)!r}, {state})"


class BackendPool:
    """
    Fixed collection of backends created once from configuration.

    Args:
        endpoints: Backend base URLs (e.g. "http://localhost:11434")

    Raises:
        ValueError: If no endpoints are given
    """

    def __init__(self, endpoints: Iterable[str | httpx.URL]):
        self._backends = [Backend(endpoint) for endpoint in endpoints]
        if not self._backends:
            raise ValueError("No servers available")
        self._released = asyncio.Event()

    def __len__(self) -> int:
        return len(self._backends)

    def __getitem__(self, index: int) -> Backend:
        return self._backends[index]

    def __iter__(self) -> Iterator[Backend]:
        return iter(self._backends)

    def any_available(self) -> bool:
        return any(backend.available for backend in self._backends)

    def release(self, backend: Backend) -> None:
        """Mark a backend free again and wake anyone waiting for capacity."""
        backend.available = True
        self._released.set()

    async def wait_until_available(self, poll_interval: float = 1.0) -> None:
        """
        Suspend until at least one backend is free.

        Waiters wake as soon as a backend is released, and re-check at least
        every `poll_interval` seconds regardless.
        """
        while not self.any_available():
            self._released.clear()
            logger.debug("All backends busy, waiting for one to be released")
            try:
                await asyncio.wait_for(self._released.wait(), timeout=poll_interval)
            except asyncio.TimeoutError:
                pass
