"""
Unit tests for Backend and BackendPool.

Tests cover:
- Construction and the empty-pool guard
- try_acquire / release flag semantics
- URL joining
- wait_until_available wake-up on release
"""

import asyncio

import httpx
import pytest

from ollamacord.dispatch.pool import Backend, BackendPool


class TestBackend:
    def test_starts_available(self):
        backend = Backend("http://localhost:11434")
        assert backend.available is True
        assert backend.endpoint == httpx.URL("http://localhost:11434")

    def test_try_acquire_claims_once(self):
        backend = Backend("http://localhost:11434")
        assert backend.try_acquire() is True
        assert backend.available is False
        assert backend.try_acquire() is False

    def test_url_for_joins_api_path(self):
        backend = Backend("http://localhost:11434")
        assert str(backend.url_for("/api/show")) == "http://localhost:11434/api/show"

    def test_url_for_keeps_endpoint_subpath(self):
        backend = Backend("http://gpu-box:8080/ollama")
        assert str(backend.url_for("/api/generate")) == "http://gpu-box:8080/ollama/api/generate"

    def test_url_for_does_not_mutate_endpoint(self):
        backend = Backend("http://gpu-box:8080/ollama/")
        backend.url_for("/api/show")
        backend.url_for("api/show")
        assert str(backend.endpoint) == "http://gpu-box:8080/ollama/"
        assert str(backend.url_for("api/show")) == "http://gpu-box:8080/ollama/api/show"

    def test_repr_shows_state(self):
        backend = Backend("http://a:1")
        assert "available" in repr(backend)
        backend.try_acquire()
        assert "busy" in repr(backend)


class TestBackendPool:
    def test_empty_pool_is_rejected(self):
        with pytest.raises(ValueError, match="No servers available"):
            BackendPool([])

    def test_preserves_configuration_order(self):
        pool = BackendPool(["http://a:1", "http://b:2", "http://c:3"])
        assert len(pool) == 3
        assert [b.endpoint.host for b in pool] == ["a", "b", "c"]
        assert pool[1].endpoint.host == "b"

    def test_any_available_tracks_flags(self):
        pool = BackendPool(["http://a:1", "http://b:2"])
        assert pool.any_available() is True
        pool[0].try_acquire()
        assert pool.any_available() is True
        pool[1].try_acquire()
        assert pool.any_available() is False
        pool.release(pool[1])
        assert pool.any_available() is True
        assert pool[1].available is True

    @pytest.mark.asyncio
    async def test_wait_returns_immediately_when_free(self):
        pool = BackendPool(["http://a:1"])
        await asyncio.wait_for(pool.wait_until_available(poll_interval=10), timeout=1)

    @pytest.mark.asyncio
    async def test_wait_wakes_on_release_before_poll_interval(self):
        """A release wakes the waiter long before the (huge) poll interval elapses."""
        pool = BackendPool(["http://a:1"])
        pool[0].try_acquire()

        waiter = asyncio.create_task(pool.wait_until_available(poll_interval=60))
        await asyncio.sleep(0.05)
        assert not waiter.done()

        pool.release(pool[0])
        await asyncio.wait_for(waiter, timeout=1)

    @pytest.mark.asyncio
    async def test_wait_rechecks_after_poll_interval(self):
        """Flags flipped without release() are still noticed at the next poll."""
        pool = BackendPool(["http://a:1"])
        pool[0].try_acquire()

        waiter = asyncio.create_task(pool.wait_until_available(poll_interval=0.01))
        await asyncio.sleep(0.03)
        assert not waiter.done()

        pool[0].available = True
        await asyncio.wait_for(waiter, timeout=1)
