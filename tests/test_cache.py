"""Tests for TokenCache.

Covers the cache-hit path, expiry, explicit clearing, failure handling and
the double-checked refresh under concurrent tasks. The authenticator is a
stub coroutine counting its invocations; the session-level behaviour
(clear-and-retry on token rejection) lives in test_client.py.
"""

import asyncio
import time
from unittest.mock import patch

import pytest

from energiapro import cache
from energiapro.restapi.errors import ApiError, ApiErrorCode


class StubAuthenticator:
    """Returns ``token-1``, ``token-2``... and counts calls."""

    def __init__(self, delay: float = 0.0):
        self.calls = 0
        self._delay = delay

    async def __call__(self) -> str:
        self.calls += 1
        call = self.calls
        if self._delay:
            await asyncio.sleep(self._delay)
        return f"token-{call}"


# ---------------------------------------------------------------------------
# Token
# ---------------------------------------------------------------------------


def test_token_valid_before_expiry():
    """A token is valid strictly before its expiry instant."""
    token = cache.Token(value="t", expires_at=100.0)
    assert token.is_valid(99.9)
    assert not token.is_valid(100.0)


# ---------------------------------------------------------------------------
# First obtain
# ---------------------------------------------------------------------------


def test_first_obtain_invokes_authenticator():
    """An empty cache always authenticates."""
    authenticate = StubAuthenticator()
    c = cache.TokenCache(authenticate)

    token = asyncio.run(c.obtain())

    assert token == "token-1"
    assert authenticate.calls == 1


# ---------------------------------------------------------------------------
# Cache hit
# ---------------------------------------------------------------------------


def test_valid_cached_token_skips_authenticator():
    """A cached token with a future expiry is returned without authenticating."""
    authenticate = StubAuthenticator()
    c = cache.TokenCache(authenticate)
    c._token = cache.Token(value="cached", expires_at=time.monotonic() + 3600)

    token = asyncio.run(c.obtain())

    assert token == "cached"
    assert authenticate.calls == 0


def test_repeated_obtain_authenticates_once():
    """Consecutive calls within the TTL reuse the first token."""
    authenticate = StubAuthenticator()
    c = cache.TokenCache(authenticate)

    async def obtain_three_times():
        return [await c.obtain() for _ in range(3)]

    tokens = asyncio.run(obtain_three_times())

    assert tokens == ["token-1", "token-1", "token-1"]
    assert authenticate.calls == 1


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------


def test_expired_token_is_replaced():
    """An expired token triggers exactly one refresh and is overwritten."""
    authenticate = StubAuthenticator()
    c = cache.TokenCache(authenticate)
    c._token = cache.Token(value="stale", expires_at=time.monotonic() - 1)

    token = asyncio.run(c.obtain())

    assert token == "token-1"
    assert authenticate.calls == 1
    assert c._token is not None
    assert c._token.value == "token-1"


@patch("energiapro.cache.time")
def test_token_expires_after_ttl(mock_time):
    """A token is reused inside the TTL and refreshed once the TTL elapses."""
    authenticate = StubAuthenticator()
    c = cache.TokenCache(authenticate, ttl=cache.TOKEN_TTL)

    mock_time.monotonic.return_value = 1000.0
    first = asyncio.run(c.obtain())

    mock_time.monotonic.return_value = 1000.0 + cache.TOKEN_TTL - 1
    second = asyncio.run(c.obtain())

    mock_time.monotonic.return_value = 1000.0 + cache.TOKEN_TTL
    third = asyncio.run(c.obtain())

    assert (first, second, third) == ("token-1", "token-1", "token-2")
    assert authenticate.calls == 2


def test_default_ttl_leaves_five_minute_margin():
    """Tokens are kept 55 minutes against a 60 minute server lifetime."""
    assert cache.TOKEN_TTL == 55 * 60


# ---------------------------------------------------------------------------
# Clear
# ---------------------------------------------------------------------------


def test_clear_forces_refresh():
    """After clear(), the next obtain() authenticates again."""
    authenticate = StubAuthenticator()
    c = cache.TokenCache(authenticate)

    async def scenario():
        first = await c.obtain()
        await c.clear()
        second = await c.obtain()
        return first, second

    first, second = asyncio.run(scenario())

    assert first == "token-1"
    assert second == "token-2"
    assert authenticate.calls == 2


def test_clear_is_idempotent():
    """Clearing an empty cache twice is harmless."""
    c = cache.TokenCache(StubAuthenticator())

    async def clear_twice():
        await c.clear()
        await c.clear()

    asyncio.run(clear_twice())

    assert c._token is None


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


def test_authenticator_failure_propagates_and_leaves_cache_empty():
    """A failing authenticator raises through obtain() and caches nothing."""
    calls = 0

    async def failing():
        nonlocal calls
        calls += 1
        raise ApiError(ApiErrorCode.INVALID_USERNAME, "Invalid username")

    c = cache.TokenCache(failing)

    with pytest.raises(ApiError):
        asyncio.run(c.obtain())
    with pytest.raises(ApiError):
        asyncio.run(c.obtain())

    assert calls == 2
    assert c._token is None


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


def test_concurrent_obtain_single_authentication():
    """Many tasks racing on an empty cache trigger one authentication."""
    authenticate = StubAuthenticator(delay=0.01)
    c = cache.TokenCache(authenticate)
    task_count = 20

    async def race():
        return await asyncio.gather(*(c.obtain() for _ in range(task_count)))

    tokens = asyncio.run(race())

    assert authenticate.calls == 1
    assert tokens == ["token-1"] * task_count


def test_concurrent_obtain_after_clear_single_authentication():
    """Concurrent misses after a clear collapse into one refresh too."""
    authenticate = StubAuthenticator(delay=0.01)
    c = cache.TokenCache(authenticate)

    async def scenario():
        await c.obtain()
        await c.clear()
        return await asyncio.gather(*(c.obtain() for _ in range(10)))

    tokens = asyncio.run(scenario())

    assert authenticate.calls == 2
    assert set(tokens) == {"token-2"}


def test_cached_reader_does_not_wait_on_refresh():
    """A valid token is served while another task holds the refresh lock."""
    c = cache.TokenCache(StubAuthenticator())
    c._token = cache.Token(value="cached", expires_at=time.monotonic() + 3600)

    async def scenario():
        async with c._refresh_lock:
            return await asyncio.wait_for(c.obtain(), timeout=1.0)

    assert asyncio.run(scenario()) == "cached"
