"""Task-safe bearer token cache.

Holds at most one token and hands it out until it expires. Refreshing is
serialized so that concurrent cache misses collapse into a single
authentication call.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

logger = structlog.get_logger(__name__)

# Tokens live 60 minutes on the API side
TOKEN_TTL = 55 * 60.0


@dataclass(frozen=True)
class Token:
    """A bearer token and the monotonic instant it stops being used."""

    value: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        """Whether the token may still be handed out at ``now``."""
        return now < self.expires_at


class TokenCache:
    """Cache for a single bearer token with double-checked refresh.

    Two locks are involved. ``_lock`` guards the cached value and is only
    held for reads and writes of that value. ``_refresh_lock`` serializes
    calls to the authenticator, so readers of a valid token never wait on
    the network while concurrent misses trigger at most one refresh.
    """

    def __init__(
        self,
        authenticate: Callable[[], Awaitable[str]],
        ttl: float = TOKEN_TTL,
    ):
        """Initialize the cache.

        Args:
            authenticate: Coroutine function returning a fresh token value.
            ttl: Seconds a freshly obtained token is considered valid.
        """
        self._authenticate = authenticate
        self._ttl = ttl
        self._token: Token | None = None
        self._lock = asyncio.Lock()
        self._refresh_lock = asyncio.Lock()

    async def obtain(self) -> str:
        """Return a valid token, authenticating if the cache is empty or stale.

        Raises:
            EnergiaProError: Whatever the authenticator raises.
        """
        token = await self._cached()
        if token is not None:
            logger.debug("Using cached token")
            return token
        return await self._refresh()

    async def clear(self) -> None:
        """Forget the cached token. In-flight requests keep their copy."""
        async with self._lock:
            self._token = None
        logger.info("Cleared cached token")

    async def _cached(self) -> str | None:
        async with self._lock:
            if self._token is not None and self._token.is_valid(time.monotonic()):
                return self._token.value
            return None

    async def _refresh(self) -> str:
        async with self._refresh_lock:
            # Another task may have refreshed while we waited
            token = await self._cached()
            if token is not None:
                logger.debug("Token refreshed by concurrent caller")
                return token

            start = time.monotonic()
            value = await self._authenticate()
            async with self._lock:
                self._token = Token(value=value, expires_at=time.monotonic() + self._ttl)
            logger.info(
                "Obtained fresh token",
                duration_seconds=round(time.monotonic() - start, 3),
                ttl_seconds=self._ttl,
            )
            return value
