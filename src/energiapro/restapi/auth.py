"""Credential exchange for the EnergiaPro API.

The API never receives the raw secret key. Each authentication attempt
sends a fresh bcrypt hash of it (the "one-time secret key") together with
the username, and gets a bearer token back.
"""

import asyncio
from typing import TYPE_CHECKING

import bcrypt
import structlog

from .errors import SecretKeyGenerationError
from .requests import AuthenticateRequest

if TYPE_CHECKING:
    from .client import EnergiaProRestClient

logger = structlog.get_logger(__name__)

BCRYPT_COST = 11


def hash_secret_key(secret_key: str) -> str:
    """Return a salted bcrypt hash of ``secret_key``.

    Raises:
        SecretKeyGenerationError: If bcrypt refuses the input (e.g. a key
            longer than 72 bytes on recent bcrypt releases).
    """
    try:
        hashed = bcrypt.hashpw(
            secret_key.encode("utf-8"),
            bcrypt.gensalt(rounds=BCRYPT_COST),
        )
    except ValueError as e:
        raise SecretKeyGenerationError(e) from e
    return hashed.decode("ascii")


class Authenticator:
    """Exchanges credentials for a bearer token, one network round trip each."""

    def __init__(self, client: "EnergiaProRestClient", username: str, secret_key: str):
        self._client = client
        self._username = username
        self._secret_key = secret_key

    async def authenticate(self) -> str:
        """Obtain a fresh token.

        Hashing is CPU-bound and runs in a worker thread so it doesn't
        stall other requests sharing the event loop.

        Returns:
            The bearer token value.

        Raises:
            InvalidArgumentError: If the username or hashed key is blank.
            SecretKeyGenerationError: If the secret key cannot be hashed.
            ApiError: If the API rejects the credentials.
            MissingTokenError: If the response carries no token.
            TransportError: If the HTTP exchange fails.
        """
        one_time_secret_key = await asyncio.to_thread(hash_secret_key, self._secret_key)
        request = AuthenticateRequest(
            username=self._username,
            one_time_secret_key=one_time_secret_key,
        )
        request.validate()
        logger.debug("Authenticating", username=self._username)
        return await self._client.execute(request, token=None)
