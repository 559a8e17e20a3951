"""EnergiaPro REST API client.

Provides an async HTTP session with cached bearer-token authentication,
classification of vendor error payloads, and a single transparent
re-authentication when the API rejects the token.
"""

import json
import time
from typing import TypeVar

import httpx
import structlog

from ..cache import TokenCache
from .auth import Authenticator
from .errors import (
    ApiError,
    DecodeError,
    EnergiaProError,
    HttpStatusError,
    InvalidArgumentError,
    TransportError,
    api_error_from_payload,
)
from .requests import Request

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT")

DEFAULT_BASE_URL = "https://web2.holdigaz.ch/espace-client-api/api"

DEFAULT_TIMEOUT = 30.0

ERROR_BODY_SNIPPET_LIMIT = 512

UTF8_BOM = "\ufeff"


def normalize_base_url(base_url: str) -> str:
    """Trim a base URL and check it is an absolute ``https`` URL.

    Raises:
        InvalidArgumentError: If the URL is empty, relative, or not https.
    """
    normalized = base_url.strip().rstrip("/")
    if not normalized:
        msg = "base_url cannot be empty"
        raise InvalidArgumentError(msg)

    try:
        parsed = httpx.URL(normalized)
    except httpx.InvalidURL:
        parsed = None
    if parsed is None or not parsed.is_absolute_url:
        msg = "base_url must be a valid absolute URL"
        raise InvalidArgumentError(msg)
    if parsed.scheme != "https":
        msg = "base_url must use https"
        raise InvalidArgumentError(msg)

    return normalized


def strip_utf8_bom(payload: str) -> str:
    """Remove leading byte-order marks some responses are prefixed with."""
    return payload.lstrip(UTF8_BOM)


def error_body_snippet(payload: str) -> str:
    """Return at most ``ERROR_BODY_SNIPPET_LIMIT`` characters of a body.

    An ellipsis is appended only when something was cut off.
    """
    trimmed = payload.strip()
    if not trimmed:
        return "<empty response body>"
    if len(trimmed) > ERROR_BODY_SNIPPET_LIMIT:
        return f"{trimmed[:ERROR_BODY_SNIPPET_LIMIT]}..."
    return trimmed


def map_non_success_response(
    status_code: int,
    endpoint: str,
    payload: str,
) -> EnergiaProError:
    """Turn a non-2xx response into an error.

    A body that decodes into a vendor error payload yields the
    :class:`ApiError` (so a 401 carrying ``errorCode`` 220 is still a
    token rejection); anything else yields :class:`HttpStatusError`.
    """
    try:
        decoded = json.loads(payload)
    except json.JSONDecodeError:
        decoded = None

    if (error := api_error_from_payload(decoded)) is not None:
        return error

    return HttpStatusError(status_code, endpoint, error_body_snippet(payload))


class EnergiaProRestClient:
    """Authenticated session for the EnergiaPro API.

    Owns the HTTP transport and the token cache for its whole lifetime.
    Safe to share between concurrent tasks on one event loop: the only
    mutable state is the cached token, which :class:`TokenCache` guards.

    Can be used as an async context manager for automatic cleanup.
    """

    def __init__(
        self,
        username: str,
        secret_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            username: EnergiaPro API username.
            secret_key: EnergiaPro API secret key (hashed before sending).
            base_url: Base URL of the API, must be https.
            timeout: Per-request timeout in seconds (default: 30.0).
            transport: Optional httpx transport, mainly for tests.

        Raises:
            InvalidArgumentError: If a credential is blank, the base URL is
                invalid, or the timeout is not positive.
        """
        if not username.strip():
            msg = "username cannot be empty"
            raise InvalidArgumentError(msg)
        if not secret_key.strip():
            msg = "secret_key cannot be empty"
            raise InvalidArgumentError(msg)
        if timeout <= 0:
            msg = "timeout must be positive"
            raise InvalidArgumentError(msg)

        self.base_url = normalize_base_url(base_url)
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._authenticator = Authenticator(self, username, secret_key)
        self._tokens = TokenCache(self._authenticator.authenticate)

    async def __aenter__(self):
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager and close the transport."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def send(self, request: Request[ModelT]) -> ModelT:
        """Send an authenticated request and return its model.

        The request is validated before anything touches the network. If
        the API rejects the token, the cache is cleared and the request is
        retried once with a fresh token; a second rejection is returned.

        Args:
            request: The typed request to send.

        Returns:
            The decoded model for the request.

        Raises:
            InvalidArgumentError: If the request fails validation.
            ApiError: If the API returns an error payload.
            HttpStatusError: On a non-2xx response without an error payload.
            TransportError: If the HTTP exchange fails.
            DecodeError: If the payload doesn't match the model.
            MissingTokenError: If authentication returned no token.
        """
        request.validate()

        has_retried = False
        while True:
            token = await self._tokens.obtain()
            try:
                return await self.execute(request, token)
            except ApiError as e:
                if not e.is_token_error or has_retried:
                    raise
                logger.warning(
                    "Token rejected, re-authenticating",
                    code=e.raw_code,
                    endpoint=request.endpoint,
                )
                await self._tokens.clear()
                has_retried = True

    async def execute(self, request: Request[ModelT], token: str | None) -> ModelT:
        """Perform one HTTP exchange for ``request`` with ``token``.

        Handles request execution, error classification and decoding.
        Logs request details and duration. Never retries.
        """
        http_request = request.build(self._http, self.base_url, token)
        endpoint = str(http_request.url)
        start_time = time.monotonic()

        try:
            logger.debug("Making API request", method="POST", endpoint=endpoint)
            response = await self._http.send(http_request)
        except httpx.HTTPError as e:
            logger.exception(
                "API request failed",
                endpoint=endpoint,
                duration_seconds=round(time.monotonic() - start_time, 3),
            )
            raise TransportError(e) from e

        logger.debug(
            "API request completed",
            endpoint=endpoint,
            status=response.status_code,
            duration_seconds=round(time.monotonic() - start_time, 3),
        )

        body = strip_utf8_bom(response.text)
        if not response.is_success:
            raise map_non_success_response(response.status_code, endpoint, body)

        try:
            payload = json.loads(body)
        except json.JSONDecodeError as e:
            raise DecodeError(e) from e

        if (error := api_error_from_payload(payload)) is not None:
            logger.debug("API error payload", code=error.raw_code, endpoint=endpoint)
            raise error

        return request.parse_response(payload)
