"""Error taxonomy for the EnergiaPro API client.

Every failure surfaced by the client derives from :class:`EnergiaProError`.
Vendor error payloads (``{"errorCode": ..., "error": ...}``) are classified
into :class:`ApiErrorCode` members; exactly two of them mean the bearer
token was rejected and drive the single re-authentication retry.
"""

from enum import Enum
from typing import Any

DEFAULT_API_ERROR_MESSAGE = "Not allowed."

# errorCode value meaning "success with body", not an error
SUCCESS_CODE = "0"


class ApiErrorCode(Enum):
    """Closed table of vendor error codes."""

    METHOD_NOT_POST = "1"
    SECRET_KEY_ALREADY_USED = "2"
    SCOPE_NOT_FOUND = "3"
    MAX_SESSIONS_REACHED = "4"
    MISSING_PARAMETERS = "5"
    MISSING_SSL = "6"
    INVALID_USERNAME = "10"
    MISSING_PASSWORD = "11"
    PORTAL_ACCOUNT_DISABLED = "12"
    API_ACCOUNT_DISABLED = "15"
    NO_LPN_DATA = "100"
    NO_INSTALLATIONS = "110"
    TOKEN_CORRUPTED = "210"
    TOKEN_INVALID = "220"
    UNKNOWN = "unknown"

    @classmethod
    def from_api_code(cls, code: str) -> "ApiErrorCode":
        """Map a raw vendor code to a member, ``UNKNOWN`` if unlisted."""
        try:
            return cls(code)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_token_error(self) -> bool:
        """Whether this code means the bearer token was rejected."""
        return self in (ApiErrorCode.TOKEN_CORRUPTED, ApiErrorCode.TOKEN_INVALID)


class EnergiaProError(Exception):
    """Base class for all client errors."""


class InvalidArgumentError(EnergiaProError, ValueError):
    """Raised when a caller-supplied argument fails validation."""

    def __init__(self, reason: str):
        super().__init__(f"invalid argument: {reason}")
        self.reason = reason


class TransportError(EnergiaProError):
    """Raised when the HTTP exchange itself fails (connect, timeout, read)."""

    def __init__(self, cause: Exception):
        super().__init__(f"http request failed: {cause}")
        self.cause = cause


class HttpStatusError(EnergiaProError):
    """Raised for a non-2xx response that carries no vendor error payload."""

    def __init__(self, status_code: int, endpoint: str, body_snippet: str):
        super().__init__(
            f"http status {status_code} from {endpoint}: {body_snippet}",
        )
        self.status_code = status_code
        self.endpoint = endpoint
        self.body_snippet = body_snippet


class DecodeError(EnergiaProError):
    """Raised when a payload is not JSON or doesn't match the expected shape."""

    def __init__(self, cause: Exception):
        super().__init__(f"invalid json payload: {cause}")
        self.cause = cause


class MissingTokenError(EnergiaProError):
    """Raised when authentication succeeded but no token was returned."""

    def __init__(self):
        super().__init__("authentication succeeded but token is missing")


class SecretKeyGenerationError(EnergiaProError):
    """Raised when the one-time secret key cannot be hashed."""

    def __init__(self, cause: Exception):
        super().__init__(f"failed to generate one-time secret_key: {cause}")
        self.cause = cause


class ApiError(EnergiaProError):
    """Vendor-classified failure decoded from an ``errorCode`` payload."""

    def __init__(self, code: ApiErrorCode, message: str, raw_code: str | None = None):
        self.code = code
        self.message = message
        self.raw_code = raw_code if raw_code is not None else code.value
        super().__init__(f"api error {self.raw_code}: {message}")

    @property
    def is_token_error(self) -> bool:
        """Whether the API rejected the bearer token."""
        return self.code.is_token_error


def api_error_from_payload(payload: Any) -> ApiError | None:
    """Classify a decoded JSON payload.

    Returns ``None`` when the payload is not a vendor error: it isn't an
    object, it has no ``errorCode`` field, the field is neither a string
    nor a number, or it holds the ``"0"`` success sentinel.

    Args:
        payload: Decoded JSON value.

    Returns:
        The corresponding :class:`ApiError`, or ``None``.
    """
    if not isinstance(payload, dict) or "errorCode" not in payload:
        return None

    raw = payload["errorCode"]
    if isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        code = raw
    elif isinstance(raw, (int, float)):
        code = str(raw)
    else:
        return None

    if code == SUCCESS_CODE:
        return None

    message = payload.get("error")
    if not isinstance(message, str):
        message = DEFAULT_API_ERROR_MESSAGE

    return ApiError(ApiErrorCode.from_api_code(code), message, raw_code=code)
