"""EnergiaPro REST API client package.

Provides an async HTTP session for the EnergiaPro API that authenticates
with a one-time secret key, caches the bearer token, and maps JSON
payloads onto validated models.

Exports:
    EnergiaProRestClient: Authenticated session with a single token retry.
    errors: Error taxonomy and vendor error-code classification.
    requests: Typed request kinds.
    types: Pydantic models for API responses.
    DEFAULT_BASE_URL: Production base URL.
    DEFAULT_TIMEOUT: Default HTTP request timeout.
"""

from . import errors, requests, types
from .client import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, EnergiaProRestClient

__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_TIMEOUT",
    "EnergiaProRestClient",
    "errors",
    "requests",
    "types",
]
