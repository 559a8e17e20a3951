"""High-level async client for the EnergiaPro API."""

import httpx

from . import restapi
from .resources import InstallationsResource, MeasurementsResource


class EnergiaPro:
    """Entry point bundling one authenticated session and its resources.

    Credentials and base URL are validated eagerly, so a misconfigured
    client fails at construction rather than on the first call. The
    resources share the session, and therefore its token cache.

    Example:
        >>> async with EnergiaPro("user", "secret") as api:
        ...     installations = await api.installations.list("507167")
    """

    def __init__(
        self,
        username: str,
        secret_key: str,
        base_url: str = restapi.DEFAULT_BASE_URL,
        timeout: float = restapi.DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client = restapi.EnergiaProRestClient(
            username=username,
            secret_key=secret_key,
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )
        self.installations = InstallationsResource(self.client)
        self.measurements = MeasurementsResource(self.client)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying session."""
        await self.client.aclose()
