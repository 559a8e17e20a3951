"""Installation operations for the EnergiaPro API."""

import structlog

from .. import restapi
from ..restapi.requests import InstallationsRequest
from ..restapi.types import Installation

logger = structlog.get_logger(__name__)


class InstallationsResource:
    """Installation-related API operations."""

    def __init__(self, client: restapi.EnergiaProRestClient):
        self._client = client

    async def list(self, client_id: str) -> list[Installation]:
        """List all installations of a client.

        Args:
            client_id: EnergiaPro client identifier.

        Returns:
            The client's installations, in API order.
        """
        installations = await self._client.send(InstallationsRequest(client_id=client_id))
        logger.debug("Fetched installations", count=len(installations))
        return installations
