"""Measurement operations for the EnergiaPro API.

Every helper builds a :class:`MeasurementsRequest` with a different
combination of date bounds. Bounds are inclusive and may be given as
``datetime.date`` objects or ``YYYY-MM-DD`` strings.
"""

import datetime

import structlog

from .. import restapi
from ..restapi.requests import (
    MeasurementScope,
    MeasurementsRequest,
    date_string,
    scope_value,
)
from ..restapi.types import Measurement

logger = structlog.get_logger(__name__)

DateInput = datetime.date | str
ScopeInput = MeasurementScope | str


class MeasurementsResource:
    """Measurement-related API operations."""

    def __init__(self, client: restapi.EnergiaProRestClient):
        self._client = client

    async def get(
        self,
        client_id: str,
        installation_id: str,
        scope: ScopeInput = MeasurementScope.LPN_JSON,
        date_from: DateInput | None = None,
        date_to: DateInput | None = None,
    ) -> list[Measurement]:
        """Fetch measurements with optional date bounds.

        Args:
            client_id: EnergiaPro client identifier.
            installation_id: Installation identifier (``num_inst``).
            scope: Measurement scope (default: ``lpn-json``).
            date_from: Optional inclusive start date.
            date_to: Optional inclusive end date.

        Returns:
            Measurements in API order, each carrying its installation id.

        Raises:
            InvalidArgumentError: If an identifier is blank, a date is not
                strict ``YYYY-MM-DD``, or ``date_from`` is after ``date_to``.
        """
        request = MeasurementsRequest(
            client_id=client_id,
            installation_id=installation_id,
            scope=scope_value(scope),
            date_from=date_string(date_from) if date_from is not None else None,
            date_to=date_string(date_to) if date_to is not None else None,
        )
        measurements = await self._client.send(request)
        logger.debug(
            "Fetched measurements",
            installation_id=installation_id,
            count=len(measurements),
        )
        return measurements

    async def all(
        self,
        client_id: str,
        installation_id: str,
        scope: ScopeInput = MeasurementScope.LPN_JSON,
    ) -> list[Measurement]:
        """Fetch every measurement the API returns without date bounds."""
        return await self.get(client_id, installation_id, scope)

    async def for_date(
        self,
        client_id: str,
        installation_id: str,
        scope: ScopeInput,
        date: DateInput,
    ) -> list[Measurement]:
        """Fetch the measurements of a single day."""
        return await self.get(client_id, installation_id, scope, date, date)

    async def for_date_range(
        self,
        client_id: str,
        installation_id: str,
        scope: ScopeInput,
        date_from: DateInput,
        date_to: DateInput,
    ) -> list[Measurement]:
        """Fetch measurements between two inclusive dates."""
        return await self.get(client_id, installation_id, scope, date_from, date_to)

    async def since(
        self,
        client_id: str,
        installation_id: str,
        scope: ScopeInput,
        date: DateInput,
    ) -> list[Measurement]:
        """Fetch measurements from ``date`` onwards."""
        return await self.get(client_id, installation_id, scope, date_from=date)

    async def up_to(
        self,
        client_id: str,
        installation_id: str,
        scope: ScopeInput,
        date: DateInput,
    ) -> list[Measurement]:
        """Fetch measurements up to and including ``date``."""
        return await self.get(client_id, installation_id, scope, date_to=date)
