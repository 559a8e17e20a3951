"""EnergiaPro API client.

Async client for the EnergiaPro metering-data API: installations and
load-profile measurements behind a bcrypt one-time-secret login, with
tabular export and a small command-line interface.
"""

from .api import EnergiaPro
from .restapi.errors import (
    ApiError,
    ApiErrorCode,
    DecodeError,
    EnergiaProError,
    HttpStatusError,
    InvalidArgumentError,
    MissingTokenError,
    SecretKeyGenerationError,
    TransportError,
)
from .restapi.requests import MeasurementScope
from .restapi.types import Installation, Measurement

__version__ = "0.1.0"

__all__ = [
    "ApiError",
    "ApiErrorCode",
    "DecodeError",
    "EnergiaPro",
    "EnergiaProError",
    "HttpStatusError",
    "Installation",
    "InvalidArgumentError",
    "Measurement",
    "MeasurementScope",
    "MissingTokenError",
    "SecretKeyGenerationError",
    "TransportError",
]
