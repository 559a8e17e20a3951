"""Typed requests for the EnergiaPro API.

Each request kind owns its validation, its wire encoding (form-encoded
POST) and the mapping of the decoded JSON payload onto a model. The
session drives them through :meth:`Request.validate`,
:meth:`Request.build` and :meth:`Request.parse_response`.
"""

import datetime
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar

import httpx
import pydantic

from .errors import DecodeError, InvalidArgumentError, MissingTokenError
from .types import Installation, Measurement

AUTH_ENDPOINT = "authenticate.php"
DATA_ENDPOINT = "index.php"

INSTALLATIONS_SCOPE = "installation-lpn-list"
# The installations scope ignores num_inst but the API requires the field
INSTALLATIONS_NUM_INST_PLACEHOLDER = "0"

DATE_FORMAT = "%Y-%m-%d"

ModelT = TypeVar("ModelT")

_installations_adapter = pydantic.TypeAdapter(list[Installation])
_measurements_adapter = pydantic.TypeAdapter(list[Measurement])


class MeasurementScope(str, Enum):
    """Known measurement scopes. Any other non-blank string is passed through."""

    LPN_JSON = "lpn-json"
    GC_PLUS_JSON = "gc-plus-json"


def scope_value(scope: "MeasurementScope | str") -> str:
    """Return the wire value of a scope given as enum member or string."""
    if isinstance(scope, MeasurementScope):
        return scope.value
    return scope


def date_string(value: "datetime.date | str") -> str:
    """Serialize a date input; strings are passed through for validation."""
    if isinstance(value, datetime.datetime):
        value = value.date()
    if isinstance(value, datetime.date):
        return value.isoformat()
    return value


def _require(name: str, value: str) -> None:
    if not value.strip():
        msg = f"{name} cannot be empty"
        raise InvalidArgumentError(msg)


def _parse_date(name: str, value: str) -> datetime.date:
    """Parse a strict ``YYYY-MM-DD`` date.

    ``strptime`` accepts unpadded components such as ``2024-4-1``, so the
    parsed date is re-serialized and must match the input exactly.
    """
    msg = f"{name} must be in YYYY-MM-DD format"
    try:
        parsed = datetime.datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        raise InvalidArgumentError(msg) from None
    if parsed.isoformat() != value:
        raise InvalidArgumentError(msg)
    return parsed


class Request(ABC, Generic[ModelT]):
    """Base class for a single API operation."""

    endpoint: ClassVar[str] = DATA_ENDPOINT
    authenticated: ClassVar[bool] = True

    @abstractmethod
    def validate(self) -> None:
        """Raise :class:`InvalidArgumentError` if the request is not sendable."""

    @abstractmethod
    def form_data(self) -> dict[str, str]:
        """Return the form fields, in wire order."""

    @abstractmethod
    def decode(self, payload: Any) -> ModelT:
        """Map a transformed payload onto the model type."""

    def transform(self, payload: Any) -> Any:
        """Fix up the raw payload before decoding. Identity by default."""
        return payload

    def build(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        token: str | None,
    ) -> httpx.Request:
        """Build the HTTP request against ``base_url``.

        The bearer header is only attached to authenticated requests.
        """
        headers = {}
        if self.authenticated:
            headers["Authorization"] = f"Bearer {token}"
        return http_client.build_request(
            "POST",
            f"{base_url}/{self.endpoint}",
            data=self.form_data(),
            headers=headers,
        )

    def parse_response(self, payload: Any) -> ModelT:
        """Transform then decode a clean payload.

        Raises:
            DecodeError: If the payload does not match the model.
        """
        try:
            return self.decode(self.transform(payload))
        except pydantic.ValidationError as e:
            raise DecodeError(e) from e


@dataclass(frozen=True)
class AuthenticateRequest(Request[str]):
    """Exchange a username and one-time secret for a bearer token."""

    endpoint: ClassVar[str] = AUTH_ENDPOINT
    authenticated: ClassVar[bool] = False

    username: str
    one_time_secret_key: str = field(repr=False)

    def validate(self) -> None:
        _require("username", self.username)
        _require("secret_key", self.one_time_secret_key)

    def form_data(self) -> dict[str, str]:
        return {
            "username": self.username,
            "secret_key": self.one_time_secret_key,
        }

    def decode(self, payload: Any) -> str:
        token = payload.get("token") if isinstance(payload, dict) else None
        if not isinstance(token, str):
            raise MissingTokenError
        return token


@dataclass(frozen=True)
class InstallationsRequest(Request[list[Installation]]):
    """List the installations of a client."""

    client_id: str

    def validate(self) -> None:
        _require("client_id", self.client_id)

    def form_data(self) -> dict[str, str]:
        return {
            "scope": INSTALLATIONS_SCOPE,
            "client_id": self.client_id,
            "num_inst": INSTALLATIONS_NUM_INST_PLACEHOLDER,
        }

    def decode(self, payload: Any) -> list[Installation]:
        return _installations_adapter.validate_python(payload)


@dataclass(frozen=True)
class MeasurementsRequest(Request[list[Measurement]]):
    """List the measurements of one installation, optionally bounded by date.

    Date bounds are inclusive ``YYYY-MM-DD`` strings.
    """

    client_id: str
    installation_id: str
    scope: str = MeasurementScope.LPN_JSON.value
    date_from: str | None = None
    date_to: str | None = None

    def validate(self) -> None:
        _require("scope", self.scope)
        _require("installation_id", self.installation_id)
        _require("client_id", self.client_id)

        start = (
            _parse_date("date_from", self.date_from)
            if self.date_from is not None
            else None
        )
        end = _parse_date("date_to", self.date_to) if self.date_to is not None else None

        if start is not None and end is not None and start > end:
            msg = "date_from must be less than or equal to date_to"
            raise InvalidArgumentError(msg)

    def form_data(self) -> dict[str, str]:
        form = {
            "scope": self.scope,
            "client_id": self.client_id,
            "num_inst": self.installation_id,
        }
        if self.date_from is not None:
            form["date_debut"] = self.date_from
        if self.date_to is not None:
            form["date_fin"] = self.date_to
        return form

    def transform(self, payload: Any) -> Any:
        return ensure_installation_id(payload, self.installation_id)

    def decode(self, payload: Any) -> list[Measurement]:
        return _measurements_adapter.validate_python(payload)


def ensure_installation_id(payload: Any, installation_id: str) -> Any:
    """Inject ``num_inst`` into rows that carry no installation id.

    The measurements endpoint doesn't reliably echo which installation a row
    belongs to. Rows that already have ``installation_id`` or ``num_inst``
    are left untouched, as are non-object elements and non-array payloads.
    Applying this twice gives the same result as applying it once.

    Args:
        payload: Decoded JSON payload.
        installation_id: Installation id the request was built with.

    Returns:
        A new payload with every object row carrying an installation id.
    """
    if not isinstance(payload, list):
        return payload

    rows = []
    for row in payload:
        if (
            isinstance(row, dict)
            and "installation_id" not in row
            and "num_inst" not in row
        ):
            row = {**row, "num_inst": installation_id}  # noqa: PLW2901
        rows.append(row)
    return rows
