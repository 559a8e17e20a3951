"""Typed models for EnergiaPro API responses.

Pydantic models mapping the vendor's French field names onto English ones.
Numeric measurement fields are sent either as JSON numbers or as numeric
strings; both are normalized here so the union never leaks past decoding.
"""

from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field


def _number_or_numeric_string(value: Any) -> Any:
    """Accept a JSON number or a numeric string, reject everything else."""
    if isinstance(value, bool):
        msg = "expected a number or a numeric string"
        raise ValueError(msg)  # noqa: TRY004
    if isinstance(value, str):
        stripped = value.strip()
        msg = "expected decimal number as number or string"
        # float() also takes digit separators and non-ASCII digits
        if not stripped.isascii() or "_" in stripped:
            raise ValueError(msg)
        try:
            return float(stripped)
        except ValueError:
            raise ValueError(msg) from None
    if isinstance(value, (int, float)):
        return value
    msg = "expected a number or a numeric string"
    raise ValueError(msg)


def _unsigned_or_numeric_string(value: Any) -> Any:
    """Accept a non-negative JSON integer or an integer string."""
    if isinstance(value, bool):
        msg = "expected an unsigned integer"
        raise ValueError(msg)  # noqa: TRY004
    if isinstance(value, str):
        stripped = value.strip()
        if not (stripped.isascii() and stripped.isdigit()):
            msg = "expected unsigned integer as number or string"
            raise ValueError(msg)
        return int(stripped)
    return value


WireFloat = Annotated[float, BeforeValidator(_number_or_numeric_string)]
WireUnsigned = Annotated[int, BeforeValidator(_unsigned_or_numeric_string), Field(ge=0)]


class Installation(BaseModel):
    """A metered installation belonging to a client."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(validation_alias=AliasChoices("insID", "id"))
    street_name: str = Field(validation_alias=AliasChoices("adrNomRueC", "street_name"))
    street_address: str = Field(
        validation_alias=AliasChoices("adrRueC", "street_address"),
    )
    building_number: int = Field(
        validation_alias=AliasChoices("adrNumImm", "building_number"),
    )
    postal_code: str = Field(validation_alias=AliasChoices("adrCPC", "postal_code"))
    city: str = Field(validation_alias=AliasChoices("adrLocaliteC", "city"))


class Measurement(BaseModel):
    """A single load-profile reading.

    Volumes are in cubic meters, energy in kilowatt-hours. ``timestamp`` is
    kept verbatim as sent by the API (``YYYY-MM-DD HH:MM:SS``).
    """

    model_config = ConfigDict(frozen=True)

    client_id: WireUnsigned
    installation_id: str = Field(
        validation_alias=AliasChoices("installation_id", "num_inst"),
    )
    timestamp: str = Field(validation_alias=AliasChoices("timestamp", "date"))
    index_m3: WireFloat
    consumption_m3: WireFloat = Field(
        validation_alias=AliasChoices("quantite_m3", "consumption_m3"),
    )
    consumption_kwh: WireFloat = Field(
        validation_alias=AliasChoices("consommation_kw_h", "consumption_kwh"),
    )
