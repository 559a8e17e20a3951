"""Command-line interface for the EnergiaPro API client."""

import argparse
import asyncio
import json
import logging
import os
import pathlib
import sys
from collections.abc import Mapping

import httpx
import pydantic
import structlog

from . import restapi
from .api import EnergiaPro
from .render import OutputFormat, render
from .restapi.errors import EnergiaProError
from .restapi.requests import MeasurementScope
from .restapi.types import Installation, Measurement

CONFIG_ENV_VAR = "ENERGIAPRO_CONFIG_PATH"

# Config field -> environment variable
ENV_VARS = {
    "username": "ENERGIAPRO_USERNAME",
    "secret_key": "ENERGIAPRO_SECRET_KEY",
    "base_url": "ENERGIAPRO_BASE_URL",
    "timeout": "ENERGIAPRO_TIMEOUT",
    "log_level": "ENERGIAPRO_LOG_LEVEL",
}

REQUIRED_FLAGS = {
    "username": "--username",
    "secret_key": "--secret-key",
}

logger = structlog.get_logger(__name__)


class ConfigError(Exception):
    """Raised when the client configuration is incomplete or invalid."""


class ClientConfig(pydantic.BaseModel):
    """Configuration for the EnergiaPro command-line client."""

    username: str = pydantic.Field(description="EnergiaPro API username")
    secret_key: str = pydantic.Field(
        description="EnergiaPro API secret key",
        repr=False,
    )
    base_url: str = pydantic.Field(
        restapi.DEFAULT_BASE_URL,
        description="HTTPS base API URL",
    )
    timeout: float = pydantic.Field(
        restapi.DEFAULT_TIMEOUT,
        description="HTTP timeout in seconds",
        gt=0,
    )
    log_level: str = pydantic.Field("WARNING", description="Logging level")


def configure_logging(log_level_name: str) -> None:
    """Configure structlog for logfmt output on stderr.

    Stdout is reserved for rendered results.
    """
    log_level = getattr(logging, log_level_name.upper(), logging.WARNING)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg"),
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def load_config_file(config_path: str) -> dict:
    """Load configuration values from a JSON file."""
    path = pathlib.Path(config_path)
    if not path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise ConfigError(msg)

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        msg = f"Cannot read configuration file {config_path}: {e}"
        raise ConfigError(msg) from e

    if not isinstance(data, dict):
        msg = f"Configuration file must contain a JSON object: {config_path}"
        raise ConfigError(msg)
    return data


def resolve_config(
    args: argparse.Namespace,
    environ: Mapping[str, str] | None = None,
) -> ClientConfig:
    """Merge defaults, config file, environment and flags into a config.

    Later sources win: JSON file named by ``ENERGIAPRO_CONFIG_PATH``, then
    ``ENERGIAPRO_*`` variables, then command-line flags.

    Raises:
        ConfigError: If credentials are missing or a value is invalid.
    """
    environ = os.environ if environ is None else environ

    data: dict = {}
    if config_path := environ.get(CONFIG_ENV_VAR):
        data.update(load_config_file(config_path))

    for field, env_var in ENV_VARS.items():
        if value := environ.get(env_var):
            data[field] = value

    for field in ENV_VARS:
        value = getattr(args, field, None)
        if value is not None:
            data[field] = value

    for field, flag in REQUIRED_FLAGS.items():
        if not data.get(field):
            name = field.replace("_", " ")
            msg = f"missing {name}: pass {flag} or set {ENV_VARS[field]}"
            raise ConfigError(msg)

    try:
        return ClientConfig(**data)
    except pydantic.ValidationError as e:
        msg = f"invalid configuration: {e}"
        raise ConfigError(msg) from e


def _client(
    config: ClientConfig,
    transport: httpx.AsyncBaseTransport | None,
) -> EnergiaPro:
    return EnergiaPro(
        username=config.username,
        secret_key=config.secret_key,
        base_url=config.base_url,
        timeout=config.timeout,
        transport=transport,
    )


async def run_installations(
    config: ClientConfig,
    args: argparse.Namespace,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bytes:
    """List installations and render them."""
    async with _client(config, transport) as api:
        installations = await api.installations.list(args.client_id)
    return render(installations, OutputFormat(args.format), Installation)


async def run_measurements(
    config: ClientConfig,
    args: argparse.Namespace,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bytes:
    """Fetch measurements and render them."""
    async with _client(config, transport) as api:
        measurements = await api.measurements.get(
            args.client_id,
            args.installation_id,
            scope=args.scope,
            date_from=args.date_from,
            date_to=args.date_to,
        )
    return render(measurements, OutputFormat(args.format), Measurement)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-u",
        "--username",
        help=f"EnergiaPro API username (or {ENV_VARS['username']})",
    )
    parser.add_argument(
        "-k",
        "--secret-key",
        dest="secret_key",
        help=f"EnergiaPro API secret key (or {ENV_VARS['secret_key']})",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=[fmt.value for fmt in OutputFormat],
        default=OutputFormat.TEXT.value,
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--timeout-secs",
        dest="timeout",
        type=float,
        help=f"HTTP timeout in seconds (default: {restapi.DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument(
        "--base-url",
        help=f"HTTPS base API URL (or {ENV_VARS['base_url']})",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level written to stderr (default: WARNING)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the ``energiapro`` argument parser."""
    parser = argparse.ArgumentParser(
        prog="energiapro",
        description="CLI for the EnergiaPro API",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    installations = subparsers.add_parser(
        "installations",
        help="List the installations of a client",
    )
    installations.add_argument("client_id", help="EnergiaPro client identifier")
    _add_common_arguments(installations)
    installations.set_defaults(handler=run_installations)

    measurements = subparsers.add_parser(
        "measurements",
        help="Fetch measurements of an installation",
    )
    measurements.add_argument("client_id", help="EnergiaPro client identifier")
    measurements.add_argument(
        "installation_id",
        help="Installation identifier (num_inst)",
    )
    measurements.add_argument(
        "-s",
        "--scope",
        choices=[scope.value for scope in MeasurementScope],
        default=MeasurementScope.LPN_JSON.value,
        help="Scope to query (default: lpn-json)",
    )
    measurements.add_argument(
        "--from",
        dest="date_from",
        help="Start date filter in YYYY-MM-DD",
    )
    measurements.add_argument(
        "--to",
        dest="date_to",
        help="End date filter in YYYY-MM-DD",
    )
    _add_common_arguments(measurements)
    measurements.set_defaults(handler=run_measurements)

    return parser


def main(
    argv: list[str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Run the CLI and return the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(args)
        configure_logging(config.log_level)
        logger.debug("Running command", command=args.command, base_url=config.base_url)
        output = asyncio.run(args.handler(config, args, transport))
    except (ConfigError, EnergiaProError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    sys.stdout.buffer.write(output)
    sys.stdout.buffer.flush()
    return 0


def cli() -> None:
    """Console-script entry point."""
    sys.exit(main())
