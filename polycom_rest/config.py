"""Client configuration for the Polycom REST client."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import voluptuous as vol
import yaml

from .const import (
    DEFAULT_PASSWORD,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_BACKOFF,
    DEFAULT_TIMEOUT,
    DEFAULT_USERNAME,
    ENV_PREFIX,
    ERROR_CODE_INVALID_INPUT,
    MAX_RETRIES,
    MIN_RETRIES,
)
from .exceptions import InvalidInputError
from .parsers import coerce_bool
from .validation import TIMEOUT_SCHEMA

_LOGGER = logging.getLogger(__name__)


def _boolean(value: Any) -> bool:
    result = coerce_bool(value)
    if result is None:
        raise vol.Invalid(f"Invalid boolean value: {value!r}")
    return result


CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional("username", default=DEFAULT_USERNAME): vol.Coerce(str),
        vol.Optional("password", default=DEFAULT_PASSWORD): vol.Coerce(str),
        vol.Optional("port", default=None): vol.Any(
            None, vol.All(vol.Coerce(int), vol.Range(min=1, max=65535))
        ),
        vol.Optional("use_https", default=True): _boolean,
        vol.Optional("verify_ssl", default=False): _boolean,
        vol.Optional("timeout", default=DEFAULT_TIMEOUT): TIMEOUT_SCHEMA,
        vol.Optional("retries", default=DEFAULT_RETRIES): vol.All(
            vol.Coerce(int), vol.Range(min=MIN_RETRIES, max=MAX_RETRIES)
        ),
        vol.Optional("retry_backoff", default=DEFAULT_RETRY_BACKOFF): vol.All(
            vol.Coerce(float), vol.Range(min=0)
        ),
    }
)


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings shared by every request."""

    username: str = DEFAULT_USERNAME
    password: str = DEFAULT_PASSWORD
    port: int | None = None
    use_https: bool = True
    verify_ssl: bool = False
    timeout: float = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES
    retry_backoff: float = DEFAULT_RETRY_BACKOFF

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ClientConfig:
        """Validate a mapping and build a config from it."""
        try:
            validated = CONFIG_SCHEMA(dict(data))
        except vol.Invalid as err:
            raise InvalidInputError(
                f"Invalid configuration: {err}", ERROR_CODE_INVALID_INPUT
            ) from err
        return cls(**validated)

    def with_overrides(self, **overrides: Any) -> ClientConfig:
        """Return a validated copy with the non-None overrides applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        if not changes:
            return self
        return ClientConfig.from_mapping({**asdict(self), **changes})

    def as_redacted_dict(self) -> dict[str, Any]:
        """Return settings safe for logging."""
        data = asdict(self)
        data["password"] = "***"
        return data


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for key in CONFIG_SCHEMA.schema:
        name = str(key)
        raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is None or not raw.strip():
            continue
        overrides[name] = raw.strip()
    return overrides


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise InvalidInputError(
            f"Configuration file {path} must contain a mapping",
            ERROR_CODE_INVALID_INPUT,
        )
    return data


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    **overrides: Any,
) -> ClientConfig:
    """Build a config from a YAML file, ``POLYCOM_*`` variables and overrides.

    Later sources win: file, then environment, then keyword overrides.
    Unknown keys in the file are ignored with a warning.
    """
    data: dict[str, Any] = {}

    if path is not None:
        file_data = _load_yaml(Path(path))
        known = {str(key) for key in CONFIG_SCHEMA.schema}
        for key, value in file_data.items():
            if key in known:
                data[key] = value
            else:
                _LOGGER.warning("Ignoring unknown configuration key %s in %s", key, path)

    data.update(_env_overrides(os.environ if environ is None else environ))
    data.update({key: value for key, value in overrides.items() if value is not None})

    config = ClientConfig.from_mapping(data)
    _LOGGER.debug("Loaded configuration: %s", config.as_redacted_dict())
    return config
