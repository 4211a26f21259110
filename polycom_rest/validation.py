"""Validation helpers for Polycom REST operations."""

from __future__ import annotations

import ipaddress
import logging
import re
from collections.abc import Iterable, Iterator
from typing import Any, Final

import voluptuous as vol

from .const import (
    ERROR_CODE_INVALID_ADDRESS,
    ERROR_CODE_INVALID_HANDLE,
    ERROR_CODE_TOO_MANY_PARAMS,
    ERROR_CODE_INVALID_INPUT,
    MAX_CAPTURE_SECONDS,
    MAX_LINE,
    MAX_PARAMETERS_PER_GET,
    MAX_RETRIES,
    MIN_CAPTURE_SECONDS,
    MIN_LINE,
    MIN_RETRIES,
    VALID_DTMF_CHARS,
    CallType,
    CallLogType,
    ConfigResetScope,
)
from .exceptions import InvalidInputError

_LOGGER = logging.getLogger(__name__)

_DOTTED_QUAD: Final = re.compile(r"^\d{1,3}(?:\.\d{1,3}){3}$")
_CALL_HANDLE: Final = re.compile(r"^(?:0x)?(?P<hex>[0-9a-f]+)$", re.IGNORECASE)


def _validate_dtmf(value: Any) -> str:
    """Validate a DTMF digit string."""
    digits = str(value).strip()
    if not digits or any(char not in VALID_DTMF_CHARS for char in digits):
        raise vol.Invalid("DTMF digits must be one of: 0-9, *, #")
    return digits


LINE_SCHEMA = vol.All(vol.Coerce(int), vol.Range(min=MIN_LINE, max=MAX_LINE))
RETRIES_SCHEMA = vol.All(vol.Coerce(int), vol.Range(min=MIN_RETRIES, max=MAX_RETRIES))
POSITIVE_INT_SCHEMA = vol.All(vol.Coerce(int), vol.Range(min=1))
TIMEOUT_SCHEMA = vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))

DIAL_SCHEMA = vol.Schema(
    {
        vol.Required("destination"): vol.All(str, vol.Length(min=1)),
        vol.Optional("line", default=MIN_LINE): LINE_SCHEMA,
        vol.Optional("call_type", default=CallType.SIP): vol.All(
            vol.Upper, vol.Coerce(CallType)
        ),
    }
)

DTMF_SCHEMA = vol.Schema({vol.Required("digits"): _validate_dtmf})

TRANSFER_SCHEMA = vol.Schema(
    {vol.Required("destination"): vol.All(str, vol.Length(min=1))}
)

SIGN_IN_SCHEMA = vol.Schema(
    {
        vol.Required("sign_in_address"): vol.All(str, vol.Length(min=1)),
        vol.Required("user"): vol.All(str, vol.Length(min=1)),
        vol.Required("domain"): vol.All(str, vol.Length(min=1)),
        vol.Required("password"): str,
    }
)

CONFIG_RESET_SCHEMA = vol.Schema(
    {vol.Optional("scope"): vol.Any(None, vol.All(vol.Lower, vol.Coerce(ConfigResetScope)))}
)

CALL_LOG_SCHEMA = vol.Schema(
    {vol.Optional("log_type"): vol.Any(None, vol.All(vol.Lower, vol.Coerce(CallLogType)))}
)

CAPTURE_SCHEMA = vol.Schema(
    {
        vol.Optional("duration"): vol.Any(
            None,
            vol.All(
                vol.Coerce(int),
                vol.Range(min=MIN_CAPTURE_SECONDS, max=MAX_CAPTURE_SECONDS),
            ),
        )
    }
)

CALL_FILTER_SCHEMA = vol.Schema(
    {
        vol.Optional("line"): vol.Any(None, POSITIVE_INT_SCHEMA),
        vol.Optional("sequence"): vol.Any(None, POSITIVE_INT_SCHEMA),
    }
)


def validate(schema: vol.Schema, data: dict[str, Any]) -> dict[str, Any]:
    """Run a voluptuous schema, raising InvalidInputError on failure."""
    try:
        return schema(data)
    except vol.Invalid as err:
        raise InvalidInputError(str(err), ERROR_CODE_INVALID_INPUT) from err


def validate_retries(value: Any) -> int:
    """Validate a per-call retry count (1-100)."""
    try:
        return RETRIES_SCHEMA(value)
    except vol.Invalid as err:
        raise InvalidInputError(
            f"Retry count must be between {MIN_RETRIES} and {MAX_RETRIES}: {value!r}",
            ERROR_CODE_INVALID_INPUT,
        ) from err


def validate_timeout(value: Any) -> float:
    """Validate a per-call timeout in seconds (must be positive)."""
    try:
        return TIMEOUT_SCHEMA(value)
    except vol.Invalid as err:
        raise InvalidInputError(
            f"Timeout must be a positive number of seconds: {value!r}",
            ERROR_CODE_INVALID_INPUT,
        ) from err


def normalize_address(address: Any) -> str:
    """Validate a dotted-quad IPv4 address and return it normalized."""
    text = str(address).strip() if address is not None else ""
    if not _DOTTED_QUAD.match(text):
        raise InvalidInputError(
            f"Not a dotted-quad IPv4 address: {address!r}", ERROR_CODE_INVALID_ADDRESS
        )
    try:
        # Leading zeros are rejected by ipaddress; strip them per octet first
        return str(ipaddress.IPv4Address(".".join(str(int(o)) for o in text.split("."))))
    except ipaddress.AddressValueError as err:
        raise InvalidInputError(
            f"IPv4 octet out of range: {address!r}", ERROR_CODE_INVALID_ADDRESS
        ) from err


def iter_addresses(addresses: str | Iterable[str]) -> Iterator[str]:
    """Yield valid addresses in caller order, logging and skipping bad ones."""
    if isinstance(addresses, str):
        addresses = [addresses]

    for address in addresses:
        try:
            yield normalize_address(address)
        except InvalidInputError as err:
            _LOGGER.error("Skipping device: %s", err)


def normalize_call_handle(handle: Any) -> str:
    """Return a call handle in the ``0x<hex>`` form used by callctrl bodies."""
    return f"0x{call_handle_suffix(handle)}"


def call_handle_suffix(handle: Any) -> str:
    """Return the hex digits of a call handle without the ``0x`` prefix."""
    text = str(handle).strip() if handle is not None else ""
    match = _CALL_HANDLE.match(text)
    if not match:
        raise InvalidInputError(
            f"Malformed call handle: {handle!r}", ERROR_CODE_INVALID_HANDLE
        )
    return match.group("hex").lower()


def validate_parameter_names(names: str | Iterable[str]) -> list[str]:
    """Check a config/get batch of 1..20 non-empty names.

    Names are returned stripped, in caller order, duplicates included so the
    caller can emit one record per requested name.
    """
    names = [names] if isinstance(names, str) else list(names)

    if len(names) > MAX_PARAMETERS_PER_GET:
        raise InvalidInputError(
            f"At most {MAX_PARAMETERS_PER_GET} parameters can be read per call, "
            f"got {len(names)}",
            ERROR_CODE_TOO_MANY_PARAMS,
        )

    cleaned: list[str] = []
    for name in names:
        if not isinstance(name, str) or not name.strip():
            raise InvalidInputError(
                f"Invalid parameter name: {name!r}", ERROR_CODE_INVALID_INPUT
            )
        cleaned.append(name.strip())

    if not cleaned:
        raise InvalidInputError(
            "At least one parameter name is required", ERROR_CODE_INVALID_INPUT
        )
    return cleaned
