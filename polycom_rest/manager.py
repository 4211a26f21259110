"""Per-device operations for Polycom phones.

Every operation walks the supplied addresses one at a time, isolates
failures per device and returns the accumulated records in address order.
"""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from .api_client import PolycomAPIClient
from .config import ClientConfig
from .const import (
    END_CALL_BLOCKED_FIRMWARE,
    ERROR_CODE_FIRMWARE_BLOCKED,
    ERROR_CODE_NO_CALL,
    ResultStatus,
)
from .exceptions import (
    InvalidInputError,
    PolycomAPIError,
    PolycomDeviceError,
)
from .models import (
    CallLogRecord,
    CallRecord,
    CommandResult,
    DeviceInfoRecord,
    ParameterRecord,
    StatusSnapshot,
)
from .normalize import (
    error_parameter_records,
    invalid_parameter_names,
    normalize_call_logs,
    normalize_call_status_v1,
    normalize_call_status_v2,
    normalize_device_info,
    normalize_device_stats,
    normalize_line_info,
    normalize_location_info,
    normalize_network_info,
    normalize_network_stats,
    normalize_parameters,
    normalize_poll_for_status,
    normalize_presence,
    normalize_sip_status,
)
from .parsers import escape_json_string
from .validation import (
    CALL_FILTER_SCHEMA,
    CALL_LOG_SCHEMA,
    CAPTURE_SCHEMA,
    CONFIG_RESET_SCHEMA,
    DIAL_SCHEMA,
    DTMF_SCHEMA,
    SIGN_IN_SCHEMA,
    TRANSFER_SCHEMA,
    call_handle_suffix,
    iter_addresses,
    normalize_call_handle,
    validate,
    validate_parameter_names,
    validate_retries,
    validate_timeout,
)

_LOGGER = logging.getLogger(__name__)

Addresses = str | Iterable[str]


def _format_value(value: Any) -> str:
    """Convert a set-parameter value to the device's string form."""
    if isinstance(value, bool):
        return "1" if value else "0"
    if value is None:
        return ""
    return str(value)


class PolycomPhoneManager:
    """Run management operations against one or more phones."""

    def __init__(
        self,
        client: PolycomAPIClient | None = None,
        config: ClientConfig | None = None,
    ) -> None:
        """Initialize the manager with an API client or a config to build one."""
        if client is None:
            client = PolycomAPIClient(config)
        self._client = client

    @property
    def client(self) -> PolycomAPIClient:
        """Underlying API client."""
        return self._client

    async def __aenter__(self) -> PolycomPhoneManager:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self._client.close()

    def _options(
        self, retries: int | None, timeout: float | None
    ) -> dict[str, Any]:
        """Per-call transport overrides, validated at the API boundary."""
        options: dict[str, Any] = {}
        if retries is not None:
            options["retries"] = validate_retries(retries)
        if timeout is not None:
            options["timeout"] = validate_timeout(timeout)
        return options

    async def _fetch(
        self,
        address: str,
        label: str,
        call: Callable[[], Awaitable[dict[str, Any]]],
    ) -> dict[str, Any] | None:
        """Run one request, logging and swallowing per-device failures."""
        try:
            return await call()
        except PolycomDeviceError as err:
            _LOGGER.error(
                "%s on %s reported failure: %s (code: %s)",
                label,
                address,
                err,
                err.error_code,
            )
        except InvalidInputError:
            raise
        except PolycomAPIError as err:
            _LOGGER.error("%s on %s failed: %s", label, address, err)
        return None

    async def _command(
        self,
        address: str,
        operation: str,
        call: Callable[[], Awaitable[dict[str, Any]]],
    ) -> CommandResult:
        """Run a command request and classify the outcome."""
        try:
            envelope = await call()
        except PolycomDeviceError as err:
            _LOGGER.error(
                "%s on %s reported failure: %s (code: %s)",
                operation,
                address,
                err,
                err.error_code,
            )
            return CommandResult(
                address, operation, ResultStatus.FAILURE, str(err), err.error_code
            )
        except InvalidInputError:
            raise
        except PolycomAPIError as err:
            _LOGGER.error("%s on %s failed: %s", operation, address, err)
            return CommandResult(
                address, operation, ResultStatus.FAILURE, str(err), err.error_code
            )
        invalid = invalid_parameter_names(envelope or {})
        if invalid:
            message = f"Device rejected: {', '.join(invalid)}"
            _LOGGER.warning("%s on %s partially applied. %s", operation, address, message)
            return CommandResult(address, operation, ResultStatus.PARTIAL, message)
        _LOGGER.debug("%s on %s succeeded", operation, address)
        return CommandResult(address, operation, ResultStatus.SUCCESS)

    # Parameters
    async def get_parameters(
        self,
        addresses: Addresses,
        names: str | Iterable[str],
        *,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[ParameterRecord]:
        """Read up to 20 configuration parameters from each device."""
        requested = validate_parameter_names(names)
        # The device is asked once per name; records follow the caller's list
        unique = list(dict.fromkeys(requested))
        options = self._options(retries, timeout)

        records: list[ParameterRecord] = []
        for address in iter_addresses(addresses):
            try:
                envelope = await self._client.get_config(address, unique, **options)
            except PolycomDeviceError as err:
                if err.payload and (
                    "InvalidParams" in err.payload
                    or isinstance(err.payload.get("data"), dict)
                ):
                    _LOGGER.warning(
                        "config/get on %s partially failed (code: %s)",
                        address,
                        err.error_code,
                    )
                    records.extend(normalize_parameters(address, requested, err.payload))
                    continue
                _LOGGER.error("config/get on %s reported failure: %s", address, err)
                records.extend(error_parameter_records(address, requested))
                continue
            except InvalidInputError:
                raise
            except PolycomAPIError as err:
                _LOGGER.error("config/get on %s failed: %s", address, err)
                records.extend(error_parameter_records(address, requested))
                continue
            records.extend(normalize_parameters(address, requested, envelope))
        return records

    async def set_parameter(
        self,
        addresses: Addresses,
        name: str,
        value: Any,
        *,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CommandResult]:
        """Write one configuration parameter on each device."""
        try:
            escape_json_string(name)
        except (TypeError, ValueError) as err:
            raise InvalidInputError(f"Cannot encode parameter name {name!r}: {err}") from err
        if not name.strip():
            raise InvalidInputError("Parameter name cannot be empty")

        text = _format_value(value)
        try:
            escape_json_string(text)
        except ValueError as err:
            # Unencodable values are sent as empty rather than aborting the batch
            _LOGGER.warning(
                "Value for %s cannot be encoded (%s); sending empty string", name, err
            )
            text = ""

        options = self._options(retries, timeout)
        return [
            await self._command(
                address,
                "config/set",
                lambda address=address: self._client.set_config(
                    address, {name: text}, **options
                ),
            )
            for address in iter_addresses(addresses)
        ]

    # Call status
    async def get_call_status(
        self,
        addresses: Addresses,
        *,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CallRecord]:
        """Current call on each device (API v1); idle devices yield nothing."""
        options = self._options(retries, timeout)
        records: list[CallRecord] = []
        for address in iter_addresses(addresses):
            envelope = await self._fetch(
                address,
                "callStatus",
                lambda address=address: self._client.get_call_status(address, **options),
            )
            if envelope is None:
                continue
            record = normalize_call_status_v1(address, envelope)
            if record is not None:
                records.append(record)
        return records

    async def get_call_status_v2(
        self,
        addresses: Addresses,
        *,
        handle: str | None = None,
        line: int | None = None,
        sequence: int | None = None,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CallRecord]:
        """All calls on each device (API v2), optionally filtered."""
        suffix = call_handle_suffix(handle) if handle is not None else None
        filters = validate(CALL_FILTER_SCHEMA, {"line": line, "sequence": sequence})
        options = self._options(retries, timeout)

        records: list[CallRecord] = []
        for address in iter_addresses(addresses):
            envelope = await self._fetch(
                address,
                "callStatus v2",
                lambda address=address: self._client.get_call_status_v2(
                    address,
                    handle=suffix,
                    line=filters.get("line"),
                    sequence=filters.get("sequence"),
                    **options,
                ),
            )
            if envelope is not None:
                records.extend(normalize_call_status_v2(address, envelope))
        return records

    async def _resolve_call_handle(
        self, address: str, handle: str | None, options: dict[str, Any]
    ) -> str | None:
        """Return a usable ``0x`` handle, looking up the current call if needed."""
        if handle is not None:
            try:
                return normalize_call_handle(handle)
            except InvalidInputError as err:
                _LOGGER.warning("%s; resolving current call on %s", err, address)

        envelope = await self._fetch(
            address,
            "callStatus",
            lambda: self._client.get_call_status(address, **options),
        )
        record = normalize_call_status_v1(address, envelope) if envelope else None
        if record is None or not record.call_handle:
            return None
        try:
            return normalize_call_handle(record.call_handle)
        except InvalidInputError as err:
            _LOGGER.warning("Device %s reported %s", address, err)
            return None

    async def _call_command(
        self,
        addresses: Addresses,
        operation: str,
        handle: str | None,
        send: Callable[[str, str], Awaitable[dict[str, Any]]],
        options: dict[str, Any],
    ) -> list[CommandResult]:
        results: list[CommandResult] = []
        for address in iter_addresses(addresses):
            ref = await self._resolve_call_handle(address, handle, options)
            if ref is None:
                _LOGGER.warning("No call to %s on %s", operation, address)
                results.append(
                    CommandResult(
                        address,
                        operation,
                        ResultStatus.SKIPPED,
                        "No call handle could be resolved",
                        ERROR_CODE_NO_CALL,
                    )
                )
                continue
            results.append(
                await self._command(
                    address,
                    operation,
                    lambda address=address, ref=ref: send(address, ref),
                )
            )
        return results

    # Call control
    async def dial(
        self,
        addresses: Addresses,
        destination: str,
        *,
        line: int = 1,
        call_type: str = "SIP",
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CommandResult]:
        """Place a call from each device."""
        params = validate(
            DIAL_SCHEMA,
            {"destination": destination, "line": line, "call_type": call_type},
        )
        options = self._options(retries, timeout)
        return [
            await self._command(
                address,
                "dial",
                lambda address=address: self._client.dial(
                    address,
                    params["destination"],
                    params["line"],
                    str(params["call_type"]),
                    **options,
                ),
            )
            for address in iter_addresses(addresses)
        ]

    async def end_call(
        self,
        addresses: Addresses,
        handle: str | None = None,
        *,
        force: bool = False,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CommandResult]:
        """End a call, refusing on firmware whose endCall handler hangs."""
        options = self._options(retries, timeout)
        results: list[CommandResult] = []
        for address in iter_addresses(addresses):
            blocked = await self._end_call_blocked(address, force, options)
            if blocked is not None:
                results.append(blocked)
                continue
            results.extend(
                await self._call_command(
                    address,
                    "endCall",
                    handle,
                    lambda address, ref: self._client.end_call(address, ref, **options),
                    options,
                )
            )
        return results

    async def _end_call_blocked(
        self, address: str, force: bool, options: dict[str, Any]
    ) -> CommandResult | None:
        envelope = await self._fetch(
            address,
            "device/info",
            lambda: self._client.get_device_info(address, **options),
        )
        if envelope is None:
            _LOGGER.warning(
                "Could not read firmware on %s; sending endCall without guard", address
            )
            return None

        firmware = normalize_device_info(address, envelope).firmware_version
        if not firmware or not fnmatch.fnmatch(firmware, END_CALL_BLOCKED_FIRMWARE):
            return None

        if force:
            _LOGGER.warning(
                "Forcing endCall on %s with firmware %s. This firmware is known to "
                "hang the management API until the phone is rebooted",
                address,
                firmware,
            )
            return None

        message = (
            f"endCall refused: firmware {firmware} matches {END_CALL_BLOCKED_FIRMWARE}, "
            "which hangs the management API; pass force=True to override"
        )
        _LOGGER.error("%s (device %s)", message, address)
        return CommandResult(
            address, "endCall", ResultStatus.FAILURE, message, ERROR_CODE_FIRMWARE_BLOCKED
        )

    async def mute(
        self,
        addresses: Addresses,
        state: bool = True,
        *,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CommandResult]:
        """Mute (or unmute) each device."""
        options = self._options(retries, timeout)
        return [
            await self._command(
                address,
                "mute",
                lambda address=address: self._client.mute(address, bool(state), **options),
            )
            for address in iter_addresses(addresses)
        ]

    async def hold_call(
        self,
        addresses: Addresses,
        handle: str | None = None,
        *,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CommandResult]:
        """Put a call on hold."""
        options = self._options(retries, timeout)
        return await self._call_command(
            addresses,
            "holdCall",
            handle,
            lambda address, ref: self._client.hold_call(address, ref, **options),
            options,
        )

    async def resume_call(
        self,
        addresses: Addresses,
        handle: str | None = None,
        *,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CommandResult]:
        """Resume a held call."""
        options = self._options(retries, timeout)
        return await self._call_command(
            addresses,
            "resumeCall",
            handle,
            lambda address, ref: self._client.resume_call(address, ref, **options),
            options,
        )

    async def transfer_call(
        self,
        addresses: Addresses,
        destination: str,
        handle: str | None = None,
        *,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CommandResult]:
        """Transfer a call to *destination*."""
        params = validate(TRANSFER_SCHEMA, {"destination": destination})
        options = self._options(retries, timeout)
        return await self._call_command(
            addresses,
            "transferCall",
            handle,
            lambda address, ref: self._client.transfer_call(
                address, ref, params["destination"], **options
            ),
            options,
        )

    async def send_dtmf(
        self,
        addresses: Addresses,
        digits: str,
        *,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CommandResult]:
        """Send DTMF digits on the active call."""
        params = validate(DTMF_SCHEMA, {"digits": digits})
        options = self._options(retries, timeout)
        return [
            await self._command(
                address,
                "sendDTMF",
                lambda address=address: self._client.send_dtmf(
                    address, params["digits"], **options
                ),
            )
            for address in iter_addresses(addresses)
        ]

    async def answer_call(
        self,
        addresses: Addresses,
        handle: str | None = None,
        *,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CommandResult]:
        """Answer an incoming call."""
        options = self._options(retries, timeout)
        return await self._call_command(
            addresses,
            "answerCall",
            handle,
            lambda address, ref: self._client.answer_call(address, ref, **options),
            options,
        )

    async def reject_call(
        self,
        addresses: Addresses,
        handle: str | None = None,
        *,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CommandResult]:
        """Reject an incoming call."""
        options = self._options(retries, timeout)
        return await self._call_command(
            addresses,
            "rejectCall",
            handle,
            lambda address, ref: self._client.reject_call(address, ref, **options),
            options,
        )

    async def ignore_call(
        self,
        addresses: Addresses,
        handle: str | None = None,
        *,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CommandResult]:
        """Silence an incoming call."""
        options = self._options(retries, timeout)
        return await self._call_command(
            addresses,
            "ignoreCall",
            handle,
            lambda address, ref: self._client.ignore_call(address, ref, **options),
            options,
        )

    # Status snapshots
    async def get_device_info(
        self,
        addresses: Addresses,
        *,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[DeviceInfoRecord]:
        """Model, firmware and uptime for each device."""
        options = self._options(retries, timeout)
        records: list[DeviceInfoRecord] = []
        for address in iter_addresses(addresses):
            envelope = await self._fetch(
                address,
                "device/info",
                lambda address=address: self._client.get_device_info(address, **options),
            )
            if envelope is not None:
                records.append(normalize_device_info(address, envelope))
        return records

    async def _snapshots(
        self,
        addresses: Addresses,
        label: str,
        fetch: Callable[..., Awaitable[dict[str, Any]]],
        normalize: Callable[[str, dict[str, Any]], StatusSnapshot | list[StatusSnapshot]],
        options: dict[str, Any],
    ) -> list[StatusSnapshot]:
        snapshots: list[StatusSnapshot] = []
        for address in iter_addresses(addresses):
            envelope = await self._fetch(
                address, label, lambda address=address: fetch(address, **options)
            )
            if envelope is None:
                continue
            result = normalize(address, envelope)
            if isinstance(result, list):
                snapshots.extend(result)
            else:
                snapshots.append(result)
        return snapshots

    async def get_network_info(
        self, addresses: Addresses, *, retries: int | None = None, timeout: float | None = None
    ) -> list[StatusSnapshot]:
        """Network configuration of each device."""
        return await self._snapshots(
            addresses,
            "network/info",
            self._client.get_network_info,
            normalize_network_info,
            self._options(retries, timeout),
        )

    async def get_network_stats(
        self, addresses: Addresses, *, retries: int | None = None, timeout: float | None = None
    ) -> list[StatusSnapshot]:
        """Network counters of each device."""
        return await self._snapshots(
            addresses,
            "network/stats",
            self._client.get_network_stats,
            normalize_network_stats,
            self._options(retries, timeout),
        )

    async def get_device_stats(
        self, addresses: Addresses, *, retries: int | None = None, timeout: float | None = None
    ) -> list[StatusSnapshot]:
        """CPU and memory statistics of each device."""
        return await self._snapshots(
            addresses,
            "device/stats",
            self._client.get_device_stats,
            normalize_device_stats,
            self._options(retries, timeout),
        )

    async def get_line_info(
        self, addresses: Addresses, *, retries: int | None = None, timeout: float | None = None
    ) -> list[StatusSnapshot]:
        """One snapshot per configured line."""
        return await self._snapshots(
            addresses,
            "lineInfo",
            self._client.get_line_info,
            normalize_line_info,
            self._options(retries, timeout),
        )

    async def get_sip_status(
        self, addresses: Addresses, *, retries: int | None = None, timeout: float | None = None
    ) -> list[StatusSnapshot]:
        """SIP registration status of each device."""
        return await self._snapshots(
            addresses,
            "sipStatus",
            self._client.get_sip_status,
            normalize_sip_status,
            self._options(retries, timeout),
        )

    async def get_presence(
        self, addresses: Addresses, *, retries: int | None = None, timeout: float | None = None
    ) -> list[StatusSnapshot]:
        """Unified communications presence of each device."""
        return await self._snapshots(
            addresses,
            "getPresence",
            self._client.get_presence,
            normalize_presence,
            self._options(retries, timeout),
        )

    async def get_location_info(
        self, addresses: Addresses, *, retries: int | None = None, timeout: float | None = None
    ) -> list[StatusSnapshot]:
        """Emergency location information of each device."""
        return await self._snapshots(
            addresses,
            "location/info",
            self._client.get_location_info,
            normalize_location_info,
            self._options(retries, timeout),
        )

    async def poll_for_status(
        self, addresses: Addresses, *, retries: int | None = None, timeout: float | None = None
    ) -> list[StatusSnapshot]:
        """Current state of each device."""
        return await self._snapshots(
            addresses,
            "pollForStatus",
            self._client.poll_for_status,
            normalize_poll_for_status,
            self._options(retries, timeout),
        )

    async def get_call_logs(
        self,
        addresses: Addresses,
        log_type: str | None = None,
        *,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CallLogRecord]:
        """Call history of each device, optionally for one direction."""
        params = validate(CALL_LOG_SCHEMA, {"log_type": log_type})
        kind = params.get("log_type")
        kind_value = kind.value if kind is not None else None
        options = self._options(retries, timeout)

        records: list[CallLogRecord] = []
        for address in iter_addresses(addresses):
            envelope = await self._fetch(
                address,
                "callLogs",
                lambda address=address: self._client.get_call_logs(
                    address, kind_value, **options
                ),
            )
            if envelope is not None:
                records.extend(normalize_call_logs(address, envelope, kind_value))
        return records

    # Device management
    async def _simple_command(
        self,
        addresses: Addresses,
        operation: str,
        send: Callable[..., Awaitable[dict[str, Any]]],
        options: dict[str, Any],
        **kwargs: Any,
    ) -> list[CommandResult]:
        return [
            await self._command(
                address,
                operation,
                lambda address=address: send(address, **kwargs, **options),
            )
            for address in iter_addresses(addresses)
        ]

    async def reboot(
        self, addresses: Addresses, *, retries: int | None = None, timeout: float | None = None
    ) -> list[CommandResult]:
        """Reboot each device once it is idle."""
        return await self._simple_command(
            addresses, "safeReboot", self._client.safe_reboot, self._options(retries, timeout)
        )

    async def restart(
        self, addresses: Addresses, *, retries: int | None = None, timeout: float | None = None
    ) -> list[CommandResult]:
        """Restart the phone application once idle."""
        return await self._simple_command(
            addresses, "safeRestart", self._client.safe_restart, self._options(retries, timeout)
        )

    async def config_reset(
        self,
        addresses: Addresses,
        scope: str | None = None,
        *,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CommandResult]:
        """Reset configuration to defaults, optionally for one scope."""
        params = validate(CONFIG_RESET_SCHEMA, {"scope": scope})
        kind = params.get("scope")
        return await self._simple_command(
            addresses,
            "configReset",
            self._client.config_reset,
            self._options(retries, timeout),
            scope=kind.value if kind is not None else None,
        )

    async def factory_reset(
        self, addresses: Addresses, *, retries: int | None = None, timeout: float | None = None
    ) -> list[CommandResult]:
        """Restore factory defaults."""
        return await self._simple_command(
            addresses, "factoryReset", self._client.factory_reset, self._options(retries, timeout)
        )

    async def sign_in(
        self,
        addresses: Addresses,
        sign_in_address: str,
        user: str,
        domain: str,
        password: str,
        *,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CommandResult]:
        """Sign a Skype for Business user in (default timeout 155s)."""
        params = validate(
            SIGN_IN_SCHEMA,
            {
                "sign_in_address": sign_in_address,
                "user": user,
                "domain": domain,
                "password": password,
            },
        )
        return await self._simple_command(
            addresses,
            "skype/signIn",
            self._client.skype_sign_in,
            self._options(retries, timeout),
            **params,
        )

    async def sign_out(
        self, addresses: Addresses, *, retries: int | None = None, timeout: float | None = None
    ) -> list[CommandResult]:
        """Sign the current Skype for Business user out."""
        return await self._simple_command(
            addresses, "skype/signOut", self._client.skype_sign_out, self._options(retries, timeout)
        )

    async def start_packet_capture(
        self,
        addresses: Addresses,
        duration: int | None = None,
        *,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> list[CommandResult]:
        """Start a background packet capture on each device."""
        params = validate(CAPTURE_SCHEMA, {"duration": duration})
        return await self._simple_command(
            addresses,
            "uploadBgCapture",
            self._client.upload_bg_capture,
            self._options(retries, timeout),
            duration=params.get("duration"),
        )
