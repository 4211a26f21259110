"""API client for Polycom UC Software REST management endpoints."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any
from urllib.parse import urlencode

import aiohttp

from .config import ClientConfig
from .const import (
    API_CALL_ANSWER,
    API_CALL_DIAL,
    API_CALL_END,
    API_CALL_HOLD,
    API_CALL_IGNORE,
    API_CALL_LOGS,
    API_CALL_MUTE,
    API_CALL_REJECT,
    API_CALL_RESUME,
    API_CALL_SEND_DTMF,
    API_CALL_STATUS_V1,
    API_CALL_STATUS_V2,
    API_CALL_TRANSFER,
    API_CONFIG_GET,
    API_CONFIG_RESET,
    API_CONFIG_SET,
    API_DEVICE_INFO,
    API_DEVICE_STATS,
    API_FACTORY_RESET,
    API_LINE_INFO,
    API_LOCATION_INFO,
    API_NETWORK_INFO,
    API_NETWORK_STATS,
    API_POLL_FOR_STATUS,
    API_PRESENCE,
    API_SAFE_REBOOT,
    API_SAFE_RESTART,
    API_SIP_STATUS,
    API_SKYPE_SIGN_IN,
    API_SKYPE_SIGN_OUT,
    API_UPLOAD_BG_CAPTURE,
    DEVICE_ERROR_MESSAGES,
    ERROR_CODE_AUTH,
    ERROR_CODE_CONNECTION,
    ERROR_CODE_INVALID_INPUT,
    ERROR_CODE_INVALID_JSON,
    ERROR_CODE_TIMEOUT,
    KEY_DATA,
    KEY_STATUS,
    REDACT_KEYS,
    SIGN_IN_TIMEOUT,
    STATUS_SUCCESS,
)
from .exceptions import (
    InvalidInputError,
    PolycomAPIError,
    PolycomAuthError,
    PolycomConnectionError,
    PolycomDeviceError,
)
from .parsers import escape_json_string
from .validation import validate_retries

_LOGGER = logging.getLogger(__name__)


def _redact(obj: Any) -> Any:
    """Mask credential values before a payload reaches the log."""
    if isinstance(obj, dict):
        return {
            key: "***" if str(key).lower() in REDACT_KEYS else _redact(value)
            for key, value in obj.items()
        }
    if isinstance(obj, list):
        return [_redact(item) for item in obj]
    return obj


def build_payload(fields: dict[str, Any] | list[Any]) -> dict[str, Any]:
    """Wrap request fields in the ``{"data": ...}`` envelope.

    Every leaf string is checked with :func:`escape_json_string` so a value
    that cannot be represented in the JSON body is rejected before sending.
    """

    def _check(value: Any, path: str) -> None:
        if isinstance(value, str):
            try:
                escape_json_string(value)
            except (TypeError, ValueError) as err:
                raise InvalidInputError(
                    f"Cannot encode request field {path}: {err}",
                    ERROR_CODE_INVALID_INPUT,
                ) from err
        elif isinstance(value, dict):
            for key, item in value.items():
                _check(key, f"{path}.<key>")
                _check(item, f"{path}.{key}")
        elif isinstance(value, list):
            for index, item in enumerate(value):
                _check(item, f"{path}[{index}]")

    _check(fields, KEY_DATA)
    return {KEY_DATA: fields}


class PolycomAPIClient:
    """Client for the Polycom device management API."""

    def __init__(
        self,
        config: ClientConfig | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize API client."""
        self._config = config or ClientConfig()
        self._session = session
        self._owns_session = session is None
        self._auth = aiohttp.BasicAuth(self._config.username, self._config.password)

    @property
    def config(self) -> ClientConfig:
        """Connection settings used for every request."""
        return self._config

    async def __aenter__(self) -> PolycomAPIClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def base_url(self, address: str) -> str:
        """Get base URL for a device."""
        scheme = "https" if self._config.use_https else "http"
        if self._config.port:
            return f"{scheme}://{address}:{self._config.port}"
        return f"{scheme}://{address}"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def request(
        self,
        address: str,
        method: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
        retries: int | None = None,
    ) -> dict[str, Any]:
        """Make an HTTP request to a device, retrying connection failures."""
        attempts = validate_retries(self._config.retries if retries is None else retries)
        request_timeout = self._config.timeout if timeout is None else timeout
        url = f"{self.base_url(address)}{endpoint}"

        if data is not None:
            _LOGGER.debug("%s %s payload=%s", method.upper(), url, _redact(data))

        last_error: Exception | None = None
        for attempt in range(attempts):
            try:
                return await self._request_once(method, url, endpoint, data, request_timeout)
            except (PolycomAuthError, PolycomDeviceError):
                raise
            except (asyncio.TimeoutError, aiohttp.ClientError) as err:
                last_error = err

            if attempt < attempts - 1:
                backoff_delay = self._config.retry_backoff * (2**attempt)
                _LOGGER.debug(
                    "Request attempt %d/%d failed for %s, retrying in %.1fs: %s",
                    attempt + 1,
                    attempts,
                    address,
                    backoff_delay,
                    last_error,
                )
                await asyncio.sleep(backoff_delay)

        if isinstance(last_error, asyncio.TimeoutError):
            _LOGGER.error("Timeout connecting to device at %s", url)
            raise PolycomConnectionError(
                "Connection timeout",
                ERROR_CODE_TIMEOUT,
                endpoint=endpoint,
                attempts=attempts,
            ) from last_error

        _LOGGER.error("Client error connecting to device %s: %s", address, last_error)
        raise PolycomConnectionError(
            f"Connection error: {last_error}",
            ERROR_CODE_CONNECTION,
            endpoint=endpoint,
            attempts=attempts,
        ) from last_error

    async def _request_once(
        self,
        method: str,
        url: str,
        endpoint: str,
        data: dict[str, Any] | None,
        request_timeout: float,
    ) -> dict[str, Any]:
        session = self._get_session()
        async with asyncio.timeout(request_timeout):
            if method.upper() == "GET":
                async with session.get(
                    url, auth=self._auth, ssl=self._config.verify_ssl
                ) as response:
                    return await self._handle_response(response, endpoint)
            elif method.upper() == "POST":
                headers = {"Content-Type": "application/json"}
                async with session.post(
                    url,
                    json=data or {},
                    headers=headers,
                    auth=self._auth,
                    ssl=self._config.verify_ssl,
                ) as response:
                    return await self._handle_response(response, endpoint)
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")

    async def _handle_response(
        self, response: aiohttp.ClientResponse, endpoint: str
    ) -> dict[str, Any]:
        """Handle HTTP response from device."""
        if response.status in (401, 403):
            raise PolycomAuthError(
                f"Authentication rejected (HTTP {response.status})", ERROR_CODE_AUTH
            )

        try:
            response_data = await response.json(content_type=None)
        except (json.JSONDecodeError, UnicodeDecodeError) as err:
            _LOGGER.error("Invalid JSON response from %s: %s", endpoint, err)
            raise PolycomAPIError("Invalid JSON response", ERROR_CODE_INVALID_JSON) from err

        if response_data is None:
            response_data = {}
        if not isinstance(response_data, dict):
            response_data = {KEY_DATA: response_data}

        status = response_data.get(KEY_STATUS)
        status_code = str(status) if status is not None else None

        if response.status >= 400 or (
            status_code is not None and status_code != STATUS_SUCCESS
        ):
            error_code = status_code or str(response.status)
            error_msg = DEVICE_ERROR_MESSAGES.get(error_code, f"HTTP {response.status}")
            _LOGGER.debug(
                "Device API error on %s: %s (code: %s)", endpoint, error_msg, error_code
            )
            raise PolycomDeviceError(error_msg, error_code, response_data)

        return response_data

    # Configuration endpoints
    async def get_config(
        self, address: str, names: list[str], **options: Any
    ) -> dict[str, Any]:
        """Read a batch of configuration parameters."""
        return await self.request(
            address, "POST", API_CONFIG_GET, build_payload(list(names)), **options
        )

    async def set_config(
        self, address: str, values: dict[str, str], **options: Any
    ) -> dict[str, Any]:
        """Write configuration parameters."""
        return await self.request(
            address, "POST", API_CONFIG_SET, build_payload(dict(values)), **options
        )

    # Status endpoints
    async def get_device_info(self, address: str, **options: Any) -> dict[str, Any]:
        """Get model, firmware and uptime information."""
        return await self.request(address, "GET", API_DEVICE_INFO, **options)

    async def get_device_stats(self, address: str, **options: Any) -> dict[str, Any]:
        """Get CPU and memory statistics."""
        return await self.request(address, "GET", API_DEVICE_STATS, **options)

    async def get_network_info(self, address: str, **options: Any) -> dict[str, Any]:
        """Get network configuration."""
        return await self.request(address, "GET", API_NETWORK_INFO, **options)

    async def get_network_stats(self, address: str, **options: Any) -> dict[str, Any]:
        """Get network packet counters."""
        return await self.request(address, "GET", API_NETWORK_STATS, **options)

    async def get_line_info(self, address: str, **options: Any) -> dict[str, Any]:
        """Get line registration details."""
        return await self.request(address, "GET", API_LINE_INFO, **options)

    async def get_sip_status(self, address: str, **options: Any) -> dict[str, Any]:
        """Get SIP registration status."""
        return await self.request(address, "GET", API_SIP_STATUS, **options)

    async def get_presence(self, address: str, **options: Any) -> dict[str, Any]:
        """Get unified communications presence."""
        return await self.request(address, "GET", API_PRESENCE, **options)

    async def poll_for_status(self, address: str, **options: Any) -> dict[str, Any]:
        """Get the current device state."""
        return await self.request(address, "GET", API_POLL_FOR_STATUS, **options)

    async def get_location_info(self, address: str, **options: Any) -> dict[str, Any]:
        """Get emergency location information."""
        return await self.request(address, "GET", API_LOCATION_INFO, **options)

    async def get_call_logs(
        self, address: str, log_type: str | None = None, **options: Any
    ) -> dict[str, Any]:
        """Get call logs, optionally filtered to missed/received/placed."""
        endpoint = f"{API_CALL_LOGS}/{log_type}" if log_type else API_CALL_LOGS
        return await self.request(address, "GET", endpoint, **options)

    async def get_call_status(self, address: str, **options: Any) -> dict[str, Any]:
        """Get the current call (API v1)."""
        return await self.request(address, "GET", API_CALL_STATUS_V1, **options)

    async def get_call_status_v2(
        self,
        address: str,
        *,
        handle: str | None = None,
        line: int | None = None,
        sequence: int | None = None,
        **options: Any,
    ) -> dict[str, Any]:
        """Get all calls (API v2), optionally filtered by handle or line/sequence."""
        query: dict[str, Any] = {}
        if handle:
            query["handle"] = handle
        if line is not None:
            query["line"] = line
        if sequence is not None:
            query["sequence"] = sequence
        endpoint = API_CALL_STATUS_V2
        if query:
            endpoint = f"{endpoint}?{urlencode(query)}"
        return await self.request(address, "GET", endpoint, **options)

    # Call control endpoints
    async def dial(
        self,
        address: str,
        destination: str,
        line: int,
        call_type: str,
        **options: Any,
    ) -> dict[str, Any]:
        """Place a call."""
        data = build_payload({"Dest": destination, "Line": str(line), "Type": call_type})
        return await self.request(address, "POST", API_CALL_DIAL, data, **options)

    async def end_call(self, address: str, ref: str, **options: Any) -> dict[str, Any]:
        """End a call."""
        return await self.request(
            address, "POST", API_CALL_END, build_payload({"Ref": ref}), **options
        )

    async def mute(self, address: str, state: bool, **options: Any) -> dict[str, Any]:
        """Mute or unmute the microphone."""
        data = build_payload({"state": "1" if state else "0"})
        return await self.request(address, "POST", API_CALL_MUTE, data, **options)

    async def hold_call(self, address: str, ref: str, **options: Any) -> dict[str, Any]:
        """Put a call on hold."""
        return await self.request(
            address, "POST", API_CALL_HOLD, build_payload({"Ref": ref}), **options
        )

    async def resume_call(self, address: str, ref: str, **options: Any) -> dict[str, Any]:
        """Resume a held call."""
        return await self.request(
            address, "POST", API_CALL_RESUME, build_payload({"Ref": ref}), **options
        )

    async def transfer_call(
        self, address: str, ref: str, destination: str, **options: Any
    ) -> dict[str, Any]:
        """Blind-transfer a call."""
        data = build_payload({"Ref": ref, "TransferDest": destination})
        return await self.request(address, "POST", API_CALL_TRANSFER, data, **options)

    async def send_dtmf(self, address: str, digits: str, **options: Any) -> dict[str, Any]:
        """Send DTMF digits on the active call."""
        return await self.request(
            address, "POST", API_CALL_SEND_DTMF, build_payload({"Digits": digits}), **options
        )

    async def answer_call(self, address: str, ref: str, **options: Any) -> dict[str, Any]:
        """Answer an incoming call."""
        return await self.request(
            address, "POST", API_CALL_ANSWER, build_payload({"Ref": ref}), **options
        )

    async def reject_call(self, address: str, ref: str, **options: Any) -> dict[str, Any]:
        """Reject an incoming call."""
        return await self.request(
            address, "POST", API_CALL_REJECT, build_payload({"Ref": ref}), **options
        )

    async def ignore_call(self, address: str, ref: str, **options: Any) -> dict[str, Any]:
        """Silence an incoming call without rejecting it."""
        return await self.request(
            address, "POST", API_CALL_IGNORE, build_payload({"Ref": ref}), **options
        )

    # System endpoints
    async def safe_reboot(self, address: str, **options: Any) -> dict[str, Any]:
        """Reboot once no call is active."""
        return await self.request(address, "POST", API_SAFE_REBOOT, **options)

    async def safe_restart(self, address: str, **options: Any) -> dict[str, Any]:
        """Restart the application once no call is active."""
        return await self.request(address, "POST", API_SAFE_RESTART, **options)

    async def config_reset(
        self, address: str, scope: str | None = None, **options: Any
    ) -> dict[str, Any]:
        """Reset configuration, optionally for a single scope."""
        endpoint = f"{API_CONFIG_RESET}/{scope}" if scope else API_CONFIG_RESET
        return await self.request(address, "POST", endpoint, **options)

    async def factory_reset(self, address: str, **options: Any) -> dict[str, Any]:
        """Restore factory defaults."""
        return await self.request(address, "POST", API_FACTORY_RESET, **options)

    async def skype_sign_in(
        self,
        address: str,
        sign_in_address: str,
        user: str,
        domain: str,
        password: str,
        **options: Any,
    ) -> dict[str, Any]:
        """Sign a Skype for Business user in."""
        if options.get("timeout") is None:
            options["timeout"] = SIGN_IN_TIMEOUT
        data = build_payload(
            {
                "SignInAddress": sign_in_address,
                "Domain": domain,
                "UserName": user,
                "Password": password,
            }
        )
        return await self.request(address, "POST", API_SKYPE_SIGN_IN, data, **options)

    async def skype_sign_out(self, address: str, **options: Any) -> dict[str, Any]:
        """Sign the current Skype for Business user out."""
        return await self.request(address, "POST", API_SKYPE_SIGN_OUT, **options)

    async def upload_bg_capture(
        self, address: str, duration: int | None = None, **options: Any
    ) -> dict[str, Any]:
        """Start a background packet capture."""
        fields: dict[str, Any] = {}
        if duration is not None:
            fields["Duration"] = str(duration)
        data = build_payload(fields) if fields else None
        return await self.request(address, "POST", API_UPLOAD_BG_CAPTURE, data, **options)
