"""Response normalization for Polycom REST payloads.

Firmware trains report the same information in different layouts. Each
layout is described by a :class:`ResponseShape` whose probe recognizes it and
whose normalizer maps it onto the stable output records in :mod:`.models`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from .const import (
    KEY_DATA,
    KEY_INVALID_PARAMS,
    MODEL_NAME_OVERRIDES,
    CallLogType,
    ParameterSource,
)
from .models import (
    CallLogRecord,
    CallRecord,
    DeviceInfoRecord,
    ParameterRecord,
    StatusSnapshot,
)
from .parsers import (
    coerce_bool,
    coerce_flag,
    coerce_number,
    parse_firmware_version,
    parse_log_duration,
    parse_state_duration,
    parse_timestamp,
    parse_uptime,
    parse_uptime_object,
)

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResponseShape:
    """A firmware-specific payload layout and the function that reads it."""

    name: str
    probe: Callable[[Mapping[str, Any]], bool]
    normalize: Callable[..., Any]


def select_shape(
    shapes: Sequence[ResponseShape], payload: Mapping[str, Any]
) -> ResponseShape | None:
    """Return the first shape whose probe accepts *payload*."""
    for shape in shapes:
        if shape.probe(payload):
            return shape
    return None


def extract_data(envelope: Mapping[str, Any] | None) -> Any:
    """Return the ``data`` member of a response envelope."""
    if not isinstance(envelope, Mapping):
        return {}
    data = envelope.get(KEY_DATA)
    return {} if data is None else data


def _text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _seconds(value: Any) -> timedelta | None:
    try:
        return timedelta(seconds=int(float(value)))
    except (TypeError, ValueError):
        return None


# Parameters


def error_parameter_records(address: str, names: Sequence[str]) -> list[ParameterRecord]:
    """Records for a batch that produced no usable response."""
    return [
        ParameterRecord(address, name, None, ParameterSource.ERROR, False)
        for name in names
    ]


def invalid_parameter_names(envelope: Mapping[str, Any], data: Any = None) -> list[str]:
    """Names the device reported under InvalidParams, in data or beside it."""
    if data is None:
        data = extract_data(envelope)
    invalid: Any = None
    if isinstance(data, Mapping):
        invalid = data.get(KEY_INVALID_PARAMS)
    if invalid is None and isinstance(envelope, Mapping):
        invalid = envelope.get(KEY_INVALID_PARAMS)
    if invalid is None:
        return []
    if isinstance(invalid, str):
        return [name.strip() for name in invalid.split(",") if name.strip()]
    if isinstance(invalid, (list, tuple)):
        return [str(name) for name in invalid]
    return [str(invalid)]


def _parameter_record(
    address: str, name: str, values: Mapping[str, Any], invalid: set[str]
) -> ParameterRecord:
    if name in invalid:
        return ParameterRecord(address, name, None, ParameterSource.INVALID_PARAMS, False)
    if name not in values:
        raise KeyError(name)
    value = values[name]
    if isinstance(value, (dict, list)):
        raise TypeError(f"Unexpected structured value for {name}")
    return ParameterRecord(
        address, name, "" if value is None else str(value), ParameterSource.DEVICE, True
    )


def normalize_parameters(
    address: str, names: Sequence[str], envelope: Mapping[str, Any]
) -> list[ParameterRecord]:
    """Map a config/get response onto one record per requested name."""
    data = extract_data(envelope)
    values: Mapping[str, Any] = data if isinstance(data, Mapping) else {}
    invalid = set(invalid_parameter_names(envelope, data))

    records: list[ParameterRecord] = []
    for name in names:
        try:
            records.append(_parameter_record(address, name, values, invalid))
        except (KeyError, TypeError) as err:
            _LOGGER.warning("Could not read parameter %s from %s: %s", name, address, err)
            records.append(
                ParameterRecord(address, name, None, ParameterSource.ERROR, False)
            )
    return records


# Call status


def split_appearance_index(value: Any) -> tuple[str | None, bool | None]:
    """Strip the active-call ``*`` marker from a UIAppearanceIndex.

    Returns the cleaned index and the active flag: True when the marker was
    present, False when the index is purely numeric, None otherwise.
    """
    if value is None:
        return None, None
    text = str(value).strip()
    if text.endswith("*"):
        return text.rstrip("*").strip(), True
    if text.isdigit():
        return text, False
    return text, None


def _fill_call_record(
    record: CallRecord, entry: Mapping[str, Any], duration_key: str | None
) -> CallRecord:
    if duration_key is not None:
        record.duration = _seconds(entry.get(duration_key))
    record.call_type = _text(entry.get("Type"))
    record.call_handle = _text(entry.get("CallHandle"))
    if entry.get("Protocol") is not None:
        record.protocol = str(entry["Protocol"]).upper()
    record.call_state = _text(entry.get("CallState"))
    record.remote_party_name = _text(entry.get("RemotePartyName"))
    record.line_id = _text(entry.get("LineId"))
    record.remote_party_number = _text(entry.get("RemotePartyNumber"))
    record.muted = coerce_flag(entry.get("Muted"))
    record.ringing = coerce_flag(entry.get("Ringing"))
    record.call_sequence = _text(entry.get("CallSequence"))
    record.rtp_port = _as_int(entry.get("RTPPort"))
    record.rtcp_port = _as_int(entry.get("RTCPPort"))
    record.start_time = parse_timestamp(entry.get("StartTime"))
    return record


def _v1_duration_seconds(address: str, entry: Mapping[str, Any]) -> CallRecord:
    return _v1_call(address, entry, "DurationSeconds")


def _v1_duration_in_seconds(address: str, entry: Mapping[str, Any]) -> CallRecord:
    return _v1_call(address, entry, "DurationInSeconds")


def _v1_call(address: str, entry: Mapping[str, Any], duration_key: str) -> CallRecord:
    record = _fill_call_record(CallRecord(address, api_version=1), entry, duration_key)
    index, active = split_appearance_index(entry.get("UIAppearanceIndex"))
    record.ui_appearance_index = index
    record.active_call = active
    return record


CALL_STATUS_V1_SHAPES: tuple[ResponseShape, ...] = (
    ResponseShape(
        "duration_seconds", lambda data: "DurationSeconds" in data, _v1_duration_seconds
    ),
    ResponseShape(
        "duration_in_seconds",
        lambda data: "DurationInSeconds" in data,
        _v1_duration_in_seconds,
    ),
)


def normalize_call_status_v1(
    address: str, envelope: Mapping[str, Any]
) -> CallRecord | None:
    """Normalize webCallControl/callStatus v1; None means no active call."""
    data = extract_data(envelope)
    if not isinstance(data, Mapping):
        return None
    shape = select_shape(CALL_STATUS_V1_SHAPES, data)
    if shape is None:
        _LOGGER.debug("No active call on %s", address)
        return None
    _LOGGER.debug("Call status on %s uses %s layout", address, shape.name)
    return shape.normalize(address, data)


def _v2_entries(data: Any) -> list[Mapping[str, Any]]:
    if isinstance(data, Mapping):
        calls = data.get("Calls")
        if isinstance(calls, list):
            data = calls
        elif data:
            data = [data]
        else:
            data = []
    if not isinstance(data, list):
        return []
    return [entry for entry in data if isinstance(entry, Mapping)]


def normalize_call_status_v2(address: str, envelope: Mapping[str, Any]) -> list[CallRecord]:
    """Normalize webCallControl/callStatus v2 (zero or more calls)."""
    records: list[CallRecord] = []
    for entry in _v2_entries(extract_data(envelope)):
        duration_key = next(
            (key for key in ("DurationSeconds", "DurationInSeconds") if key in entry),
            None,
        )
        record = _fill_call_record(CallRecord(address, api_version=2), entry, duration_key)
        if entry.get("UIAppearanceIndex") is not None:
            record.ui_appearance_index = str(entry["UIAppearanceIndex"])
        records.append(record)
    return records


# Device info


def _flat_firmware(record: DeviceInfoRecord, data: Mapping[str, Any]) -> None:
    record.firmware_release = _text(data.get("FirmwareRelease"))


def _nested_firmware(record: DeviceInfoRecord, data: Mapping[str, Any]) -> None:
    firmware = data["Firmware"]
    record.firmware_updater = _text(firmware.get("Updater"))
    record.firmware_application = parse_firmware_version(firmware.get("Application"))
    record.firmware_boot_block = parse_firmware_version(firmware.get("BootBlock"))
    if "FirmwareRelease" in data:
        record.firmware_release = _text(data.get("FirmwareRelease"))


FIRMWARE_SHAPES: tuple[ResponseShape, ...] = (
    ResponseShape(
        "nested_firmware",
        lambda data: isinstance(data.get("Firmware"), Mapping),
        _nested_firmware,
    ),
    ResponseShape(
        "flat_firmware", lambda data: data.get("FirmwareRelease") is not None, _flat_firmware
    ),
)


UPTIME_SHAPES: tuple[ResponseShape, ...] = (
    ResponseShape(
        "structured_uptime",
        lambda data: isinstance(data.get("Uptime"), Mapping),
        lambda data: parse_uptime_object(data["Uptime"]),
    ),
    ResponseShape(
        "uptime_text",
        lambda data: isinstance(data.get("UpTimeSinceLastReboot"), str),
        lambda data: parse_uptime(data["UpTimeSinceLastReboot"]),
    ),
)

_DEVICE_INFO_CONSUMED = {
    "ModelNumber",
    "FirmwareRelease",
    "Firmware",
    "Uptime",
    "UpTimeSinceLastReboot",
    "MACAddress",
    "IPV4Address",
    "DeviceType",
    "DeviceVendor",
}


def normalize_model(model_number: Any) -> str | None:
    """Apply vendor model name fixups."""
    if model_number is None:
        return None
    text = str(model_number).strip()
    return MODEL_NAME_OVERRIDES.get(text, text)


def normalize_device_info(
    address: str, envelope: Mapping[str, Any], now: datetime | None = None
) -> DeviceInfoRecord:
    """Normalize device/info, tolerating missing firmware or uptime data."""
    data = extract_data(envelope)
    if not isinstance(data, Mapping):
        data = {}

    record = DeviceInfoRecord(
        address=address,
        model=normalize_model(data.get("ModelNumber")),
        model_number=_text(data.get("ModelNumber")),
        mac_address=_text(data.get("MACAddress")),
        ipv4_address=_text(data.get("IPV4Address")),
        device_type=_text(data.get("DeviceType")),
        device_vendor=_text(data.get("DeviceVendor")),
        extra={key: value for key, value in data.items() if key not in _DEVICE_INFO_CONSUMED},
    )

    firmware_shape = select_shape(FIRMWARE_SHAPES, data)
    if firmware_shape is None:
        _LOGGER.warning("Device %s did not report firmware information", address)
    else:
        firmware_shape.normalize(record, data)

    uptime_shape = select_shape(UPTIME_SHAPES, data)
    if uptime_shape is not None:
        try:
            record.uptime = uptime_shape.normalize(data)
        except ValueError as err:
            _LOGGER.warning("Could not parse uptime from %s: %s", address, err)

    if record.uptime is not None:
        record.last_reboot = (now or datetime.now(timezone.utc)) - record.uptime

    return record


# Status snapshots


def _coerce_keys(fields: dict[str, Any], keys: Sequence[str]) -> None:
    for key in keys:
        if key in fields:
            fields[key] = coerce_bool(fields[key], default=None)


def _registration(entry: Mapping[str, Any]) -> dict[str, Any]:
    fields = dict(entry)
    status = fields.get("RegistrationStatus", fields.get("Status"))
    if status is not None:
        fields["Registered"] = coerce_bool(status, default=False)
    return fields


def _data_mapping(envelope: Mapping[str, Any]) -> dict[str, Any]:
    data = extract_data(envelope)
    return dict(data) if isinstance(data, Mapping) else {}


def normalize_network_info(address: str, envelope: Mapping[str, Any]) -> StatusSnapshot:
    """Normalize network/info."""
    fields = _data_mapping(envelope)
    _coerce_keys(fields, ("DHCP", "LLDP", "CDP"))
    if "VLANID" in fields:
        fields["VLANID"] = coerce_number(fields["VLANID"])
    return StatusSnapshot(address, "network_info", fields)


def normalize_network_stats(address: str, envelope: Mapping[str, Any]) -> StatusSnapshot:
    """Normalize network/stats counters."""
    fields = {key: coerce_number(value) for key, value in _data_mapping(envelope).items()}
    return StatusSnapshot(address, "network_stats", fields)


def _flatten(prefix: str, value: Any, out: dict[str, Any]) -> None:
    if isinstance(value, Mapping):
        for key, item in value.items():
            _flatten(f"{prefix}.{key}" if prefix else str(key), item, out)
    else:
        out[prefix] = coerce_number(value)


def normalize_device_stats(address: str, envelope: Mapping[str, Any]) -> StatusSnapshot:
    """Normalize device/stats, flattening CPU/Memory sections."""
    fields: dict[str, Any] = {}
    _flatten("", _data_mapping(envelope), fields)
    return StatusSnapshot(address, "device_stats", fields)


def normalize_line_info(address: str, envelope: Mapping[str, Any]) -> list[StatusSnapshot]:
    """Normalize lineInfo into one snapshot per line."""
    data = extract_data(envelope)
    if isinstance(data, Mapping):
        data = data.get("Lines", [data] if data else [])
    if not isinstance(data, list):
        return []
    return [
        StatusSnapshot(address, "line_info", _registration(entry))
        for entry in data
        if isinstance(entry, Mapping)
    ]


def normalize_sip_status(address: str, envelope: Mapping[str, Any]) -> StatusSnapshot:
    """Normalize webCallControl/sipStatus."""
    fields = _data_mapping(envelope)
    for key, value in list(fields.items()):
        if isinstance(value, list):
            fields[key] = [
                _registration(entry) if isinstance(entry, Mapping) else entry
                for entry in value
            ]
    fields = _registration(fields)
    return StatusSnapshot(address, "sip_status", fields)


def normalize_presence(address: str, envelope: Mapping[str, Any]) -> StatusSnapshot:
    """Normalize getPresence."""
    fields = _data_mapping(envelope)
    _coerce_keys(fields, ("SignedIn", "Registered"))
    return StatusSnapshot(address, "presence", fields)


def normalize_location_info(address: str, envelope: Mapping[str, Any]) -> StatusSnapshot:
    """Normalize location/info."""
    return StatusSnapshot(address, "location_info", _data_mapping(envelope))


def normalize_poll_for_status(address: str, envelope: Mapping[str, Any]) -> StatusSnapshot:
    """Normalize pollForStatus, extracting a running call timer when reported."""
    fields = _data_mapping(envelope)
    for key in ("StateText", "StateDescription", "State"):
        value = fields.get(key)
        if not isinstance(value, str):
            continue
        try:
            duration = parse_state_duration(value)
        except ValueError as err:
            _LOGGER.debug("Unparseable state text from %s: %s", address, err)
            continue
        if duration is not None:
            fields["CallDuration"] = duration
            break
    return StatusSnapshot(address, "poll_for_status", fields)


# Call logs


def _call_log_record(
    address: str, direction: str, entry: Mapping[str, Any]
) -> CallLogRecord:
    return CallLogRecord(
        address=address,
        direction=direction,
        remote_party_name=_text(entry.get("RemotePartyName")),
        remote_party_number=_text(
            entry.get("RemotePartyNumber", entry.get("RemotePartyAddress"))
        ),
        local_party_address=_text(entry.get("LocalPartyAddress")),
        line_id=_text(entry.get("LineNumber", entry.get("LineId"))),
        start_time=parse_timestamp(entry.get("StartTime")),
        duration=parse_log_duration(entry.get("Duration")),
        count=_as_int(entry.get("Count")),
    )


def normalize_call_logs(
    address: str, envelope: Mapping[str, Any], log_type: str | None = None
) -> list[CallLogRecord]:
    """Normalize callLogs (grouped by direction) or callLogs/<type> (flat)."""
    data = extract_data(envelope)
    records: list[CallLogRecord] = []

    if isinstance(data, list):
        direction = str(log_type or "unknown")
        for entry in data:
            if isinstance(entry, Mapping):
                records.append(_call_log_record(address, direction, entry))
        return records

    if not isinstance(data, Mapping):
        return records

    directions = {member.value for member in CallLogType}
    for key, entries in data.items():
        direction = str(key).lower()
        if direction not in directions:
            _LOGGER.debug("Ignoring call log section %s from %s", key, address)
            continue
        if not isinstance(entries, list):
            continue
        for entry in entries:
            if isinstance(entry, Mapping):
                records.append(_call_log_record(address, direction, entry))
    return records
