"""Data models returned by Polycom REST operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from .const import ParameterSource, ResultStatus

KEY_DEVICE_ADDRESS = "DeviceAddress"


@dataclass(frozen=True)
class ParameterRecord:
    """One configuration parameter read from (or attempted on) a device."""

    address: str
    name: str
    value: str | None
    source: ParameterSource
    is_valid: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to the flat output schema."""
        return {
            KEY_DEVICE_ADDRESS: self.address,
            "ParameterName": self.name,
            "Value": self.value,
            "Source": self.source.value,
            "IsValid": self.is_valid,
        }


# Output key for each optional CallRecord attribute, in output order
_CALL_FIELDS: tuple[tuple[str, str], ...] = (
    ("call_type", "Type"),
    ("call_handle", "CallHandle"),
    ("duration", "Duration"),
    ("protocol", "Protocol"),
    ("call_state", "CallState"),
    ("remote_party_name", "RemotePartyName"),
    ("line_id", "LineId"),
    ("remote_party_number", "RemotePartyNumber"),
    ("muted", "Muted"),
    ("ringing", "Ringing"),
    ("call_sequence", "CallSequence"),
    ("ui_appearance_index", "UIAppearanceIndex"),
    ("rtp_port", "RTPPort"),
    ("rtcp_port", "RTCPPort"),
)


@dataclass
class CallRecord:
    """A call reported by webCallControl/callStatus.

    Optional attributes left as None were absent from the firmware payload
    and are omitted by :meth:`to_dict`. ``start_time`` is always emitted and
    ``active_call`` is always emitted for v1 records.
    """

    address: str
    api_version: int = 1
    call_type: str | None = None
    call_handle: str | None = None
    duration: timedelta | None = None
    protocol: str | None = None
    call_state: str | None = None
    remote_party_name: str | None = None
    line_id: str | None = None
    remote_party_number: str | None = None
    muted: int | None = None
    ringing: int | None = None
    call_sequence: str | None = None
    ui_appearance_index: str | None = None
    active_call: bool | None = None
    rtp_port: int | None = None
    rtcp_port: int | None = None
    start_time: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the flat output schema, dropping absent fields."""
        result: dict[str, Any] = {}
        for attribute, key in _CALL_FIELDS:
            value = getattr(self, attribute)
            if value is not None:
                result[key] = value
        if self.api_version == 1:
            result["ActiveCall"] = self.active_call
        result["StartTime"] = self.start_time
        result[KEY_DEVICE_ADDRESS] = self.address
        return result


@dataclass
class StatusSnapshot:
    """A one-shot read of a status endpoint."""

    address: str
    kind: str
    fields: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Return a normalized field."""
        return self.fields.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a flat mapping stamped with the device address."""
        return {**self.fields, KEY_DEVICE_ADDRESS: self.address}


@dataclass
class DeviceInfoRecord:
    """Normalized device/info payload."""

    address: str
    model: str | None = None
    model_number: str | None = None
    firmware_release: str | None = None
    firmware_application: str | None = None
    firmware_boot_block: str | None = None
    firmware_updater: str | None = None
    uptime: timedelta | None = None
    last_reboot: datetime | None = None
    mac_address: str | None = None
    ipv4_address: str | None = None
    device_type: str | None = None
    device_vendor: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def firmware_version(self) -> str | None:
        """Best available application firmware version."""
        return self.firmware_release or self.firmware_application

    def to_dict(self) -> dict[str, Any]:
        """Convert to a flat mapping stamped with the device address."""
        return {
            **self.extra,
            "Model": self.model,
            "ModelNumber": self.model_number,
            "FirmwareRelease": self.firmware_release,
            "FirmwareApplication": self.firmware_application,
            "FirmwareBootBlock": self.firmware_boot_block,
            "FirmwareUpdater": self.firmware_updater,
            "Uptime": self.uptime,
            "LastReboot": self.last_reboot,
            "MACAddress": self.mac_address,
            "IPV4Address": self.ipv4_address,
            "DeviceType": self.device_type,
            "DeviceVendor": self.device_vendor,
            KEY_DEVICE_ADDRESS: self.address,
        }


@dataclass(frozen=True)
class CallLogRecord:
    """Single call log entry."""

    address: str
    direction: str
    remote_party_name: str | None = None
    remote_party_number: str | None = None
    local_party_address: str | None = None
    line_id: str | None = None
    start_time: datetime | None = None
    duration: timedelta | None = None
    count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a flat mapping stamped with the device address."""
        return {
            "Direction": self.direction,
            "RemotePartyName": self.remote_party_name,
            "RemotePartyNumber": self.remote_party_number,
            "LocalPartyAddress": self.local_party_address,
            "LineId": self.line_id,
            "StartTime": self.start_time,
            "Duration": self.duration,
            "Count": self.count,
            KEY_DEVICE_ADDRESS: self.address,
        }


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a command-style operation on one device."""

    address: str
    operation: str
    status: ResultStatus
    message: str = ""
    error_code: str | None = None

    @property
    def ok(self) -> bool:
        """True when the device accepted the command."""
        return self.status == ResultStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        """Convert to a flat mapping stamped with the device address."""
        return {
            "Operation": self.operation,
            "Status": self.status.value,
            "Message": self.message,
            "ErrorCode": self.error_code,
            KEY_DEVICE_ADDRESS: self.address,
        }
