"""Client library for the Polycom UC Software REST management API."""

from __future__ import annotations

from .api_client import PolycomAPIClient
from .config import ClientConfig, load_config
from .const import CallLogType, CallType, ConfigResetScope, ParameterSource, ResultStatus
from .exceptions import (
    InvalidInputError,
    PolycomAPIError,
    PolycomAuthError,
    PolycomConnectionError,
    PolycomDeviceError,
)
from .manager import PolycomPhoneManager
from .models import (
    CallLogRecord,
    CallRecord,
    CommandResult,
    DeviceInfoRecord,
    ParameterRecord,
    StatusSnapshot,
)

__version__ = "0.1.0"

__all__ = [
    "CallLogRecord",
    "CallLogType",
    "CallRecord",
    "CallType",
    "ClientConfig",
    "CommandResult",
    "ConfigResetScope",
    "DeviceInfoRecord",
    "InvalidInputError",
    "ParameterRecord",
    "ParameterSource",
    "PolycomAPIClient",
    "PolycomAPIError",
    "PolycomAuthError",
    "PolycomConnectionError",
    "PolycomDeviceError",
    "PolycomPhoneManager",
    "ResultStatus",
    "StatusSnapshot",
    "load_config",
]
