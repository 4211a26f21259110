"""Constants for the Polycom REST client."""

from enum import StrEnum
from typing import Final

# Network configuration
DEFAULT_USERNAME: Final = "Polycom"
DEFAULT_PASSWORD: Final = "456"
DEFAULT_TIMEOUT: Final = 10.0  # seconds
DEFAULT_RETRIES: Final = 3
DEFAULT_RETRY_BACKOFF: Final = 0.5  # seconds, doubled per attempt
MIN_RETRIES: Final = 1
MAX_RETRIES: Final = 100

# Skype sign-in blocks until the device finishes provisioning the account
SIGN_IN_TIMEOUT: Final = 155.0

# Environment overrides for the config loader
ENV_PREFIX: Final = "POLYCOM_"

# Response envelope
STATUS_SUCCESS: Final = "2000"
KEY_STATUS: Final = "Status"
KEY_DATA: Final = "data"
KEY_INVALID_PARAMS: Final = "InvalidParams"

# Device status codes (UC Software REST API)
ERROR_CODE_INVALID_INPUT: Final = "4000"
ERROR_CODE_DEVICE_BUSY: Final = "4001"
ERROR_CODE_LINE_NOT_REGISTERED: Final = "4002"
ERROR_CODE_NOT_SUPPORTED: Final = "4004"
ERROR_CODE_LINE_NOT_FOUND: Final = "4005"
ERROR_CODE_URLS_NOT_CONFIGURED: Final = "4006"
ERROR_CODE_CALL_NOT_FOUND: Final = "4007"
ERROR_CODE_INPUT_TOO_LARGE: Final = "4009"
ERROR_CODE_DEFAULT_PASSWORD: Final = "4010"
ERROR_CODE_PROCESSING_FAILED: Final = "5000"

DEVICE_ERROR_MESSAGES: Final = {
    ERROR_CODE_INVALID_INPUT: "Invalid input parameters",
    ERROR_CODE_DEVICE_BUSY: "Device busy",
    ERROR_CODE_LINE_NOT_REGISTERED: "Line not registered",
    ERROR_CODE_NOT_SUPPORTED: "Operation not supported",
    ERROR_CODE_LINE_NOT_FOUND: "Line does not exist",
    ERROR_CODE_URLS_NOT_CONFIGURED: "URLs not configured",
    ERROR_CODE_CALL_NOT_FOUND: "Call does not exist",
    ERROR_CODE_INPUT_TOO_LARGE: "Input size limit exceeded",
    ERROR_CODE_DEFAULT_PASSWORD: "Default password not allowed",
    ERROR_CODE_PROCESSING_FAILED: "Failed to process request",
}

# Client-side error codes
ERROR_CODE_INVALID_ADDRESS: Final = "invalid_address"
ERROR_CODE_INVALID_HANDLE: Final = "invalid_handle"
ERROR_CODE_TOO_MANY_PARAMS: Final = "too_many_params"
ERROR_CODE_FIRMWARE_BLOCKED: Final = "firmware_blocked"
ERROR_CODE_NO_CALL: Final = "no_call"
ERROR_CODE_AUTH: Final = "auth_failed"
ERROR_CODE_TIMEOUT: Final = "timeout"
ERROR_CODE_CONNECTION: Final = "connection_error"
ERROR_CODE_INVALID_JSON: Final = "invalid_json"

# Configuration endpoints
API_CONFIG_GET: Final = "/api/v1/mgmt/config/get"
API_CONFIG_SET: Final = "/api/v1/mgmt/config/set"

# Status endpoints
API_DEVICE_INFO: Final = "/api/v1/mgmt/device/info"
API_DEVICE_STATS: Final = "/api/v1/mgmt/device/stats"
API_NETWORK_INFO: Final = "/api/v1/mgmt/network/info"
API_NETWORK_STATS: Final = "/api/v1/mgmt/network/stats"
API_LINE_INFO: Final = "/api/v1/mgmt/lineInfo"
API_PRESENCE: Final = "/api/v1/mgmt/getPresence"
API_POLL_FOR_STATUS: Final = "/api/v1/mgmt/pollForStatus"
API_CALL_LOGS: Final = "/api/v1/mgmt/callLogs"
API_LOCATION_INFO: Final = "/api/v1/mgmt/location/info"
API_SIP_STATUS: Final = "/api/v1/webCallControl/sipStatus"
API_CALL_STATUS_V1: Final = "/api/v1/webCallControl/callStatus"
API_CALL_STATUS_V2: Final = "/api/v2/webCallControl/callStatus"

# Call control endpoints
API_CALL_DIAL: Final = "/api/v1/callctrl/dial"
API_CALL_END: Final = "/api/v1/callctrl/endCall"
API_CALL_MUTE: Final = "/api/v1/callctrl/mute"
API_CALL_HOLD: Final = "/api/v1/callctrl/holdCall"
API_CALL_RESUME: Final = "/api/v1/callctrl/resumeCall"
API_CALL_TRANSFER: Final = "/api/v1/callctrl/transferCall"
API_CALL_SEND_DTMF: Final = "/api/v1/callctrl/sendDTMF"
API_CALL_ANSWER: Final = "/api/v1/callctrl/answerCall"
API_CALL_REJECT: Final = "/api/v1/callctrl/rejectCall"
API_CALL_IGNORE: Final = "/api/v1/callctrl/ignoreCall"

# System endpoints
API_SAFE_REBOOT: Final = "/api/v1/mgmt/safeReboot"
API_SAFE_RESTART: Final = "/api/v1/mgmt/safeRestart"
API_CONFIG_RESET: Final = "/api/v1/mgmt/configReset"
API_FACTORY_RESET: Final = "/api/v1/mgmt/factoryReset"
API_SKYPE_SIGN_IN: Final = "/api/v1/mgmt/skype/signIn"
API_SKYPE_SIGN_OUT: Final = "/api/v1/mgmt/skype/signOut"
API_UPLOAD_BG_CAPTURE: Final = "/api/v1/mgmt/network/uploadBgCapture"

# Validation limits
MAX_PARAMETERS_PER_GET: Final = 20
MIN_LINE: Final = 1
MAX_LINE: Final = 48
MIN_CAPTURE_SECONDS: Final = 1
MAX_CAPTURE_SECONDS: Final = 3600
VALID_DTMF_CHARS: Final = frozenset("0123456789*#")

# Firmware builds whose endCall handler hangs the management API
END_CALL_BLOCKED_FIRMWARE: Final = "5.5.2.*"

# Vendor naming fixups
MODEL_NAME_OVERRIDES: Final = {
    "Trio 8800": "RealPresence Trio 8800",
}

# Prefix used by pollForStatus state text when a call timer is running
STATE_DURATION_PREFIX: Final = "Call Duration:"

# Keys whose values never reach the debug log
REDACT_KEYS: Final = frozenset({"password", "pwd", "secret", "token"})


class ParameterSource(StrEnum):
    """Provenance of a parameter record."""

    DEVICE = "Device"
    ERROR = "Error"
    INVALID_PARAMS = "InvalidParams"


class ResultStatus(StrEnum):
    """Outcome classification for a per-device operation."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"
    SKIPPED = "skipped"


class CallType(StrEnum):
    """Signalling protocol accepted by the dial endpoint."""

    SIP = "SIP"
    H323 = "H323"


class CallLogType(StrEnum):
    """Call log filters."""

    MISSED = "missed"
    RECEIVED = "received"
    PLACED = "placed"


class ConfigResetScope(StrEnum):
    """Configuration layers that can be reset individually."""

    LOCAL = "local"
    WEB = "web"
    DEVICE = "device"
    CLOUD = "cloud"
