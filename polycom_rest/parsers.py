"""Pure parsing helpers for values reported by Polycom firmware.

Everything here is side-effect free so the quirks of each firmware train can
be tested without a device.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Any, Final

from .const import STATE_DURATION_PREFIX

# Digit groups separated by dots with an optional numeric-or-letter build
# suffix, e.g. "5.5.2.1234A" or "3.0.4.0061".
FIRMWARE_VERSION_PATTERN: Final = re.compile(r"\d+(?:\.\d+)+[0-9A-Za-z]*")

_UPTIME_UNITS: Final = {
    "d": "days",
    "day": "days",
    "days": "days",
    "day(s)": "days",
    "h": "hours",
    "hr": "hours",
    "hrs": "hours",
    "hour": "hours",
    "hours": "hours",
    "hour(s)": "hours",
    "m": "minutes",
    "min": "minutes",
    "mins": "minutes",
    "minute": "minutes",
    "minutes": "minutes",
    "minute(s)": "minutes",
    "s": "seconds",
    "sec": "seconds",
    "secs": "seconds",
    "second": "seconds",
    "seconds": "seconds",
    "second(s)": "seconds",
}

_UPTIME_TOKEN: Final = re.compile(
    r"(?P<value>\d+)\s*(?P<unit>[a-z]+(?:\(s\))?)", re.IGNORECASE
)
_CLOCK: Final = re.compile(r"^(?:(?P<h>\d+):)?(?P<m>\d{1,2}):(?P<s>\d{1,2})$")
_ISO_DURATION: Final = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?"
    r"(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$",
    re.IGNORECASE,
)

_TIMESTAMP_FORMATS: Final = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%a %b %d %H:%M:%S %Y",
)

_TRUE_VALUES: Final = {"true", "1", "yes", "on", "y", "enabled", "registered"}
_FALSE_VALUES: Final = {
    "false",
    "0",
    "no",
    "off",
    "n",
    "disabled",
    "unregistered",
    "notregistered",
}

_JSON_ESCAPES: Final = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def escape_json_string(value: str) -> str:
    """Return *value* escaped for embedding between JSON double quotes."""
    if not isinstance(value, str):
        raise TypeError(f"Expected str, got {type(value).__name__}")

    # Lone surrogates cannot be sent as UTF-8
    value.encode("utf-8")

    result: list[str] = []
    for char in value:
        escaped = _JSON_ESCAPES.get(char)
        if escaped is not None:
            result.append(escaped)
        elif ord(char) < 0x20:
            result.append(f"\\u{ord(char):04x}")
        else:
            result.append(char)
    return "".join(result)


def parse_uptime(text: str) -> timedelta:
    """Parse free-text uptime such as ``"3 days 4 hours 12 minutes"``.

    Accepts singular, plural and ``(s)`` unit spellings, comma separators and
    a trailing ``H:MM[:SS]`` clock after the day count (``"2 days 03:04:05"``).
    """
    if text is None:
        raise ValueError("Uptime text is empty")

    remaining = str(text).strip().replace(",", " ")
    if not remaining:
        raise ValueError("Uptime text is empty")

    parts = {"days": 0, "hours": 0, "minutes": 0, "seconds": 0}
    matched = False

    clock_candidate = remaining.split()[-1]
    clock = _CLOCK.match(clock_candidate)
    if clock:
        if clock.group("h") is None:
            # Two-part clock after a day count is H:MM
            parts["hours"] += int(clock.group("m"))
            parts["minutes"] += int(clock.group("s"))
        else:
            parts["hours"] += int(clock.group("h"))
            parts["minutes"] += int(clock.group("m"))
            parts["seconds"] += int(clock.group("s"))
        remaining = remaining[: remaining.rfind(clock_candidate)]
        matched = True

    position = 0
    for token in _UPTIME_TOKEN.finditer(remaining):
        if remaining[position : token.start()].strip():
            raise ValueError(f"Unrecognized uptime text: {text!r}")
        unit = _UPTIME_UNITS.get(token.group("unit").lower())
        if unit is None:
            raise ValueError(f"Unknown uptime unit {token.group('unit')!r} in {text!r}")
        parts[unit] += int(token.group("value"))
        position = token.end()
        matched = True

    if remaining[position:].strip() or not matched:
        raise ValueError(f"Unrecognized uptime text: {text!r}")

    return timedelta(**parts)


def format_uptime(value: timedelta) -> str:
    """Render a duration in the vendor's ``X days Y hours ...`` style."""
    total = int(value.total_seconds())
    if total < 0:
        raise ValueError("Uptime cannot be negative")

    days, remainder = divmod(total, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, seconds = divmod(remainder, 60)

    def _unit(amount: int, name: str) -> str:
        return f"{amount} {name}" if amount == 1 else f"{amount} {name}s"

    return " ".join(
        (
            _unit(days, "day"),
            _unit(hours, "hour"),
            _unit(minutes, "minute"),
            _unit(seconds, "second"),
        )
    )


def parse_uptime_object(value: dict[str, Any]) -> timedelta:
    """Convert the structured ``Uptime`` object of newer firmware."""
    parts: dict[str, int] = {}
    for key in ("Days", "Hours", "Minutes", "Seconds"):
        raw = value.get(key, 0)
        try:
            parts[key.lower()] = int(raw or 0)
        except (TypeError, ValueError) as err:
            raise ValueError(f"Invalid uptime {key}: {raw!r}") from err
    return timedelta(**parts)


def parse_state_duration(
    text: str | None, prefix: str = STATE_DURATION_PREFIX
) -> timedelta | None:
    """Extract elapsed call time from a status string like ``"Call Duration: 0:01:05"``."""
    if not text:
        return None

    stripped = text.strip()
    if not stripped.lower().startswith(prefix.lower()):
        return None

    remainder = stripped[len(prefix) :].strip()
    if not remainder:
        return None

    clock = _CLOCK.match(remainder)
    if clock:
        return timedelta(
            hours=int(clock.group("h") or 0),
            minutes=int(clock.group("m")),
            seconds=int(clock.group("s")),
        )

    if remainder.isdigit():
        return timedelta(seconds=int(remainder))

    return parse_uptime(remainder)


def parse_log_duration(value: Any) -> timedelta | None:
    """Parse a call log duration (``PT1M5S`` or seconds)."""
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return timedelta(seconds=value)

    text = str(value).strip()
    if not text:
        return None
    if text.isdigit():
        return timedelta(seconds=int(text))

    match = _ISO_DURATION.match(text)
    if not match or not any(match.groupdict().values()):
        return None
    return timedelta(
        days=int(match.group("days") or 0),
        hours=int(match.group("hours") or 0),
        minutes=int(match.group("minutes") or 0),
        seconds=float(match.group("seconds") or 0),
    )


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a device timestamp, returning None for trivial values."""
    if value is None:
        return None

    text = str(value).strip()
    # Firmware reports "0" or "--" when no call is up
    if len(text) <= 2:
        return None

    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass

    for fmt in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_firmware_version(value: Any) -> str | None:
    """Return the first version token in *value*, e.g. ``5.5.2.1234A``."""
    if value is None:
        return None
    match = FIRMWARE_VERSION_PATTERN.search(str(value))
    return match.group(0) if match else None


def coerce_bool(value: Any, default: bool | None = None) -> bool | None:
    """Normalize boolean-like values from firmware payloads."""
    if isinstance(value, bool):
        return value

    if value is None:
        return default

    if isinstance(value, (int, float)):
        return value != 0

    if isinstance(value, str):
        normalized = value.strip().lower().replace(" ", "")
        if normalized in _TRUE_VALUES:
            return True
        if normalized in _FALSE_VALUES:
            return False

    return default


def coerce_flag(value: Any) -> int | None:
    """Return 0/1 for Muted/Ringing style flags."""
    result = coerce_bool(value)
    if result is None:
        return None
    return int(result)


def coerce_number(value: Any) -> Any:
    """Convert numeric strings to int/float, leaving anything else untouched."""
    if isinstance(value, bool) or not isinstance(value, str):
        return value
    text = value.strip()
    if re.fullmatch(r"-?\d+", text):
        return int(text)
    if re.fullmatch(r"-?\d+\.\d+", text):
        return float(text)
    return value
