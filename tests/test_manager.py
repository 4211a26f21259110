"""Tests for the multi-device phone manager."""

from __future__ import annotations

import logging

import pytest

from polycom_rest.const import (
    API_CALL_DIAL,
    API_CALL_END,
    API_CALL_HOLD,
    API_CALL_LOGS,
    API_CALL_STATUS_V1,
    API_CALL_STATUS_V2,
    API_CALL_TRANSFER,
    API_CONFIG_GET,
    API_CONFIG_RESET,
    API_CONFIG_SET,
    API_DEVICE_INFO,
    API_LINE_INFO,
    API_SAFE_REBOOT,
    API_SKYPE_SIGN_IN,
    API_UPLOAD_BG_CAPTURE,
    ERROR_CODE_FIRMWARE_BLOCKED,
    ERROR_CODE_NO_CALL,
    ERROR_CODE_TOO_MANY_PARAMS,
    ParameterSource,
    ResultStatus,
)
from polycom_rest.exceptions import InvalidInputError, PolycomDeviceError

from .conftest import PHONE_A, PHONE_B, ok

ACTIVE_CALL = ok(
    {
        "CallHandle": "0x1a2b",
        "DurationSeconds": "30",
        "CallState": "Connected",
        "UIAppearanceIndex": "1*",
    }
)

BLOCKED_FIRMWARE_INFO = ok(
    {"ModelNumber": "VVX 411", "Firmware": {"Application": "5.5.2.8571 29-Mar-18 18:00"}}
)

FLAT_BLOCKED_FIRMWARE_INFO = ok({"ModelNumber": "VVX 411", "FirmwareRelease": "5.5.2.8571"})


def _config_store(initial: dict[str, str]):
    """Stateful config/get and config/set handlers sharing one parameter store."""
    store = dict(initial)

    def handle_get(data):
        return ok({name: store[name] for name in data["data"] if name in store})

    def handle_set(data):
        store.update(data["data"])
        return ok()

    return store, handle_get, handle_set


@pytest.mark.asyncio
async def test_get_parameters_isolates_unreachable_device(network, manager):
    """Test every device yields one record per name even when unreachable."""
    network.add(PHONE_A, API_CONFIG_GET, ok({"device.set": "1", "up.backlight.onIntensity": "3"}))
    names = ["device.set", "up.backlight.onIntensity"]

    records = await manager.get_parameters([PHONE_A, PHONE_B], names)

    assert len(records) == 4
    assert [record.address for record in records] == [PHONE_A, PHONE_A, PHONE_B, PHONE_B]
    assert [record.value for record in records[:2]] == ["1", "3"]
    assert all(record.source == ParameterSource.ERROR for record in records[2:])
    assert not any(record.is_valid for record in records[2:])
    assert network.requests[0].data == {"data": names}


@pytest.mark.asyncio
async def test_get_parameters_rejects_oversized_batch(network, manager):
    """Test more than 20 names are refused before any request."""
    with pytest.raises(InvalidInputError) as err:
        await manager.get_parameters(PHONE_A, [f"p.{index}" for index in range(21)])

    assert err.value.error_code == ERROR_CODE_TOO_MANY_PARAMS
    assert network.requests == []


@pytest.mark.asyncio
async def test_get_parameters_partial_device_error(network, manager):
    """Test a failure status that still carries values is normalized."""
    network.add(
        PHONE_A,
        API_CONFIG_GET,
        PolycomDeviceError(
            "Invalid input parameters",
            "4000",
            {"Status": "4000", "data": {"good.param": "x"}, "InvalidParams": ["bad.param"]},
        ),
    )

    records = await manager.get_parameters(PHONE_A, ["good.param", "bad.param"])

    assert [record.source for record in records] == [
        ParameterSource.DEVICE,
        ParameterSource.INVALID_PARAMS,
    ]


@pytest.mark.asyncio
async def test_get_parameters_duplicate_names(network, manager):
    """Test repeated names yield one record each but are requested once."""
    network.add(PHONE_A, API_CONFIG_GET, ok({"device.set": "1", "device.name": "lobby"}))
    names = ["device.set", "device.name", "device.set"]

    records = await manager.get_parameters([PHONE_A, PHONE_B], names)

    assert len(records) == 6
    assert [record.name for record in records[:3]] == names
    assert [record.value for record in records[:3]] == ["1", "lobby", "1"]
    assert [record.name for record in records[3:]] == names
    assert network.requests[0].data == {"data": ["device.set", "device.name"]}


@pytest.mark.asyncio
async def test_set_then_get_round_trip(network, manager):
    """Test a written value is read back."""
    _, handle_get, handle_set = _config_store({"voIpProt.SIP.outboundProxy.address": ""})
    network.add(PHONE_A, API_CONFIG_GET, handle_get)
    network.add(PHONE_A, API_CONFIG_SET, handle_set)

    results = await manager.set_parameter(
        PHONE_A, "voIpProt.SIP.outboundProxy.address", 'proxy "a"\\b'
    )
    records = await manager.get_parameters(PHONE_A, ["voIpProt.SIP.outboundProxy.address"])

    assert results[0].ok
    assert records[0].value == 'proxy "a"\\b'


@pytest.mark.asyncio
async def test_set_parameter_bool_value(network, manager):
    """Test booleans are written as 1/0."""
    network.add(PHONE_A, API_CONFIG_SET, ok())

    await manager.set_parameter(PHONE_A, "feature.enabled", True)

    assert network.requests[0].data == {"data": {"feature.enabled": "1"}}


@pytest.mark.asyncio
async def test_set_parameter_unencodable_name(network, manager):
    """Test a name that cannot be encoded aborts the operation."""
    with pytest.raises(InvalidInputError):
        await manager.set_parameter(PHONE_A, "bad\ud800name", "1")
    assert network.requests == []


@pytest.mark.asyncio
async def test_set_parameter_unencodable_value(network, manager, caplog):
    """Test a value that cannot be encoded is sent as an empty string."""
    network.add(PHONE_A, API_CONFIG_SET, ok())

    with caplog.at_level(logging.WARNING):
        results = await manager.set_parameter(PHONE_A, "device.name", "bad\udc00")

    assert results[0].ok
    assert network.requests[0].data == {"data": {"device.name": ""}}
    assert "sending empty string" in caplog.text


@pytest.mark.asyncio
async def test_set_parameter_failure_continues(network, manager):
    """Test one device failing does not stop the batch."""
    network.add(PHONE_A, API_CONFIG_SET, PolycomDeviceError("Device busy", "4001"))
    network.add(PHONE_B, API_CONFIG_SET, ok())

    results = await manager.set_parameter([PHONE_A, PHONE_B], "device.set", "1")

    assert [result.status for result in results] == [
        ResultStatus.FAILURE,
        ResultStatus.SUCCESS,
    ]
    assert results[0].error_code == "4001"


@pytest.mark.asyncio
async def test_set_parameter_partial(network, manager, caplog):
    """Test an accepted write that still reports invalid parameters."""
    network.add(PHONE_A, API_CONFIG_SET, ok({"InvalidParams": ["no.such.param"]}))
    network.add(PHONE_B, API_CONFIG_SET, {"Status": "2000", "InvalidParams": "no.such.param"})

    with caplog.at_level(logging.WARNING):
        results = await manager.set_parameter([PHONE_A, PHONE_B], "no.such.param", "1")

    assert [result.status for result in results] == [
        ResultStatus.PARTIAL,
        ResultStatus.PARTIAL,
    ]
    assert not results[0].ok
    assert "no.such.param" in results[0].message
    assert "partially applied" in caplog.text


@pytest.mark.asyncio
@pytest.mark.parametrize("timeout", [0, -1, "never"])
async def test_timeout_override_validated(network, manager, timeout):
    """Test per-call timeouts must be positive."""
    network.add(PHONE_A, API_SAFE_REBOOT, ok())

    with pytest.raises(InvalidInputError):
        await manager.reboot(PHONE_A, timeout=timeout)
    assert network.requests == []


@pytest.mark.asyncio
async def test_invalid_address_is_skipped(network, manager):
    """Test malformed addresses are skipped without stopping the batch."""
    network.add(PHONE_A, API_SAFE_REBOOT, ok())

    results = await manager.reboot(["300.1.1.1", PHONE_A])

    assert [result.address for result in results] == [PHONE_A]
    assert network.endpoints() == [API_SAFE_REBOOT]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "device_info",
    [BLOCKED_FIRMWARE_INFO, FLAT_BLOCKED_FIRMWARE_INFO],
    ids=["nested_firmware", "flat_firmware"],
)
async def test_end_call_refused_on_blocked_firmware(network, manager, device_info):
    """Test endCall is not sent on firmware that hangs the API."""
    network.add(PHONE_A, API_DEVICE_INFO, device_info)
    network.add(PHONE_A, API_CALL_STATUS_V1, ACTIVE_CALL)
    network.add(PHONE_A, API_CALL_END, ok())

    results = await manager.end_call(PHONE_A)

    assert results[0].status == ResultStatus.FAILURE
    assert results[0].error_code == ERROR_CODE_FIRMWARE_BLOCKED
    assert API_CALL_END not in network.endpoints()


@pytest.mark.asyncio
async def test_end_call_forced_on_blocked_firmware(network, manager, caplog):
    """Test force sends endCall with a warning."""
    network.add(PHONE_A, API_DEVICE_INFO, BLOCKED_FIRMWARE_INFO)
    network.add(PHONE_A, API_CALL_STATUS_V1, ACTIVE_CALL)
    network.add(PHONE_A, API_CALL_END, ok())

    with caplog.at_level(logging.WARNING):
        results = await manager.end_call(PHONE_A, force=True)

    assert results[0].ok
    assert network.requests[-1].endpoint == API_CALL_END
    assert network.requests[-1].data == {"data": {"Ref": "0x1a2b"}}
    assert "Forcing endCall" in caplog.text


@pytest.mark.asyncio
async def test_end_call_with_explicit_handle(network, manager):
    """Test a supplied handle skips the call status lookup."""
    network.add(PHONE_A, API_DEVICE_INFO, ok({"FirmwareRelease": "6.4.0.1234"}))
    network.add(PHONE_A, API_CALL_END, ok())

    results = await manager.end_call(PHONE_A, "ABCD")

    assert results[0].ok
    assert API_CALL_STATUS_V1 not in network.endpoints()
    assert network.requests[-1].data == {"data": {"Ref": "0xabcd"}}


@pytest.mark.asyncio
async def test_end_call_without_firmware_info(network, manager):
    """Test endCall proceeds when firmware cannot be read."""
    network.add(PHONE_A, API_CALL_STATUS_V1, ACTIVE_CALL)
    network.add(PHONE_A, API_CALL_END, ok())

    results = await manager.end_call(PHONE_A)

    assert results[0].ok


@pytest.mark.asyncio
async def test_hold_without_active_call_is_skipped(network, manager):
    """Test call commands are skipped when no call handle resolves."""
    network.add(PHONE_A, API_CALL_STATUS_V1, ok({}))

    results = await manager.hold_call(PHONE_A)

    assert results[0].status == ResultStatus.SKIPPED
    assert results[0].error_code == ERROR_CODE_NO_CALL
    assert API_CALL_HOLD not in network.endpoints()


@pytest.mark.asyncio
async def test_malformed_handle_falls_back_to_current_call(network, manager):
    """Test a malformed handle resolves the current call instead."""
    network.add(PHONE_A, API_CALL_STATUS_V1, ACTIVE_CALL)
    network.add(PHONE_A, API_CALL_TRANSFER, ok())

    results = await manager.transfer_call(PHONE_A, "2000", handle="not-a-handle")

    assert results[0].ok
    assert network.requests[-1].data == {
        "data": {"Ref": "0x1a2b", "TransferDest": "2000"}
    }


@pytest.mark.asyncio
async def test_dial_body(network, manager):
    """Test the dial request body."""
    network.add(PHONE_A, API_CALL_DIAL, ok())

    results = await manager.dial(PHONE_A, "1000", line=2, call_type="h323")

    assert results[0].ok
    assert network.requests[0].data == {
        "data": {"Dest": "1000", "Line": "2", "Type": "H323"}
    }


@pytest.mark.asyncio
async def test_dial_invalid_line(network, manager):
    """Test out-of-range lines are rejected before sending."""
    with pytest.raises(InvalidInputError):
        await manager.dial(PHONE_A, "1000", line=49)
    assert network.requests == []


@pytest.mark.asyncio
async def test_call_status_v2_handle_filter(network, manager):
    """Test the v2 handle filter is sent without the 0x prefix."""
    endpoint = f"{API_CALL_STATUS_V2}?handle=1a2b"
    network.add(PHONE_A, endpoint, ok([{"CallHandle": "0x1a2b", "DurationSeconds": "4"}]))

    records = await manager.get_call_status_v2(PHONE_A, handle="0x1A2B")

    assert network.endpoints() == [endpoint]
    assert records[0].call_handle == "0x1a2b"


@pytest.mark.asyncio
async def test_call_status_v2_malformed_handle(network, manager):
    """Test a malformed v2 handle is rejected."""
    with pytest.raises(InvalidInputError):
        await manager.get_call_status_v2(PHONE_A, handle="zz")
    assert network.requests == []


@pytest.mark.asyncio
async def test_call_status_idle_and_unreachable(network, manager):
    """Test idle and unreachable devices produce no call records."""
    network.add(PHONE_A, API_CALL_STATUS_V1, ACTIVE_CALL)
    network.add(PHONE_B, API_CALL_STATUS_V1, ok({}))

    records = await manager.get_call_status([PHONE_A, PHONE_B, "10.0.0.12"])

    assert [record.address for record in records] == [PHONE_A]
    assert records[0].active_call is True


@pytest.mark.asyncio
async def test_sign_in_default_timeout(network, manager):
    """Test Skype sign-in uses its long default timeout."""
    network.add(PHONE_A, API_SKYPE_SIGN_IN, ok())

    results = await manager.sign_in(
        PHONE_A, "user@example.com", "user", "example.com", "secret"
    )

    assert results[0].ok
    request = network.requests[0]
    assert request.options["timeout"] == 155.0
    assert request.data["data"]["SignInAddress"] == "user@example.com"


@pytest.mark.asyncio
async def test_sign_in_explicit_timeout(network, manager):
    """Test a caller timeout overrides the sign-in default."""
    network.add(PHONE_A, API_SKYPE_SIGN_IN, ok())

    await manager.sign_in(
        PHONE_A, "user@example.com", "user", "example.com", "secret", timeout=30
    )

    assert network.requests[0].options["timeout"] == 30


@pytest.mark.asyncio
async def test_config_reset_scope(network, manager):
    """Test scoped configuration resets."""
    network.add(PHONE_A, f"{API_CONFIG_RESET}/web", ok())

    results = await manager.config_reset(PHONE_A, "Web")

    assert results[0].ok
    with pytest.raises(InvalidInputError):
        await manager.config_reset(PHONE_A, "everything")


@pytest.mark.asyncio
async def test_packet_capture_duration(network, manager):
    """Test the capture duration body."""
    network.add(PHONE_A, API_UPLOAD_BG_CAPTURE, ok())

    await manager.start_packet_capture(PHONE_A, 60)

    assert network.requests[0].data == {"data": {"Duration": "60"}}
    with pytest.raises(InvalidInputError):
        await manager.start_packet_capture(PHONE_A, 0)


@pytest.mark.asyncio
async def test_retry_override_validated(network, manager):
    """Test per-call retry counts outside 1-100 are rejected."""
    network.add(PHONE_A, API_SAFE_REBOOT, ok())

    with pytest.raises(InvalidInputError):
        await manager.reboot(PHONE_A, retries=0)

    await manager.reboot(PHONE_A, retries=5)
    assert network.requests[0].options == {"retries": 5}


@pytest.mark.asyncio
async def test_line_info_snapshots(network, manager):
    """Test lineInfo yields a snapshot per line and skips failures."""
    network.add(
        PHONE_A,
        API_LINE_INFO,
        ok([{"LineNumber": "1", "RegistrationStatus": "Registered"}]),
    )
    network.add(PHONE_B, API_LINE_INFO, PolycomDeviceError("Operation not supported", "4004"))

    snapshots = await manager.get_line_info([PHONE_A, PHONE_B])

    assert len(snapshots) == 1
    assert snapshots[0].get("Registered") is True


@pytest.mark.asyncio
async def test_call_logs_filtered(network, manager):
    """Test call logs for a single direction."""
    network.add(PHONE_A, f"{API_CALL_LOGS}/missed", ok([{"RemotePartyName": "Bob"}]))

    records = await manager.get_call_logs(PHONE_A, "MISSED")

    assert records[0].direction == "missed"
    assert records[0].remote_party_name == "Bob"


@pytest.mark.asyncio
async def test_device_info_records(network, manager):
    """Test device info for reachable devices only."""
    network.add(PHONE_A, API_DEVICE_INFO, BLOCKED_FIRMWARE_INFO)

    records = await manager.get_device_info([PHONE_A, PHONE_B])

    assert len(records) == 1
    assert records[0].firmware_version == "5.5.2.8571"
