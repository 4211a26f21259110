"""Tests for the command line front-end."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from polycom_rest.__main__ import main
from polycom_rest.const import ParameterSource
from polycom_rest.exceptions import InvalidInputError
from polycom_rest.models import ParameterRecord

from .conftest import PHONE_A


def _manager(**methods) -> MagicMock:
    manager = MagicMock()
    manager.__aenter__ = AsyncMock(return_value=manager)
    manager.__aexit__ = AsyncMock(return_value=False)
    for name, result in methods.items():
        setattr(manager, name, AsyncMock(**result))
    return manager


def test_host_is_required():
    """Test the parser rejects a command without hosts."""
    with pytest.raises(SystemExit) as err:
        main(["get", "device.set"])
    assert err.value.code == 2


def test_get_prints_records(capsys):
    """Test records are printed as JSON."""
    record = ParameterRecord(PHONE_A, "device.set", "1", ParameterSource.DEVICE, True)
    manager = _manager(get_parameters={"return_value": [record]})

    with patch("polycom_rest.__main__.PolycomPhoneManager", return_value=manager):
        assert main(["--host", PHONE_A, "get", "device.set"]) == 0

    output = json.loads(capsys.readouterr().out)
    assert output == [record.to_dict()]
    manager.get_parameters.assert_awaited_once_with([PHONE_A], ["device.set"])


def test_invalid_input_exit_code():
    """Test library errors map to exit code 2."""
    manager = _manager(
        get_parameters={"side_effect": InvalidInputError("At most 20 parameters")}
    )

    with patch("polycom_rest.__main__.PolycomPhoneManager", return_value=manager):
        assert main(["--host", PHONE_A, "get", "a"]) == 2
