"""Pytest configuration and fixtures for Polycom REST tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from polycom_rest.api_client import PolycomAPIClient
from polycom_rest.config import ClientConfig
from polycom_rest.const import ERROR_CODE_CONNECTION
from polycom_rest.exceptions import PolycomConnectionError
from polycom_rest.manager import PolycomPhoneManager

PHONE_A = "10.0.0.10"
PHONE_B = "10.0.0.11"


@dataclass
class RecordedRequest:
    """A request seen by the fake network."""

    address: str
    method: str
    endpoint: str
    data: dict[str, Any] | None
    options: dict[str, Any]


@dataclass
class FakePhoneNetwork:
    """Routes client requests to canned responses keyed by (address, endpoint).

    A response may be a dict, an exception instance to raise, or a callable
    taking the request body. Unknown routes behave like an unreachable phone.
    """

    routes: dict[tuple[str, str], Any] = field(default_factory=dict)
    requests: list[RecordedRequest] = field(default_factory=list)

    def add(self, address: str, endpoint: str, response: Any) -> None:
        self.routes[(address, endpoint)] = response

    def endpoints(self, address: str | None = None) -> list[str]:
        return [
            request.endpoint
            for request in self.requests
            if address is None or request.address == address
        ]

    async def handle(
        self,
        address: str,
        method: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
        **options: Any,
    ) -> dict[str, Any]:
        self.requests.append(RecordedRequest(address, method, endpoint, data, options))
        response = self.routes.get((address, endpoint))
        if response is None:
            raise PolycomConnectionError(
                "Connection error: unreachable", ERROR_CODE_CONNECTION, endpoint=endpoint
            )
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(data)
        return response


@pytest.fixture
def network() -> FakePhoneNetwork:
    """Fake phones reachable by the client."""
    return FakePhoneNetwork()


@pytest.fixture
def client(network: FakePhoneNetwork) -> PolycomAPIClient:
    """API client whose transport is the fake network."""
    api_client = PolycomAPIClient(ClientConfig(retry_backoff=0))
    with patch.object(api_client, "request", AsyncMock(side_effect=network.handle)):
        yield api_client


@pytest.fixture
def manager(client: PolycomAPIClient) -> PolycomPhoneManager:
    """Manager wired to the fake network."""
    return PolycomPhoneManager(client)


def ok(data: Any = None) -> dict[str, Any]:
    """Successful response envelope."""
    envelope: dict[str, Any] = {"Status": "2000"}
    if data is not None:
        envelope["data"] = data
    return envelope
