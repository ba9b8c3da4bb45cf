"""
Shared fixtures for the Data API SDK tests.

No server is needed: ``FakeTransport`` records every request and answers
with queued responses, and ``FakeClock`` lets timeout budgets be advanced
by hand.
"""

from __future__ import annotations

import json
from collections import deque
from typing import Any

import pytest

from data_api_sdk import DataAPIClient, DataAPIClientOptions
from data_api_sdk.api import TransportResponse

ENDPOINT = "https://db.example.com"
TOKEN = "test-token"


class FakeClock:
    """Monotonic clock advanced manually, in seconds."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000.0


class FakeTransport:
    """
    Transport answering with queued responses.

    Queue either ``TransportResponse`` objects, JSON-able dicts (sent with
    status 200), or exceptions to raise from ``send``.
    """

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self.responses: deque[Any] = deque()
        self.closed = False
        self.on_send: Any = None

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    async def send(self, url: str, body: str, headers: dict[str, str], timeout_ms: int) -> TransportResponse:
        self.requests.append({"url": url, "body": body, "headers": headers, "timeout_ms": timeout_ms})
        if self.on_send is not None:
            self.on_send()
        if not self.responses:
            raise AssertionError(f"Unexpected request to {url}: {body}")

        response = self.responses.popleft()
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, TransportResponse):
            return response
        return TransportResponse(status=200, body=json.dumps(response))

    async def close(self) -> None:
        self.closed = True

    @property
    def commands(self) -> list[dict[str, Any]]:
        """Decoded bodies of every request sent so far."""
        return [json.loads(r["body"]) for r in self.requests]

    @property
    def last_command(self) -> dict[str, Any]:
        return self.commands[-1]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client(transport: FakeTransport, clock: FakeClock) -> DataAPIClient:
    return DataAPIClient(TOKEN, DataAPIClientOptions(), transport=transport, clock=clock)


@pytest.fixture
def db(client: DataAPIClient) -> Any:
    return client.db(ENDPOINT)
