"""Pytest configuration and fixtures."""

import asyncio
import json
import os
from typing import Any, Callable, Optional, Union

import httpx
import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["POLL_INTERVAL_MS"] = "10"
os.environ["MAX_POLL_ATTEMPTS"] = "5"

from intentpay.client import SwapClient
from intentpay.models import SwapStatus
from intentpay.utils.locks import clear_session_locks

TEST_API_URL = "https://intents.test"
USER_ADDRESS = "0xabc"

Scripted = Union[str, dict, SwapStatus, httpx.Response, Exception]


def quote_response_for(quote_request: dict) -> dict:
    """A 1Click quote response echoing ``quote_request``."""
    return {
        "timestamp": "2025-01-15T10:00:00.000Z",
        "signature": "ed25519:3x4mpl3S1gn4tur3",
        "quoteRequest": quote_request,
        "quote": {
            "amountIn": "100000000000000000000",
            "amountInFormatted": quote_request["amount"],
            "amountInUsd": "250.12",
            "amountOut": "249500000",
            "amountOutFormatted": "249.5",
            "amountOutUsd": "249.48",
            "minAmountOut": "247005000",
            "timeEstimate": 5,
            "depositAddress": "0xdeposit",
        },
    }


class FakeIntentsApi:
    """In-memory stand-in for the 1Click API, served through httpx.MockTransport."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.statuses: list[Scripted] = ["PENDING", "COMPLETED"]
        self.overrides: dict[tuple[str, str], list[Union[httpx.Response, Exception]]] = {}
        self.swap_id = "swap-123"
        self.on_request: Optional[Callable[[httpx.Request], None]] = None

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self, **kwargs: Any) -> SwapClient:
        return SwapClient(base_url=TEST_API_URL, transport=self.transport, **kwargs)

    def override(self, method: str, path: str, *results: Union[httpx.Response, Exception]) -> None:
        self.overrides.setdefault((method, path), []).extend(results)

    def requests_to(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.on_request:
            self.on_request(request)

        key = (request.method, request.url.path)
        queued = self.overrides.get(key)
        if queued:
            result = queued.pop(0)
            if isinstance(result, Exception):
                raise result
            return result

        if key == ("POST", "/quote"):
            body = json.loads(request.content)
            return httpx.Response(200, json=quote_response_for(body))

        if key == ("POST", "/swap"):
            return httpx.Response(200, json={"swapId": self.swap_id, "status": "PENDING"})

        if request.method == "GET" and request.url.path.endswith("/status"):
            item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            if isinstance(item, Exception):
                raise item
            if isinstance(item, httpx.Response):
                return item
            if isinstance(item, str):
                item = {"status": item, "updatedAt": "2025-01-15T10:00:02.000Z"}
            return httpx.Response(200, json=item)

        return httpx.Response(404, json={"message": "Not found"})


class ScriptedStatusClient:
    """Status-only client replaying a fixed script of outcomes.

    The last entry repeats once the script is exhausted. When ``gate`` is set
    every call waits on it before answering.
    """

    def __init__(self, *script: Scripted):
        self.script = list(script) or ["PENDING"]
        self.calls = 0
        self.gate: Optional[asyncio.Event] = None

    async def fetch_status(self, tracking_id: str) -> SwapStatus:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, SwapStatus):
            return item
        if isinstance(item, str):
            item = {"status": item}
        return SwapStatus.from_payload(tracking_id, item)


@pytest.fixture(autouse=True)
def reset_locks():
    """Clear session locks before each test."""
    clear_session_locks()
    yield
    clear_session_locks()


@pytest.fixture
def intents_api() -> FakeIntentsApi:
    return FakeIntentsApi()


@pytest.fixture
def swap_client(intents_api: FakeIntentsApi) -> SwapClient:
    return intents_api.client()
