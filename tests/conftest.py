"""
pytest configuration for usps_client tests.

Adds src directory to Python path for imports and provides an in-memory
HTTPTransport so no test touches the network.
"""

import asyncio
import json
import sys
from collections import defaultdict
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

from usps_client.logging.context import clear_log_context  # noqa: E402
from usps_client.transport import HTTPRequest, HTTPResponse  # noqa: E402


def json_response(status: int = 200, data=None, headers: dict | None = None) -> HTTPResponse:
    """Build an HTTPResponse with a JSON body."""
    return HTTPResponse(
        status=status,
        headers={"Content-Type": "application/json", **(headers or {})},
        body=json.dumps(data if data is not None else {}).encode(),
    )


class FakeTransport:
    """
    In-memory HTTPTransport.

    Responses are registered per URL path suffix and served in order; the
    last registered response for a route repeats. A handler, when set, takes
    precedence over routes. Exceptions are raised instead of returned.
    """

    def __init__(self):
        self.requests: list[HTTPRequest] = []
        self.handler = None
        self.delay = 0.0
        self.closed = False
        self._routes: dict[str, list] = defaultdict(list)

    def route(self, suffix: str, *responses) -> "FakeTransport":
        self._routes[suffix].extend(responses)
        return self

    def calls(self, suffix: str) -> list[HTTPRequest]:
        return [r for r in self.requests if urlsplit(r.url).path.endswith(suffix)]

    def _next_for(self, request: HTTPRequest):
        path = urlsplit(request.url).path
        for suffix, responses in self._routes.items():
            if path.endswith(suffix) and responses:
                return responses.pop(0) if len(responses) > 1 else responses[0]
        raise AssertionError(f"No fake response registered for {request.method} {request.url}")

    async def send(self, request: HTTPRequest) -> HTTPResponse:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.handler(request) if self.handler is not None else self._next_for(request)
        if asyncio.iscoroutine(result):
            result = await result
        if isinstance(result, BaseException):
            raise result
        return result

    async def close(self) -> None:
        self.closed = True


def query_params(request: HTTPRequest) -> dict[str, str]:
    """Single-valued query parameters of a request URL."""
    return {k: v[0] for k, v in parse_qs(urlsplit(request.url).query).items()}


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_json_response():
    return json_response


@pytest.fixture
def get_query_params():
    return query_params


@pytest.fixture
def token_payload() -> dict:
    return {
        "access_token": "test-access-token",
        "token_type": "Bearer",
        "expires_in": 3600,
        "scope": "addresses",
        "issuer": "api.usps.com",
    }


@pytest.fixture
def address_payload() -> dict:
    return {
        "firm": "",
        "address": {
            "streetAddress": "123 MAIN ST",
            "secondaryAddress": "APT 4",
            "city": "SPRINGFIELD",
            "state": "IL",
            "ZIPCode": "62704",
            "ZIPPlus4": "1234",
        },
        "additionalInfo": {
            "deliveryPoint": "45",
            "carrierRoute": "C001",
            "DPVConfirmation": "Y",
            "DPVCMRA": "N",
            "business": "N",
            "centralDeliveryPoint": "N",
            "vacant": "N",
        },
        "corrections": [],
        "matches": [{"code": "31", "text": "Single Response - exact match"}],
    }


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_log_context()
    yield
    clear_log_context()
