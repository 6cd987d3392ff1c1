"""
Pytest configuration and shared fixtures.

HTTP traffic is served by ``httpx.MockTransport`` so no request leaves the
process; ``asyncio.sleep`` is patched wherever the retry loop would wait.
"""

import json
from typing import Callable

import httpx
import pytest

from open_amber import AmberClient


# =============================================================================
# SAMPLE PAYLOADS
# =============================================================================


def _base_interval(kind: str, **overrides) -> dict:
    data = {
        "type": kind,
        "duration": 5,
        "spotPerKwh": 6.12,
        "perKwh": 24.33,
        "date": "2021-05-05",
        "nemTime": "2021-05-06T12:30:00+10:00",
        "startTime": "2021-05-05T02:00:01Z",
        "endTime": "2021-05-05T02:30:00Z",
        "renewables": 45,
        "channelType": "general",
        "tariffInformation": None,
        "spikeStatus": "none",
        "descriptor": "negative",
    }
    data.update(overrides)
    return data


@pytest.fixture
def interval_factory() -> Callable[..., dict]:
    """Build a price interval payload of the given type."""
    return _base_interval


@pytest.fixture
def price_intervals() -> list[dict]:
    """One interval of each type, as returned by the prices endpoints"""
    return [
        _base_interval("ActualInterval"),
        _base_interval(
            "CurrentInterval",
            range={"min": 0, "max": 0},
            estimate=True,
            advancedPrice={"low": 1, "predicted": 3, "high": 10},
        ),
        _base_interval(
            "ForecastInterval",
            range={"min": 0, "max": 0},
            advancedPrice={"low": 1, "predicted": 3, "high": 10},
        ),
    ]


@pytest.fixture
def renewable_factory() -> Callable[..., dict]:
    """Build a renewables payload of the given type."""
    def _create(kind: str, **overrides) -> dict:
        data = {
            "type": kind,
            "duration": 5,
            "date": "2021-05-05",
            "nemTime": "2021-05-06T12:30:00+10:00",
            "startTime": "2021-05-05T02:00:01Z",
            "endTime": "2021-05-05T02:30:00Z",
            "renewables": 45,
            "descriptor": "best",
        }
        data.update(overrides)
        return data
    return _create


@pytest.fixture
def usage_records() -> list[dict]:
    """A consumption record on E1 and an export record on B1"""
    return [
        _base_interval(
            "Usage",
            channelIdentifier="E1",
            kwh=0.42,
            quality="billable",
            cost=10.2,
        ),
        _base_interval(
            "Usage",
            channelType="feedIn",
            channelIdentifier="B1",
            kwh=-1.5,
            quality="estimated",
            cost=-4.1,
        ),
    ]


@pytest.fixture
def closed_site() -> dict:
    """A closed site with both optional dates set"""
    return {
        "id": "01F5A5CRKMZ5BCX9P1S4V990AM",
        "nmi": "3052282872",
        "channels": [{"identifier": "E1", "type": "general", "tariff": "A100"}],
        "network": "Jemena",
        "status": "closed",
        "activeFrom": "2022-01-01",
        "closedOn": "2022-05-01",
        "intervalLength": 30,
    }


# =============================================================================
# MOCK HTTP CLIENT FIXTURES
# =============================================================================


class RecordingHandler:
    """
    Replays a list of canned responses and records every request seen.

    Once the list is exhausted the last response is repeated.
    """

    def __init__(self, responses: list[httpx.Response]):
        self.responses = responses
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        canned = self.responses[min(len(self.requests), len(self.responses)) - 1]
        return httpx.Response(
            canned.status_code, headers=canned.headers, content=canned.content
        )


def json_response(payload, status_code: int = 200, headers: dict = None) -> httpx.Response:
    """Build a canned JSON response."""
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode(),
        headers={"Content-Type": "application/json", **(headers or {})},
    )


@pytest.fixture
def make_client():
    """Factory fixture returning (client, handler) backed by MockTransport"""
    def _create(responses: list[httpx.Response], **kwargs):
        handler = RecordingHandler(responses)
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        kwargs.setdefault("api_key", "psk_test")
        return AmberClient(http_client=http, **kwargs), handler
    return _create


@pytest.fixture
def respond() -> Callable[..., httpx.Response]:
    """Canned JSON response builder"""
    return json_response
