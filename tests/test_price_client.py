"""Tests for the marketstack price client."""

import pytest
import requests

from bank_metrics.price_client import DEFAULT_BASE_URL, LATEST_EOD_PATH, PriceClient

from fakes import FakeResponse, FakeSession

URL = DEFAULT_BASE_URL + LATEST_EOD_PATH


def _client(route, api_key="secret"):
    session = FakeSession({URL: route})
    return PriceClient(api_key=api_key, session=session), session


def test_latest_close():
    client, session = _client(FakeResponse(200, {"data": [{"symbol": "JPM", "close": 195.42}]}))
    assert client.get_current_price("jpm") == 195.42
    params = session.calls[0]["params"]
    assert params == {"access_key": "secret", "symbols": "JPM"}


def test_missing_api_key_makes_no_request():
    client, session = _client(FakeResponse(200, {"data": [{"close": 1.0}]}), api_key="")
    assert client.get_current_price("JPM") is None
    assert client.get_current_price("BAC") is None
    assert session.calls == []


@pytest.mark.parametrize("route", [
    FakeResponse(200, {"data": []}),
    FakeResponse(200, {"data": [{"close": None}]}),
    FakeResponse(200, {"data": [{"close": 0}]}),
    FakeResponse(200, {"data": [{"close": -3.5}]}),
    FakeResponse(200, {"error": {"code": "invalid_access_key"}}),
    FakeResponse(200, ["unexpected"]),
    FakeResponse(200, bad_json=True),
    FakeResponse(401),
    FakeResponse(500),
    requests.exceptions.ConnectionError("connection refused"),
    requests.exceptions.Timeout("timed out"),
])
def test_failures_return_none(route):
    client, _ = _client(route)
    assert client.get_current_price("JPM") is None
