"""Tests for the SEC EDGAR client (no network: sessions are faked)."""

import threading
import time

import pytest
import requests

from bank_metrics.models import FetchStatus
from bank_metrics.sec_client import (
    COMPANY_FACTS_PATH,
    DATA_BASE,
    SUBMISSIONS_PATH,
    TICKERS_URL,
    RateLimiter,
    SECClient,
    compute_wait,
    pad_cik,
)

from fakes import FakeClock, FakeResponse, FakeSession, make_company_facts

TICKERS = {
    "0": {"cik_str": 19617, "ticker": "JPM", "title": "JPMORGAN CHASE & CO"},
    "1": {"cik_str": 70858, "ticker": "BAC", "title": "BANK OF AMERICA CORP"},
}
FACTS_URL = DATA_BASE + COMPANY_FACTS_PATH.format(cik="0000019617")
SUBMISSIONS_URL = DATA_BASE + SUBMISSIONS_PATH.format(cik="0000019617")


def _client(routes, retries=0):
    clock = FakeClock()
    session = FakeSession(routes, clock=clock)
    limiter = RateLimiter(0.1, clock=clock, sleep=clock.sleep)
    client = SECClient("Test Agent test@example.com", rate_limiter=limiter,
                       retries=retries, session=session, sleep=clock.sleep)
    return client, session, clock


def test_compute_wait():
    assert compute_wait(10.0, 10.03, 0.1) == pytest.approx(0.07)
    assert compute_wait(10.0, 10.25, 0.25) == 0.0
    assert compute_wait(10.0, 12.0, 0.1) == 0.0
    assert compute_wait(10.0, 10.0, 0.1) == pytest.approx(0.1)


def test_rate_limiter_first_call_does_not_wait():
    clock = FakeClock()
    limiter = RateLimiter(0.1, clock=clock, sleep=clock.sleep)
    assert limiter.wait() == 0.0
    assert clock.sleeps == []


def test_rate_limiter_spaces_calls():
    clock = FakeClock()
    limiter = RateLimiter(0.1, clock=clock, sleep=clock.sleep)
    limiter.wait()
    clock.advance(0.04)
    assert limiter.wait() == pytest.approx(0.06)
    clock.advance(0.5)
    assert limiter.wait() == 0.0
    assert clock.sleeps == [pytest.approx(0.06)]


def test_rate_limiter_serializes_threads():
    limiter = RateLimiter(0.05)
    limiter.wait()
    start = time.monotonic()
    barrier = threading.Barrier(4)

    def worker():
        barrier.wait()
        limiter.wait()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    # four releases after the first, each spaced by the interval
    assert time.monotonic() - start >= 4 * 0.05 - 0.005


def test_consecutive_requests_respect_min_interval():
    client, session, _ = _client({
        TICKERS_URL: FakeResponse(200, TICKERS),
        FACTS_URL: FakeResponse(200, make_company_facts()),
        SUBMISSIONS_URL: FakeResponse(200, {"name": "JPMORGAN CHASE & CO"}),
    })
    client.resolve_cik("JPM")
    client.get_company_facts("19617")
    client.get_company_info("19617")

    times = [c["at"] for c in session.calls]
    assert len(times) == 3
    assert all(b - a >= 0.1 - 1e-9 for a, b in zip(times, times[1:]))


def test_user_agent_header():
    client, session, _ = _client({FACTS_URL: FakeResponse(200, make_company_facts())})
    client.get_company_facts("19617")
    assert session.calls[0]["headers"]["User-Agent"] == "Test Agent test@example.com"


def test_pad_cik():
    assert pad_cik(19617) == "0000019617"
    assert pad_cik("0000019617") == "0000019617"


def test_resolve_cik_from_ticker_list():
    client, session, _ = _client({TICKERS_URL: FakeResponse(200, TICKERS)})
    assert client.resolve_cik("jpm") == "0000019617"
    assert client.resolve_cik("BAC") == "0000070858"
    # ticker list fetched once, then cached
    assert len(session.calls) == 1


def test_resolve_cik_numeric_passthrough():
    client, session, _ = _client({})
    assert client.resolve_cik("19617") == "0000019617"
    assert client.resolve_cik("CIK19617") == "0000019617"
    assert session.calls == []


def test_resolve_cik_unknown():
    client, _, _ = _client({TICKERS_URL: FakeResponse(200, TICKERS)})
    assert client.resolve_cik("NOPE") is None


def test_resolve_cik_ticker_list_unavailable():
    client, _, _ = _client({TICKERS_URL: FakeResponse(503)})
    assert client.resolve_cik("JPM") is None


def test_company_facts_ok():
    client, _, _ = _client({FACTS_URL: FakeResponse(200, make_company_facts())})
    result = client.get_company_facts("19617")
    assert result.ok
    assert result.data["entityName"] == "Example Bancorp"


def test_company_facts_404_is_not_found():
    client, _, _ = _client({FACTS_URL: FakeResponse(404)})
    result = client.get_company_facts("19617")
    assert result.status is FetchStatus.NOT_FOUND
    assert not result.ok


@pytest.mark.parametrize("route", [
    FakeResponse(500),
    FakeResponse(200, bad_json=True),
    FakeResponse(200, {"cik": 1}),
    requests.exceptions.ConnectionError("connection refused"),
])
def test_company_facts_errors(route):
    client, _, _ = _client({FACTS_URL: route})
    result = client.get_company_facts("19617")
    assert result.status is FetchStatus.ERROR
    assert result.error


def test_timeout_not_retried():
    client, session, _ = _client({FACTS_URL: requests.exceptions.Timeout("read timed out")}, retries=2)
    result = client.get_company_facts("19617")
    assert result.status is FetchStatus.ERROR
    assert len(session.calls) == 1


def test_server_error_retried_when_enabled():
    client, session, clock = _client(
        {FACTS_URL: [FakeResponse(503), FakeResponse(200, make_company_facts())]}, retries=1,
    )
    assert client.get_company_facts("19617").ok
    assert len(session.calls) == 2
    # one backoff sleep, no extra rate-limit wait after it
    assert clock.sleeps == [1]


def test_company_info():
    client, _, _ = _client({SUBMISSIONS_URL: FakeResponse(200, {
        "name": "JPMORGAN CHASE & CO",
        "tickers": ["JPM", "JPM-PC"],
        "exchanges": ["NYSE", "NYSE"],
        "sic": "6021",
        "sicDescription": "National Commercial Banks",
    })})
    result = client.get_company_info("19617")
    assert result.ok
    info = result.data
    assert info.cik == "0000019617"
    assert info.name == "JPMORGAN CHASE & CO"
    assert info.ticker == "JPM"
    assert info.exchange == "NYSE"
    assert info.sic_code == "6021"


def test_company_info_not_found():
    client, _, _ = _client({})
    assert client.get_company_info("19617").status is FetchStatus.NOT_FOUND


@pytest.mark.integration
@pytest.mark.slow
def test_live_resolve_and_facts():
    from bank_metrics.financials import extract_banking_metrics

    client = SECClient()
    cik = client.resolve_cik("JPM")
    assert cik == "0000019617"
    facts = client.get_company_facts(cik)
    assert facts.ok
    metrics = extract_banking_metrics(facts.data)
    assert metrics.total_assets is not None
    assert metrics.deposits is not None
