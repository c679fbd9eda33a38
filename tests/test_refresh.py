"""Tests for the refresh orchestrator with faked SEC, price and storage."""

from types import SimpleNamespace

import pytest

from bank_metrics import refresh
from bank_metrics.db import MetricsStore
from bank_metrics.models import CompanyInfo, FetchResult
from bank_metrics.refresh import BankRefresher

from fakes import FakeDatabase, bank_facts

CIKS = {"AAA": "0000000001", "BBB": "0000000002", "CCC": "0000000003"}


class FakeSEC:
    def __init__(self, facts=None, info=None):
        self.facts = facts or {}
        self.info = info or {}
        self.calls: list[tuple] = []

    def resolve_cik(self, ticker):
        self.calls.append(("resolve_cik", ticker))
        return CIKS.get(ticker)

    def get_company_info(self, cik):
        self.calls.append(("get_company_info", cik))
        if cik in self.info:
            return self.info[cik]
        return FetchResult.success(CompanyInfo(cik=cik, name=f"Bank {cik[-1]}", exchange="NYSE"))

    def get_company_facts(self, cik):
        self.calls.append(("get_company_facts", cik))
        return self.facts.get(cik, FetchResult.success(bank_facts()))


class FakePrices:
    def __init__(self, price=40.0):
        self.price = price

    def get_current_price(self, ticker):
        return self.price


def _refresher(sec=None, prices=None, tickers=("AAA",), sleeps=None):
    store = MetricsStore(FakeDatabase())
    sleeps = sleeps if sleeps is not None else []
    r = BankRefresher(sec or FakeSEC(), prices or FakePrices(), store,
                      tickers=list(tickers), bank_delay=0.2, sleep=sleeps.append)
    return r, store


def test_refresh_single_bank():
    r, store = _refresher()
    result = r.refresh_bank_data("aaa")

    assert result.success
    assert result.ticker == "AAA"
    assert result.data_date == "2023-12-31"
    assert result.error is None

    bank = store.get_bank("AAA")
    assert bank.cik == "0000000001"
    doc = store.get_latest_metrics("AAA")
    assert doc["bank_id"] == bank.id
    assert doc["price"] == 40.0
    assert doc["market_cap"] == pytest.approx(240_000_000)
    assert doc["roe"] == pytest.approx(12.0)
    assert doc["sourced"]["shares_outstanding"] == "EntityCommonStockSharesOutstanding"
    assert doc["sourced"]["net_income"] == "NetIncomeLoss"


def test_refresh_is_idempotent():
    sec = FakeSEC()
    r, store = _refresher(sec=sec)
    assert r.refresh_bank_data("AAA").success
    assert r.refresh_bank_data("AAA").success

    assert store.banks.count_documents({}) == 1
    assert store.metrics.count_documents({}) == 1
    # identity is looked up once, then reused from the store
    assert [c for c in sec.calls if c[0] == "resolve_cik"] == [("resolve_cik", "AAA")]


def test_refresh_without_price():
    r, store = _refresher(prices=FakePrices(price=None))
    assert r.refresh_bank_data("AAA").success

    doc = store.get_latest_metrics("AAA")
    assert doc["price"] is None
    assert doc["market_cap"] is None
    assert doc["pni"] is None
    assert doc["roe"] == pytest.approx(12.0)


def test_unknown_ticker_is_cik_lookup_failure():
    r, store = _refresher()
    result = r.refresh_bank_data("ZZZ")
    assert not result.success
    assert result.error == "CIK lookup failed"
    assert store.banks.count_documents({}) == 0


def test_company_info_failure_is_cik_lookup_failure():
    sec = FakeSEC(info={"0000000001": FetchResult.failure("HTTP 503 fetching submissions")})
    r, _ = _refresher(sec=sec)
    assert r.refresh_bank_data("AAA").error == "CIK lookup failed"


@pytest.mark.parametrize("facts", [
    FetchResult.not_found("No company facts found (404)"),
    FetchResult.failure("Network error fetching company facts"),
])
def test_facts_failure(facts):
    sec = FakeSEC(facts={"0000000001": facts})
    r, store = _refresher(sec=sec)
    result = r.refresh_bank_data("AAA")
    assert not result.success
    assert result.error == "SEC data fetch failed"
    assert store.metrics.count_documents({}) == 0


def test_unexpected_error_reports_message():
    r, store = _refresher()

    def broken(*args, **kwargs):
        raise RuntimeError("write concern timeout")

    store.upsert_metrics = broken
    result = r.refresh_bank_data("AAA")
    assert not result.success
    assert result.error == "write concern timeout"


def test_batch_continues_past_failures():
    sec = FakeSEC(facts={"0000000002": FetchResult.failure("HTTP 500")})
    sleeps: list[float] = []
    r, store = _refresher(sec=sec, tickers=("AAA", "BBB", "CCC"), sleeps=sleeps)

    summary = r.refresh_all_banks()

    assert summary.total == 3
    assert summary.successful == 2
    assert summary.failed == 1
    assert [(e.ticker, e.error) for e in summary.errors] == [("BBB", "SEC data fetch failed")]
    assert summary.duration_seconds >= 0
    assert sleeps == [0.2, 0.2]
    assert store.metrics.count_documents({}) == 2


def test_batch_is_sequential_in_configured_order():
    sec = FakeSEC()
    r, _ = _refresher(sec=sec, tickers=("CCC", "AAA"))
    r.refresh_all_banks()
    facts_calls = [c[1] for c in sec.calls if c[0] == "get_company_facts"]
    assert facts_calls == ["0000000003", "0000000001"]


def test_get_refresher_requires_store(monkeypatch):
    monkeypatch.setattr(refresh, "_refresher", None)
    monkeypatch.setattr("bank_metrics.db.get_store", lambda: None)
    with pytest.raises(RuntimeError):
        refresh.get_refresher()


def _without_store(monkeypatch, tickers=("aaa", "BBB")):
    monkeypatch.setattr(refresh, "_refresher", None)
    monkeypatch.setattr("bank_metrics.db.get_store", lambda: None)
    monkeypatch.setattr(
        "bank_metrics.config.get_config",
        lambda: SimpleNamespace(bank_tickers=list(tickers), log_level="INFO"),
    )


def test_batch_without_store_reports_every_bank(monkeypatch):
    _without_store(monkeypatch)
    summary = refresh.refresh_all_banks()

    assert summary.total == 2
    assert summary.successful == 0
    assert summary.failed == 2
    assert [e.ticker for e in summary.errors] == ["AAA", "BBB"]
    assert all("MONGODB_URI" in e.error for e in summary.errors)


def test_single_refresh_without_store_is_a_failed_result(monkeypatch):
    _without_store(monkeypatch)
    result = refresh.refresh_bank_data(" jpm ")
    assert result.ticker == "JPM"
    assert not result.success
    assert "MONGODB_URI" in result.error


def test_non_bank_sic_is_logged_but_refreshed(caplog):
    info = FetchResult.success(CompanyInfo(cik="0000000001", name="Widget Co", sic_code="3571"))
    r, _ = _refresher(sec=FakeSEC(info={"0000000001": info}))
    assert r.refresh_bank_data("AAA").success
    assert "not a bank" in caplog.text
