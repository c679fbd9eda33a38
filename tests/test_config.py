"""Tests for environment-driven settings."""

from bank_metrics.config import DEFAULT_BANK_TICKERS, Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("BANK_TICKERS", raising=False)
    s = Settings(_env_file=None)
    assert s.bank_tickers == DEFAULT_BANK_TICKERS
    assert len(s.bank_tickers) == 27
    assert s.sec_request_interval == 0.1
    assert s.bank_delay == 0.2
    assert s.sec_base_url == "https://data.sec.gov"


def test_tickers_comma_separated(monkeypatch):
    monkeypatch.setenv("BANK_TICKERS", "jpm, bac ,wfc")
    assert Settings(_env_file=None).bank_tickers == ["JPM", "BAC", "WFC"]


def test_tickers_json_list(monkeypatch):
    monkeypatch.setenv("BANK_TICKERS", '["JPM", "C"]')
    assert Settings(_env_file=None).bank_tickers == ["JPM", "C"]


def test_strips_quotes_and_whitespace(monkeypatch):
    monkeypatch.setenv("MONGODB_URI", '  "mongodb://localhost:27017"  ')
    monkeypatch.setenv("EDGAR_IDENTITY", "Jane Analyst jane@example.com ")
    s = Settings(_env_file=None)
    assert s.mongodb_uri == "mongodb://localhost:27017"
    assert s.edgar_identity == "Jane Analyst jane@example.com"
