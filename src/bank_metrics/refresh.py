"""Refresh orchestration: SEC facts + price → metrics → MongoDB.

Data flow per bank:
  1. store.get_bank() or resolve_cik() + get_company_info() + create_bank()
  2. SECClient.get_company_facts() → companyfacts JSON
  3. extract_banking_metrics() → EdgarMetrics
  4. PriceClient.get_current_price() (best effort)
  5. calculate_all_metrics() + validate_metrics()
  6. store.upsert_metrics() keyed by (bank_id, data_date)

Banks are processed one at a time with a pause between them; a failure
for one bank is recorded in the summary and the batch carries on.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from bank_metrics.calculator import calculate_all_metrics, validate_metrics
from bank_metrics.financials import extract_banking_metrics
from bank_metrics.models import (
    Bank,
    FetchStatus,
    RefreshError,
    RefreshResult,
    RefreshSummary,
)
from bank_metrics.xbrl_mappings import is_bank_sic

log = logging.getLogger(__name__)

CIK_LOOKUP_FAILED = "CIK lookup failed"
SEC_FETCH_FAILED = "SEC data fetch failed"


class RefreshFailed(Exception):
    """A refresh step failed with a message meant for the summary."""


class BankRefresher:
    """Runs refresh passes over a fixed list of tickers."""

    def __init__(
        self,
        sec_client,
        price_client,
        store,
        tickers: list[str],
        bank_delay: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.sec = sec_client
        self.prices = price_client
        self.store = store
        self.tickers = [t.upper() for t in tickers]
        self.bank_delay = bank_delay
        self._sleep = sleep

    # ── Identity ──────────────────────────────────────────────────────

    def _get_or_create_bank(self, ticker: str) -> Bank:
        bank = self.store.get_bank(ticker)
        if bank is not None:
            return bank

        cik = self.sec.resolve_cik(ticker)
        if not cik:
            raise RefreshFailed(CIK_LOOKUP_FAILED)

        info = self.sec.get_company_info(cik)
        if not info.ok:
            log.warning("Company info for %s (CIK %s) unavailable: %s", ticker, cik, info.error)
            raise RefreshFailed(CIK_LOOKUP_FAILED)

        if info.data.sic_code and not is_bank_sic(info.data.sic_code):
            log.warning("%s has SIC %s (%s), not a bank; bank ratios may be empty",
                        ticker, info.data.sic_code, info.data.sic_description or "?")

        bank = self.store.create_bank(ticker, info.data)
        log.info("Registered %s as %s (CIK %s)", ticker, bank.name, bank.cik)
        return bank

    # ── Single bank ───────────────────────────────────────────────────

    def refresh_bank_data(self, ticker: str) -> RefreshResult:
        """Refresh one bank. Never raises; failures are reported in the result."""
        ticker = ticker.strip().upper()
        try:
            log.info("Processing %s...", ticker)
            bank = self._get_or_create_bank(ticker)

            facts = self.sec.get_company_facts(bank.cik)
            if facts.status is FetchStatus.NOT_FOUND:
                log.info("No XBRL facts for %s: %s", ticker, facts.error)
                raise RefreshFailed(SEC_FETCH_FAILED)
            if not facts.ok:
                log.warning("Company facts for %s failed: %s", ticker, facts.error)
                raise RefreshFailed(SEC_FETCH_FAILED)

            edgar_metrics = extract_banking_metrics(facts.data)
            price = self.prices.get_current_price(ticker)
            if price is None:
                log.info("No price for %s, price-based ratios will be empty", ticker)

            metrics = calculate_all_metrics(edgar_metrics, price)
            warnings = validate_metrics(metrics)
            for w in warnings:
                log.warning("%s: %s", ticker, w.message)

            self.store.upsert_metrics(bank, metrics, warnings, sourced=edgar_metrics.sourced())
            log.info("Successfully updated %s (data date %s)", ticker, metrics.data_date)
            return RefreshResult(
                ticker=ticker, success=True,
                data_date=metrics.data_date, warnings=warnings,
            )

        except RefreshFailed as exc:
            log.error("Error processing %s: %s", ticker, exc)
            return RefreshResult(ticker=ticker, success=False, error=str(exc))
        except Exception as exc:
            log.exception("Error processing %s", ticker)
            return RefreshResult(ticker=ticker, success=False, error=str(exc))

    # ── Batch ─────────────────────────────────────────────────────────

    def refresh_all_banks(self) -> RefreshSummary:
        """Refresh every configured bank sequentially."""
        start = time.monotonic()
        summary = RefreshSummary(total=len(self.tickers))
        log.info("Starting refresh of %d banks", summary.total)

        for i, ticker in enumerate(self.tickers):
            if i > 0 and self.bank_delay > 0:
                self._sleep(self.bank_delay)

            result = self.refresh_bank_data(ticker)
            if result.success:
                summary.successful += 1
            else:
                summary.failed += 1
                summary.errors.append(RefreshError(ticker=ticker, error=result.error))

        summary.duration_seconds = round(time.monotonic() - start, 2)
        log.info(
            "Refresh complete: %d/%d successful, %d failed (%.1fs)",
            summary.successful, summary.total, summary.failed, summary.duration_seconds,
        )
        return summary


# ═══════════════════════════════════════════════════════════════════════════
#  Module-level singleton
# ═══════════════════════════════════════════════════════════════════════════

_refresher: BankRefresher | None = None


def get_refresher() -> BankRefresher:
    """Shared refresher built from config.  Raises RuntimeError without MongoDB."""
    global _refresher
    if _refresher is None:
        from bank_metrics.config import get_config
        from bank_metrics.db import get_store
        from bank_metrics.price_client import get_price_client
        from bank_metrics.sec_client import get_sec_client

        store = get_store()
        if store is None:
            raise RuntimeError("MongoDB is not configured or unreachable (set MONGODB_URI)")
        config = get_config()
        _refresher = BankRefresher(
            get_sec_client(), get_price_client(), store,
            tickers=config.bank_tickers, bank_delay=config.bank_delay,
        )
    return _refresher


def refresh_bank_data(ticker: str) -> RefreshResult:
    """Refresh one bank with the shared refresher.  Never raises."""
    try:
        refresher = get_refresher()
    except RuntimeError as exc:
        log.error("Cannot refresh %s: %s", ticker.upper(), exc)
        return RefreshResult(ticker=ticker.strip().upper(), success=False, error=str(exc))
    return refresher.refresh_bank_data(ticker)


def refresh_all_banks() -> RefreshSummary:
    """Refresh every configured bank.  Never raises; every bank fails without a store."""
    try:
        refresher = get_refresher()
    except RuntimeError as exc:
        from bank_metrics.config import get_config

        tickers = [t.upper() for t in get_config().bank_tickers]
        log.error("Cannot refresh %d banks: %s", len(tickers), exc)
        return RefreshSummary(
            total=len(tickers),
            failed=len(tickers),
            errors=[RefreshError(ticker=t, error=str(exc)) for t in tickers],
        )
    return refresher.refresh_all_banks()
