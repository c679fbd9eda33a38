"""End-of-day stock prices from the marketstack API.

Price is best-effort: every failure path returns None and the caller
computes the price-dependent ratios as None.
"""

from __future__ import annotations

import logging

import requests

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://api.marketstack.com"
LATEST_EOD_PATH = "/v1/eod/latest"


class PriceClient:
    """Fetches the latest closing price for a ticker."""

    def __init__(
        self,
        api_key: str = "",
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 15,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self._warned_no_key = False

    def get_current_price(self, ticker: str) -> float | None:
        if not self.api_key:
            if not self._warned_no_key:
                log.warning("MARKETSTACK_API_KEY not set, prices unavailable")
                self._warned_no_key = True
            return None

        try:
            resp = self.session.get(
                self.base_url + LATEST_EOD_PATH,
                params={"access_key": self.api_key, "symbols": ticker.upper()},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except requests.exceptions.RequestException as exc:
            log.warning("Error fetching price for %s: %s", ticker, exc)
            return None
        except ValueError as exc:
            log.warning("Malformed price response for %s: %s", ticker, exc)
            return None

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            log.info("No price data for %s", ticker)
            return None

        try:
            close = float(data[0].get("close"))
        except (TypeError, ValueError):
            return None
        if not close > 0:
            return None
        return close


# ═══════════════════════════════════════════════════════════════════════════
#  Module-level singleton
# ═══════════════════════════════════════════════════════════════════════════

_client: PriceClient | None = None


def get_price_client() -> PriceClient:
    global _client
    if _client is None:
        from bank_metrics.config import get_config
        config = get_config()
        _client = PriceClient(
            api_key=config.marketstack_api_key,
            base_url=config.marketstack_base_url,
            timeout=config.price_timeout,
        )
    return _client


def get_current_price(ticker: str) -> float | None:
    """Latest closing price for *ticker*, or None when unavailable."""
    return get_price_client().get_current_price(ticker)
