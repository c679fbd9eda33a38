"""Direct SEC EDGAR API client.

Uses only public SEC endpoints (no API key needed, just User-Agent header):
  - company_tickers.json             : ticker→CIK resolution
  - submissions/CIK{cik}.json        : company identity (name, exchange, SIC)
  - api/xbrl/companyfacts/CIK{cik}.json: ALL XBRL facts for a company

SEC allows 10 req/s.  Every request waits on a RateLimiter first; the
limiter's last-request timestamp, guarded by a lock, is the only state
shared between calls.
Upstream outcomes are returned as FetchResult values: a 404 on
companyfacts is ``not_found`` (the filer has no XBRL data), anything
else that goes wrong is ``error``.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

import requests

from bank_metrics.models import CompanyInfo, FetchResult

log = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════
#  Constants
# ═══════════════════════════════════════════════════════════════════════════

DATA_BASE = "https://data.sec.gov"
TICKERS_URL = "https://www.sec.gov/files/company_tickers.json"
SUBMISSIONS_PATH = "/submissions/CIK{cik}.json"
COMPANY_FACTS_PATH = "/api/xbrl/companyfacts/CIK{cik}.json"

# SEC requires a descriptive User-Agent with contact email
DEFAULT_USER_AGENT = "Bank-Analyzer contact@example.com"

# 10 req/s → 100ms between requests
MIN_REQUEST_INTERVAL = 0.1

SUBMISSIONS_TIMEOUT = 10
TICKERS_CACHE_TTL = 1800    # 30 minutes for ticker→CIK mapping


def pad_cik(cik: str | int) -> str:
    """Zero-pad a CIK to the 10 digits SEC URLs expect."""
    return str(int(str(cik).strip())).zfill(10)


# ═══════════════════════════════════════════════════════════════════════════
#  Rate limiting
# ═══════════════════════════════════════════════════════════════════════════

def compute_wait(last_time: float, now: float, min_interval: float) -> float:
    """Seconds to sleep so that requests are at least *min_interval* apart."""
    elapsed = now - last_time
    if elapsed < min_interval:
        return min_interval - elapsed
    return 0.0


class RateLimiter:
    """Enforces a minimum interval between consecutive requests.

    Thread-safe: callers are released one at a time, each at least
    ``min_interval`` after the previous one.
    """

    def __init__(
        self,
        min_interval: float = MIN_REQUEST_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self.last_request_time: float | None = None

    def wait(self) -> float:
        """Block until the next request may go out; returns the delay applied."""
        with self._lock:
            delay = 0.0
            if self.last_request_time is not None:
                delay = compute_wait(self.last_request_time, self._clock(), self.min_interval)
                if delay > 0:
                    self._sleep(delay)
            self.last_request_time = self._clock()
            return delay


# ═══════════════════════════════════════════════════════════════════════════
#  Cache helper
# ═══════════════════════════════════════════════════════════════════════════

class _CacheEntry:
    """Simple timestamped cache entry."""
    __slots__ = ("data", "timestamp")

    def __init__(self, data: Any):
        self.data = data
        self.timestamp = time.time()

    def expired(self, ttl: float) -> bool:
        return (time.time() - self.timestamp) > ttl


# ═══════════════════════════════════════════════════════════════════════════
#  SEC EDGAR Client
# ═══════════════════════════════════════════════════════════════════════════

class SECClient:
    """HTTP client for the SEC EDGAR public APIs used by the refresh job."""

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        base_url: str = DATA_BASE,
        tickers_url: str = TICKERS_URL,
        rate_limiter: RateLimiter | None = None,
        timeout: float = 30,
        retries: int = 0,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.user_agent = user_agent
        self.base_url = base_url.rstrip("/")
        self.tickers_url = tickers_url
        self.headers = {
            "User-Agent": user_agent,
            "Accept-Encoding": "gzip, deflate",
        }
        self.rate_limiter = rate_limiter or RateLimiter()
        self.timeout = timeout
        self.retries = retries
        self.session = session or requests.Session()
        self._sleep = sleep
        self._tickers_cache: _CacheEntry | None = None

    # ── Rate-limited HTTP request ─────────────────────────────────────

    def _request(self, url: str, timeout: float | None = None) -> requests.Response:
        """GET with rate limiting.

        Retries (up to ``self.retries``) only on 429 and 5xx responses;
        timeouts and connection errors propagate immediately.
        """
        timeout = timeout or self.timeout
        for attempt in range(1 + self.retries):
            self.rate_limiter.wait()
            resp = self.session.get(url, headers=self.headers, timeout=timeout)
            if resp.status_code in (429, 500, 502, 503, 504) and attempt < self.retries:
                wait = min(2 ** attempt, 8)
                log.warning("SEC %d for %s, retrying in %ds…", resp.status_code, url, wait)
                self._sleep(wait)
                continue
            resp.raise_for_status()
            return resp
        raise requests.exceptions.HTTPError(f"Failed after {self.retries + 1} attempts: {url}")

    def _request_json(self, url: str, timeout: float | None = None) -> dict:
        """GET request that returns parsed JSON."""
        return self._request(url, timeout=timeout).json()

    def _fetch(self, url: str, what: str, timeout: float | None = None) -> FetchResult:
        """Run a JSON GET and fold every failure mode into a FetchResult."""
        try:
            data = self._request_json(url, timeout=timeout)
        except requests.exceptions.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else 0
            if status == 404:
                log.info("No %s at %s (404)", what, url)
                return FetchResult.not_found(f"No {what} found (404)")
            log.warning("SEC returned HTTP %d for %s", status, url)
            return FetchResult.failure(f"HTTP {status} fetching {what}")
        except (requests.exceptions.ConnectionError,
                requests.exceptions.Timeout) as exc:
            log.warning("Network error fetching %s: %s", what, exc)
            return FetchResult.failure(f"Network error fetching {what}: {exc}")
        except (requests.exceptions.RequestException, ValueError) as exc:
            # ValueError covers malformed JSON bodies
            log.warning("Unexpected error fetching %s: %s", what, exc)
            return FetchResult.failure(f"Error fetching {what}: {exc}")

        if not isinstance(data, dict):
            return FetchResult.failure(f"Malformed {what} payload")
        return FetchResult.success(data)

    # ── Ticker → CIK resolution ──────────────────────────────────────

    def _get_tickers_map(self) -> dict[str, dict]:
        """Load and cache SEC company_tickers.json keyed by uppercase ticker."""
        if self._tickers_cache and not self._tickers_cache.expired(TICKERS_CACHE_TTL):
            return self._tickers_cache.data

        log.info("Fetching SEC company_tickers.json (cached for %ds)", TICKERS_CACHE_TTL)
        result = self._fetch(self.tickers_url, "ticker list")
        if not result.ok:
            return {}

        by_ticker: dict[str, dict] = {}
        for entry in result.data.values():
            if not isinstance(entry, dict):
                continue
            ticker = str(entry.get("ticker", "")).upper()
            if ticker:
                by_ticker[ticker] = entry
        log.info("Loaded %d tickers from company_tickers.json", len(by_ticker))
        self._tickers_cache = _CacheEntry(by_ticker)
        return by_ticker

    def resolve_cik(self, ticker_or_cik: str) -> str | None:
        """Resolve a ticker symbol or CIK number to a 10-digit CIK string.

        Accepts: "JPM", "19617", "0000019617", "CIK19617".
        Returns None when the ticker is unknown to SEC.
        """
        clean = ticker_or_cik.strip().upper()
        if clean.startswith("CIK"):
            clean = clean[3:]
        if clean.isdigit():
            return pad_cik(clean)

        entry = self._get_tickers_map().get(clean)
        if entry is None:
            # Share classes are listed with a dash ("BRK-B"), tickers often with a dot
            entry = self._get_tickers_map().get(clean.replace(".", "-"))
        if entry is None or entry.get("cik_str") in (None, ""):
            log.warning("Could not resolve '%s' to a CIK", ticker_or_cik)
            return None
        return pad_cik(entry["cik_str"])

    # ── Company identity ──────────────────────────────────────────────

    def get_company_info(self, cik: str) -> FetchResult:
        """Company identity from the submissions endpoint → FetchResult[CompanyInfo]."""
        cik_padded = pad_cik(cik)
        url = self.base_url + SUBMISSIONS_PATH.format(cik=cik_padded)
        result = self._fetch(url, f"submissions for CIK {cik_padded}", timeout=SUBMISSIONS_TIMEOUT)
        if not result.ok:
            return result

        data = result.data
        tickers = data.get("tickers") or []
        exchanges = data.get("exchanges") or []
        return FetchResult.success(CompanyInfo(
            cik=cik_padded,
            name=data.get("name") or "",
            ticker=tickers[0] if tickers else None,
            exchange=exchanges[0] if exchanges else None,
            sic_code=str(data["sic"]) if data.get("sic") else None,
            sic_description=data.get("sicDescription"),
        ))

    # ── XBRL company facts ────────────────────────────────────────────

    def get_company_facts(self, cik: str) -> FetchResult:
        """Fetch ALL XBRL facts for a company → FetchResult[dict].

        Structure: {
            "cik": 19617,
            "entityName": "JPMorgan Chase & Co",
            "facts": {
                "us-gaap": {
                    "Assets": {
                        "label": "Assets",
                        "units": {
                            "USD": [
                                {"end": "2023-12-31", "val": 3875393000000,
                                 "fy": 2023, "fp": "FY", "form": "10-K", ...},
                                ...
                            ]
                        }
                    },
                    ...
                },
                "dei": {...}
            }
        }
        """
        cik_padded = pad_cik(cik)
        url = self.base_url + COMPANY_FACTS_PATH.format(cik=cik_padded)
        log.info("Fetching XBRL companyfacts for CIK %s", cik_padded)
        result = self._fetch(url, f"company facts for CIK {cik_padded}")
        if result.ok and not isinstance(result.data.get("facts"), dict):
            return FetchResult.failure(f"Malformed company facts for CIK {cik_padded}")
        return result


# ═══════════════════════════════════════════════════════════════════════════
#  Module-level singleton: shared across the app
# ═══════════════════════════════════════════════════════════════════════════

_client: SECClient | None = None


def get_sec_client() -> SECClient:
    """Get or create the shared SECClient singleton from config."""
    global _client
    if _client is None:
        from bank_metrics.config import get_config
        config = get_config()
        _client = SECClient(
            user_agent=config.edgar_identity,
            base_url=config.sec_base_url,
            tickers_url=config.sec_tickers_url,
            rate_limiter=RateLimiter(config.sec_request_interval),
            timeout=config.sec_timeout,
            retries=config.sec_max_retries,
        )
    return _client
