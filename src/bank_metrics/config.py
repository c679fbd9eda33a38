"""Configuration management via environment variables.

Reads from .env file (via pydantic-settings) with sensible defaults.
All values can be overridden via environment variables.

Required:
    EDGAR_IDENTITY : Your name + email for SEC EDGAR API User-Agent header

Optional:
    MARKETSTACK_API_KEY : End-of-day prices; price-dependent ratios stay null without it
    MONGODB_URI         : Persistent bank + metrics storage
    BANK_TICKERS        : JSON list or comma-separated tickers to refresh
    PORT                : API server port
"""

from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode


DEFAULT_BANK_TICKERS = [
    # Major banks
    "JPM", "BAC", "WFC", "C", "USB", "PNC", "TFC",
    # Regional banks
    "RF", "CFG", "KEY", "FITB", "HBAN", "MTB", "ZION",
    # Community banks
    "SBNY", "EWBC", "WAL", "UMBF", "ONB", "BANR", "CATY",
    "CVBF", "HTLF", "IBOC", "TOWN", "FFNW", "WASH",
]


class Settings(BaseSettings):
    # SEC EDGAR API identity (name + email, required by SEC)
    edgar_identity: str = "Bank-Analyzer contact@example.com"
    sec_base_url: str = "https://data.sec.gov"
    sec_tickers_url: str = "https://www.sec.gov/files/company_tickers.json"

    # SEC allows 10 req/s: one request per 100ms
    sec_request_interval: float = 0.1
    sec_timeout: float = 30.0
    sec_max_retries: int = 0

    # Marketstack end-of-day prices (optional)
    marketstack_api_key: str = ""
    marketstack_base_url: str = "http://api.marketstack.com"
    price_timeout: float = 15.0

    # MongoDB for banks + dated metrics snapshots
    mongodb_uri: str = ""
    mongodb_database: str = "bank_analyzer"

    # Banks to refresh, processed sequentially with a pause between each
    bank_tickers: Annotated[list[str], NoDecode] = list(DEFAULT_BANK_TICKERS)
    bank_delay: float = 0.2

    port: int = 3001
    log_level: str = "INFO"

    # Strip whitespace from string fields: the .env file often has
    # trailing spaces that break connection strings
    @field_validator(
        "mongodb_uri", "marketstack_api_key", "edgar_identity", mode="before",
    )
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().strip('"').strip("'").strip()
        return v

    @field_validator("bank_tickers", mode="before")
    @classmethod
    def split_tickers(cls, v):
        # Accept '["JPM","BAC"]' or 'JPM, BAC'
        if isinstance(v, str):
            raw = v.strip()
            if raw.startswith("["):
                raw = raw.strip("[]")
            v = [t.strip().strip('"').strip("'") for t in raw.split(",")]
        return [t.upper() for t in v if t]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


_config: Settings | None = None


def get_config() -> Settings:
    """Get or create the shared Settings singleton."""
    global _config
    if _config is None:
        _config = Settings()
    return _config
