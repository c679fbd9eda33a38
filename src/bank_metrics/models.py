"""Pydantic models for extracted facts, calculated metrics and refresh results."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


# ---------------------------------------------------------------------------
# Company & identity
# ---------------------------------------------------------------------------

class CompanyInfo(BaseModel):
    cik: str                      # 10-digit zero-padded
    name: str
    ticker: str | None = None
    exchange: str | None = None
    sic_code: str | None = None
    sic_description: str | None = None


class Bank(BaseModel):
    """Persisted identity record: created once, looked up thereafter."""
    id: str
    ticker: str
    cik: str
    name: str
    exchange: str | None = None


# ---------------------------------------------------------------------------
# Upstream fetch outcomes
# ---------------------------------------------------------------------------

class FetchStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    ERROR = "error"


class FetchResult(BaseModel):
    """Outcome of one upstream call.

    ``not_found`` means the upstream has no data for the key (e.g. a 404 on
    companyfacts); ``error`` means the call itself failed.
    """
    status: FetchStatus
    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is FetchStatus.OK

    @classmethod
    def success(cls, data: Any) -> FetchResult:
        return cls(status=FetchStatus.OK, data=data)

    @classmethod
    def not_found(cls, error: str) -> FetchResult:
        return cls(status=FetchStatus.NOT_FOUND, error=error)

    @classmethod
    def failure(cls, error: str) -> FetchResult:
        return cls(status=FetchStatus.ERROR, error=error)


# ---------------------------------------------------------------------------
# Extracted XBRL facts
# ---------------------------------------------------------------------------

class RawConceptValue(BaseModel):
    """A single point-in-time fact taken from a 10-K or 10-Q."""
    model_config = ConfigDict(frozen=True)

    value: float
    date: str                     # period end, ISO yyyy-mm-dd
    form: str                     # "10-K" | "10-Q"
    fiscal_year: int | None = None
    fiscal_period: str | None = None
    concept: str | None = None    # XBRL tag that produced the value


class EdgarMetrics(BaseModel):
    """Canonical banking concepts resolved from one company-facts document."""

    # Balance sheet: assets
    total_assets: RawConceptValue | None = None
    cash_and_due_from_banks: RawConceptValue | None = None
    interest_bearing_deposits_in_banks: RawConceptValue | None = None
    afs_securities: RawConceptValue | None = None
    htm_securities: RawConceptValue | None = None
    loans: RawConceptValue | None = None
    allowance_for_credit_losses: RawConceptValue | None = None
    premises_and_equipment: RawConceptValue | None = None

    # Balance sheet: liabilities & equity
    total_liabilities: RawConceptValue | None = None
    deposits: RawConceptValue | None = None
    short_term_borrowings: RawConceptValue | None = None
    long_term_debt: RawConceptValue | None = None
    total_equity: RawConceptValue | None = None
    goodwill: RawConceptValue | None = None
    intangible_assets: RawConceptValue | None = None
    preferred_stock: RawConceptValue | None = None

    # Income statement
    interest_income: RawConceptValue | None = None
    interest_expense: RawConceptValue | None = None
    net_interest_income: RawConceptValue | None = None
    noninterest_income: RawConceptValue | None = None
    noninterest_expense: RawConceptValue | None = None
    provision_for_credit_losses: RawConceptValue | None = None
    pre_tax_income: RawConceptValue | None = None
    net_income: RawConceptValue | None = None

    # Cash flow
    operating_cash_flow: RawConceptValue | None = None

    # Capital / per-share
    shares_outstanding: RawConceptValue | None = None
    eps: RawConceptValue | None = None
    dividends_per_share: RawConceptValue | None = None

    # Prior-period balances for averaging
    total_assets_prior: RawConceptValue | None = None
    loans_prior: RawConceptValue | None = None

    def value_of(self, field: str) -> float | None:
        raw = getattr(self, field)
        return raw.value if raw is not None else None

    def date_of(self, field: str) -> str | None:
        raw = getattr(self, field)
        return raw.date if raw is not None else None

    def sourced(self) -> dict[str, str | None]:
        """Which XBRL concept was matched for each populated field."""
        return {
            name: raw.concept
            for name in type(self).model_fields
            if (raw := getattr(self, name)) is not None
        }


# ---------------------------------------------------------------------------
# Calculated metrics
# ---------------------------------------------------------------------------

class CalculatedMetrics(BaseModel):
    """Derived metrics for one bank on one data date.  None means not computable."""

    # Price and market data
    price: float | None = None
    market_cap: float | None = None

    # SEC filing derived values
    total_assets: float | None = None
    total_equity: float | None = None
    tangible_book_value: float | None = None
    net_income: float | None = None
    shares_outstanding: float | None = None
    eps: float | None = None
    book_value_per_share: float | None = None
    tangible_book_value_per_share: float | None = None
    dividends_per_share: float | None = None
    average_assets: float | None = None
    average_loans: float | None = None

    # Valuation ratios
    pni: float | None = None
    ptbvps: float | None = None
    price_to_book: float | None = None
    mkt_cap_se: float | None = None
    ni_tbv: float | None = None
    dividend_payout_ratio: float | None = None
    dividend_yield: float | None = None

    # Profitability
    roe: float | None = None
    rota: float | None = None
    roaa: float | None = None

    # Graham value investing metrics
    graham_number: float | None = None
    graham_mos: float | None = None
    graham_mos_pct: float | None = None

    # Bank-specific ratios
    efficiency_ratio: float | None = None
    acl_to_loans: float | None = None
    provision_to_avg_loans: float | None = None
    loans_to_assets: float | None = None
    deposits_to_assets: float | None = None
    loans_to_deposits: float | None = None
    cash_securities_to_assets: float | None = None
    equity_to_assets: float | None = None
    tce_to_ta: float | None = None

    data_date: str

    @field_validator("*", mode="after")
    @classmethod
    def finite_or_none(cls, v: Any) -> Any:
        if isinstance(v, float) and (math.isnan(v) or math.isinf(v)):
            return None
        return v


class ValidationWarning(BaseModel):
    """One validation check result."""
    rule: str
    severity: str                # "error" | "warning" | "info"
    message: str


# ---------------------------------------------------------------------------
# Refresh results
# ---------------------------------------------------------------------------

class RefreshResult(BaseModel):
    ticker: str
    success: bool
    error: str | None = None
    data_date: str | None = None
    warnings: list[ValidationWarning] = []


class RefreshError(BaseModel):
    ticker: str
    error: str | None = None


class RefreshSummary(BaseModel):
    total: int
    successful: int = 0
    failed: int = 0
    errors: list[RefreshError] = []
    duration_seconds: float = 0.0
