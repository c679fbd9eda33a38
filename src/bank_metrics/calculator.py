"""Banking metrics calculator.

Pure functions over already-extracted scalars.  Every formula follows the
same null-guard policy: it returns None (not 0, NaN or an exception) when a
required input is missing, when a required numerator is zero, or when a
denominator is missing or not strictly positive.  A None is
"not computable", which downstream consumers must not confuse with a
calculated zero.

calculate_all_metrics() wires the formulas together in dependency order:
tangible figures, per-share values and averages first, then the ratios
that consume them.
"""

from __future__ import annotations

import math
from datetime import date

from bank_metrics.financials import _safe
from bank_metrics.models import CalculatedMetrics, EdgarMetrics, ValidationWarning

GRAHAM_MULTIPLIER = 22.5


# ═══════════════════════════════════════════════════════════════════════════
#  Guarded arithmetic
# ═══════════════════════════════════════════════════════════════════════════

def _div(a: float | None, b: float | None) -> float | None:
    """Safe division: None unless *a* is non-zero and *b* is strictly positive."""
    if not a or b is None or b <= 0:
        return None
    return _safe(a / b)


def _pct(a: float | None, b: float | None) -> float | None:
    ratio = _div(a, b)
    return _safe(ratio * 100) if ratio is not None else None


# ═══════════════════════════════════════════════════════════════════════════
#  Book value & market value
# ═══════════════════════════════════════════════════════════════════════════

def calculate_tangible_book_value(
    total_equity: float | None,
    goodwill: float | None = 0,
    intangible_assets: float | None = 0,
) -> float | None:
    """TBV = Total Equity − Goodwill − Intangible Assets."""
    if total_equity is None:
        return None
    return _safe(total_equity - (goodwill or 0) - (intangible_assets or 0))


def calculate_market_cap(price: float | None, shares_outstanding: float | None) -> float | None:
    """Market Cap = Share Price × Shares Outstanding."""
    if not price or not shares_outstanding or price <= 0 or shares_outstanding <= 0:
        return None
    return _safe(price * shares_outstanding)


def calculate_book_value_per_share(
    total_equity: float | None,
    shares_outstanding: float | None,
) -> float | None:
    return _div(total_equity, shares_outstanding)


def calculate_tangible_book_value_per_share(
    tangible_book_value: float | None,
    shares_outstanding: float | None,
) -> float | None:
    return _div(tangible_book_value, shares_outstanding)


def calculate_average(current: float | None, prior: float | None) -> float | None:
    """(current + prior) / 2, or *current* alone when no prior value exists.

    The single-period fallback understates a true average when the balance
    is growing quickly.
    """
    if current is None:
        return None
    if prior is None:
        return _safe(current)
    return _safe((current + prior) / 2)


# ═══════════════════════════════════════════════════════════════════════════
#  Valuation ratios
# ═══════════════════════════════════════════════════════════════════════════

def calculate_pni(market_cap: float | None, net_income: float | None) -> float | None:
    """Price to Net Income: Market Cap / Net Income.

    Undefined for loss-making banks (net income must be positive).
    """
    return _div(market_cap, net_income)


def calculate_ptbvps(
    price: float | None,
    tangible_book_value: float | None,
    shares_outstanding: float | None,
) -> float | None:
    """Price to Tangible Book Value per Share: Price / (TBV / Shares)."""
    tbv_per_share = calculate_tangible_book_value_per_share(tangible_book_value, shares_outstanding)
    return _div(price, tbv_per_share)


def calculate_price_to_book(price: float | None, book_value_per_share: float | None) -> float | None:
    return _div(price, book_value_per_share)


def calculate_mkt_cap_se(market_cap: float | None, total_equity: float | None) -> float | None:
    """Market Cap / Shareholder Equity."""
    return _div(market_cap, total_equity)


def calculate_ni_tbv(net_income: float | None, tangible_book_value: float | None) -> float | None:
    """Net Income / Tangible Book Value (as a fraction, not a percentage)."""
    return _div(net_income, tangible_book_value)


def calculate_dividend_payout_ratio(
    dividends_per_share: float | None,
    eps: float | None,
) -> float | None:
    """DPS / EPS × 100."""
    return _pct(dividends_per_share, eps)


def calculate_dividend_yield(dividends_per_share: float | None, price: float | None) -> float | None:
    """DPS / Price × 100."""
    return _pct(dividends_per_share, price)


# ═══════════════════════════════════════════════════════════════════════════
#  Profitability
# ═══════════════════════════════════════════════════════════════════════════

def calculate_roe(net_income: float | None, total_equity: float | None) -> float | None:
    """Return on Equity: Net Income / Total Equity × 100."""
    return _pct(net_income, total_equity)


def calculate_rota(net_income: float | None, total_assets: float | None) -> float | None:
    """Return on Total Assets: Net Income / Total Assets × 100."""
    return _pct(net_income, total_assets)


def calculate_roaa(net_income: float | None, average_assets: float | None) -> float | None:
    """Return on Average Assets: Net Income / Average Assets × 100."""
    return _pct(net_income, average_assets)


# ═══════════════════════════════════════════════════════════════════════════
#  Graham value metrics
# ═══════════════════════════════════════════════════════════════════════════

def calculate_graham_number(eps: float | None, book_value_per_share: float | None) -> float | None:
    """√(22.5 × EPS × BVPS).

    Only defined for profitable banks with positive book value.
    """
    if not eps or not book_value_per_share or eps <= 0 or book_value_per_share <= 0:
        return None
    return _safe(math.sqrt(GRAHAM_MULTIPLIER * eps * book_value_per_share))


def calculate_graham_mos(graham_number: float | None, current_price: float | None) -> float | None:
    """Graham margin of safety in dollars: Graham Number − Price."""
    if not graham_number or not current_price or current_price <= 0:
        return None
    return _safe(graham_number - current_price)


def calculate_graham_mos_pct(graham_number: float | None, current_price: float | None) -> float | None:
    """(Graham Number − Price) / Price × 100."""
    mos = calculate_graham_mos(graham_number, current_price)
    if mos is None:
        return None
    return _safe(mos / current_price * 100)


# ═══════════════════════════════════════════════════════════════════════════
#  Bank-specific ratios
# ═══════════════════════════════════════════════════════════════════════════

def calculate_efficiency_ratio(
    noninterest_expense: float | None,
    net_interest_income: float | None,
    noninterest_income: float | None,
) -> float | None:
    """Noninterest Expense / (NII + Noninterest Income) × 100."""
    if net_interest_income is None and noninterest_income is None:
        return None
    total_revenue = (net_interest_income or 0) + (noninterest_income or 0)
    return _pct(noninterest_expense, total_revenue)


def calculate_acl_to_loans(allowance: float | None, loans: float | None) -> float | None:
    return _pct(allowance, loans)


def calculate_provision_to_avg_loans(provision: float | None, average_loans: float | None) -> float | None:
    return _pct(provision, average_loans)


def calculate_loans_to_assets(loans: float | None, total_assets: float | None) -> float | None:
    return _pct(loans, total_assets)


def calculate_deposits_to_assets(deposits: float | None, total_assets: float | None) -> float | None:
    return _pct(deposits, total_assets)


def calculate_loans_to_deposits(loans: float | None, deposits: float | None) -> float | None:
    return _pct(loans, deposits)


def calculate_cash_securities_to_assets(
    cash: float | None,
    afs_securities: float | None,
    htm_securities: float | None,
    total_assets: float | None,
) -> float | None:
    """(Cash + AFS + HTM) / Total Assets × 100; missing components count as 0."""
    parts = [p for p in (cash, afs_securities, htm_securities) if p is not None]
    if not parts:
        return None
    return _pct(sum(parts), total_assets)


def calculate_equity_to_assets(total_equity: float | None, total_assets: float | None) -> float | None:
    return _pct(total_equity, total_assets)


def calculate_tce_to_ta(
    total_equity: float | None,
    goodwill: float | None,
    intangible_assets: float | None,
    preferred_stock: float | None,
    total_assets: float | None,
) -> float | None:
    """Tangible Common Equity / Tangible Assets × 100.

    TCE = Equity − Goodwill − Intangibles − Preferred
    TA  = Assets − Goodwill − Intangibles
    """
    if total_equity is None or total_assets is None:
        return None
    intangibles = (goodwill or 0) + (intangible_assets or 0)
    tce = total_equity - intangibles - (preferred_stock or 0)
    return _pct(tce, total_assets - intangibles)


# ═══════════════════════════════════════════════════════════════════════════
#  Full calculation
# ═══════════════════════════════════════════════════════════════════════════

def calculate_all_metrics(
    edgar_metrics: EdgarMetrics,
    current_price: float | None,
) -> CalculatedMetrics:
    """Calculate every metric for one bank from its extracted facts."""
    m = edgar_metrics
    price = current_price if current_price and current_price > 0 else None

    total_assets = m.value_of("total_assets")
    total_equity = m.value_of("total_equity")
    net_income = m.value_of("net_income")
    shares = m.value_of("shares_outstanding")
    eps = m.value_of("eps")
    dps = m.value_of("dividends_per_share")
    goodwill = m.value_of("goodwill") or 0
    intangibles = m.value_of("intangible_assets") or 0
    loans = m.value_of("loans")
    deposits = m.value_of("deposits")

    # Derived values
    tangible_book_value = calculate_tangible_book_value(total_equity, goodwill, intangibles)
    market_cap = calculate_market_cap(price, shares)
    bvps = calculate_book_value_per_share(total_equity, shares)
    tbvps = calculate_tangible_book_value_per_share(tangible_book_value, shares)
    average_assets = calculate_average(total_assets, m.value_of("total_assets_prior"))
    average_loans = calculate_average(loans, m.value_of("loans_prior"))

    graham_number = calculate_graham_number(eps, bvps)

    # Most recent data date: net income, then equity, then assets
    data_date = (
        m.date_of("net_income")
        or m.date_of("total_equity")
        or m.date_of("total_assets")
        or date.today().isoformat()
    )

    return CalculatedMetrics(
        price=price,
        market_cap=market_cap,
        total_assets=total_assets,
        total_equity=total_equity,
        tangible_book_value=tangible_book_value,
        net_income=net_income,
        shares_outstanding=shares,
        eps=eps,
        book_value_per_share=bvps,
        tangible_book_value_per_share=tbvps,
        dividends_per_share=dps,
        average_assets=average_assets,
        average_loans=average_loans,
        pni=calculate_pni(market_cap, net_income),
        ptbvps=calculate_ptbvps(price, tangible_book_value, shares),
        price_to_book=calculate_price_to_book(price, bvps),
        mkt_cap_se=calculate_mkt_cap_se(market_cap, total_equity),
        ni_tbv=calculate_ni_tbv(net_income, tangible_book_value),
        dividend_payout_ratio=calculate_dividend_payout_ratio(dps, eps),
        dividend_yield=calculate_dividend_yield(dps, price),
        roe=calculate_roe(net_income, total_equity),
        rota=calculate_rota(net_income, total_assets),
        roaa=calculate_roaa(net_income, average_assets),
        graham_number=graham_number,
        graham_mos=calculate_graham_mos(graham_number, price),
        graham_mos_pct=calculate_graham_mos_pct(graham_number, price),
        efficiency_ratio=calculate_efficiency_ratio(
            m.value_of("noninterest_expense"),
            m.value_of("net_interest_income"),
            m.value_of("noninterest_income"),
        ),
        acl_to_loans=calculate_acl_to_loans(m.value_of("allowance_for_credit_losses"), loans),
        provision_to_avg_loans=calculate_provision_to_avg_loans(
            m.value_of("provision_for_credit_losses"), average_loans,
        ),
        loans_to_assets=calculate_loans_to_assets(loans, total_assets),
        deposits_to_assets=calculate_deposits_to_assets(deposits, total_assets),
        loans_to_deposits=calculate_loans_to_deposits(loans, deposits),
        cash_securities_to_assets=calculate_cash_securities_to_assets(
            m.value_of("cash_and_due_from_banks"),
            m.value_of("afs_securities"),
            m.value_of("htm_securities"),
            total_assets,
        ),
        equity_to_assets=calculate_equity_to_assets(total_equity, total_assets),
        tce_to_ta=calculate_tce_to_ta(
            total_equity, goodwill, intangibles, m.value_of("preferred_stock"), total_assets,
        ),
        data_date=data_date,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  Validation
# ═══════════════════════════════════════════════════════════════════════════

# (min, max) in percent; values outside usually mean a mis-tagged concept
OUTLIER_THRESHOLDS: dict[str, tuple[float, float]] = {
    "efficiency_ratio": (20, 150),
    "deposits_to_assets": (10, 100),
    "equity_to_assets": (1, 50),
    "roe": (-100, 100),
    "roaa": (-10, 10),
}


def validate_metrics(metrics: CalculatedMetrics) -> list[ValidationWarning]:
    """Flag ratios outside plausible banking ranges.  Values are left as-is."""
    warnings: list[ValidationWarning] = []
    for field, (lo, hi) in OUTLIER_THRESHOLDS.items():
        value = getattr(metrics, field)
        if value is None or lo <= value <= hi:
            continue
        warnings.append(ValidationWarning(
            rule=f"{field}_range",
            severity="warning",
            message=f"{field} value {value:.2f}% outside range [{lo}, {hi}]",
        ))

    if (
        metrics.tangible_book_value is not None
        and metrics.total_equity is not None
        and metrics.tangible_book_value < 0 < metrics.total_equity
    ):
        warnings.append(ValidationWarning(
            rule="negative_tangible_book_value",
            severity="info",
            message="Goodwill and intangibles exceed total equity",
        ))
    return warnings
