"""Banking concept extraction from SEC EDGAR company facts.

Data flow:
  1. SECClient.get_company_facts() → raw companyfacts JSON
  2. facts_to_dataframe() → one row per reported fact for a concept/unit
  3. get_latest_concept_value() → latest 10-K value (10-Q as fallback);
     period concepts resolve to a full-year or trailing-twelve-month figure
  4. extract_banking_metrics() → walk fallback chains → EdgarMetrics

Annual filings always win over quarterly ones, even when the quarterly
figure is more recent: audited full-year numbers are preferred to interim
ones.  Structural gaps in the document (missing taxonomy, concept or unit)
resolve to None rather than raising.
"""

from __future__ import annotations

import logging
import math
from typing import Any

import pandas as pd

from bank_metrics.models import EdgarMetrics, RawConceptValue
from bank_metrics.xbrl_mappings import (
    AVERAGED_FIELDS,
    BANK_CONCEPTS,
    DURATION_FIELDS,
    USD,
    ConceptEntry,
)

log = logging.getLogger(__name__)

# Forms in order of preference
_FORM_PREFERENCE = ("10-K", "10-Q")

_FACT_COLUMNS = ["val", "end", "form", "fy", "fp", "start", "filed", "accn"]

# Period length in days: a quarter is at most 100, a full year at least 300
_QUARTER_MAX_DAYS = 100
_ANNUAL_MIN_DAYS = 300
# Four summed quarters must cover about one year
_TTM_MAX_SPAN_DAYS = 380


# ═══════════════════════════════════════════════════════════════════════════
#  Safe numeric helpers
# ═══════════════════════════════════════════════════════════════════════════

def _safe(v: Any) -> float | None:
    """Convert a value to float, returning None for invalid/missing values."""
    if v is None:
        return None
    if hasattr(v, "item"):
        v = v.item()
    try:
        f = float(v)
        if math.isnan(f) or math.isinf(f):
            return None
        return f
    except (TypeError, ValueError):
        return None


def _safe_int(v: Any) -> int | None:
    f = _safe(v)
    return int(f) if f is not None else None


def _safe_str(v: Any) -> str | None:
    if v is None or (isinstance(v, float) and math.isnan(v)):
        return None
    return str(v)


# ═══════════════════════════════════════════════════════════════════════════
#  Facts → DataFrame
# ═══════════════════════════════════════════════════════════════════════════

def facts_to_dataframe(
    company_facts: dict | None,
    concept: str,
    taxonomy: str = "us-gaap",
    unit: str = USD,
) -> pd.DataFrame:
    """Flatten ``facts[taxonomy][concept].units[unit]`` into a DataFrame.

    Columns: val, end, form, fy, fp, start, filed, accn (missing keys are NaN).
    Returns an empty DataFrame when any level of the path is absent.
    """
    if not isinstance(company_facts, dict):
        return pd.DataFrame(columns=_FACT_COLUMNS)
    concept_data = (company_facts.get("facts") or {}).get(taxonomy, {}).get(concept)
    if not isinstance(concept_data, dict):
        return pd.DataFrame(columns=_FACT_COLUMNS)
    entries = (concept_data.get("units") or {}).get(unit)
    if not isinstance(entries, list) or not entries:
        return pd.DataFrame(columns=_FACT_COLUMNS)

    rows = [e for e in entries if isinstance(e, dict)]
    df = pd.DataFrame(rows)
    for col in _FACT_COLUMNS:
        if col not in df.columns:
            df[col] = None
    return df


def _prepare(df: pd.DataFrame) -> pd.DataFrame:
    """Rows with a numeric value and a parseable end date, newest first.

    Adds ``_val``, ``_end``, ``_start`` and ``_days`` (period length, NaN
    for point-in-time facts).
    """
    if df.empty:
        return df
    out = df.copy()
    out["_val"] = pd.to_numeric(out["val"], errors="coerce")
    out["_end"] = pd.to_datetime(out["end"], errors="coerce")
    out["_start"] = pd.to_datetime(out["start"], errors="coerce")
    out["_days"] = (out["_end"] - out["_start"]).dt.days
    out = out.dropna(subset=["_val", "_end"])
    # Stable sort keeps the filing order for facts sharing an end date
    return out.sort_values("_end", ascending=False, kind="stable")


def _candidates(df: pd.DataFrame, form: str) -> pd.DataFrame:
    if df.empty:
        return df
    return df[df["form"] == form]


def _to_raw_value(row: pd.Series, concept: str) -> RawConceptValue | None:
    value = _safe(row["_val"])
    if value is None:
        return None
    return RawConceptValue(
        value=value,
        date=row["_end"].date().isoformat(),
        form=str(row["form"]),
        fiscal_year=_safe_int(row.get("fy")),
        fiscal_period=_safe_str(row.get("fp")),
        concept=concept,
    )


def _by_form_preference(df: pd.DataFrame, concept: str) -> RawConceptValue | None:
    for form in _FORM_PREFERENCE:
        matches = _candidates(df, form)
        if not matches.empty:
            return _to_raw_value(matches.iloc[0], concept)
    return None


# ═══════════════════════════════════════════════════════════════════════════
#  Period (duration) concepts
# ═══════════════════════════════════════════════════════════════════════════

def _trailing_twelve_months(df: pd.DataFrame, concept: str) -> RawConceptValue | None:
    """Sum of the four latest distinct quarters, or None if they don't cover a year."""
    quarters = df[df["form"].isin(_FORM_PREFERENCE) & (df["_days"] <= _QUARTER_MAX_DAYS)]
    if len(quarters) < 4:
        return None
    # Later filings repeat earlier quarters as comparatives; the newest filing wins
    quarters = quarters.assign(_filed=pd.to_datetime(quarters["filed"], errors="coerce"))
    quarters = quarters.sort_values(["_end", "_filed"], ascending=False)
    quarters = quarters.drop_duplicates(subset="_end", keep="first").head(4)
    if len(quarters) < 4:
        return None

    span = (quarters["_end"].iloc[0] - quarters["_start"].iloc[-1]).days
    if span > _TTM_MAX_SPAN_DAYS:
        log.debug("Latest quarters of %s span %d days, no TTM", concept, span)
        return None

    total = _safe(quarters["_val"].sum())
    if total is None:
        return None
    latest = quarters.iloc[0]
    return RawConceptValue(
        value=total,
        date=latest["_end"].date().isoformat(),
        form=str(latest["form"]),
        fiscal_year=_safe_int(latest.get("fy")),
        fiscal_period="TTM",
        concept=concept,
    )


def _latest_duration_value(df: pd.DataFrame, concept: str) -> RawConceptValue | None:
    """Full-year figure for an income-statement or cash-flow concept.

    Order: the latest 10-K fact spanning a full year, then a trailing
    twelve months roll-up of quarterly facts, then facts that carry no
    start date (by the usual form preference).  Quarter and year-to-date
    facts are never returned as they are.
    """
    if df.empty:
        return None
    annual = _candidates(df, "10-K")
    annual = annual[annual["_days"] >= _ANNUAL_MIN_DAYS]
    if not annual.empty:
        return _to_raw_value(annual.iloc[0], concept)

    ttm = _trailing_twelve_months(df, concept)
    if ttm is not None:
        return ttm

    return _by_form_preference(df[df["_days"].isna()], concept)


# ═══════════════════════════════════════════════════════════════════════════
#  Single-concept lookup
# ═══════════════════════════════════════════════════════════════════════════

def get_latest_concept_value(
    company_facts: dict | None,
    concept_name: str,
    taxonomy: str = "us-gaap",
    unit: str = USD,
    duration: bool = False,
) -> RawConceptValue | None:
    """Latest reported value for *concept_name*, preferring 10-K over 10-Q.

    With *duration* set the value is a full-year or TTM figure (see
    _latest_duration_value).
    """
    try:
        df = _prepare(facts_to_dataframe(company_facts, concept_name, taxonomy, unit))
        if duration:
            return _latest_duration_value(df, concept_name)
        return _by_form_preference(df, concept_name)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        log.warning("Error extracting concept %s: %s", concept_name, exc)
    return None


def get_prior_concept_value(
    company_facts: dict | None,
    concept_name: str,
    taxonomy: str = "us-gaap",
    unit: str = USD,
    *,
    before: str,
) -> RawConceptValue | None:
    """Latest value whose period ends strictly before *before* (ISO date).

    Same 10-K-over-10-Q preference as get_latest_concept_value().
    """
    try:
        cutoff = pd.Timestamp(before)
        df = _prepare(facts_to_dataframe(company_facts, concept_name, taxonomy, unit))
        if df.empty:
            return None
        return _by_form_preference(df[df["_end"] < cutoff], concept_name)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        log.warning("Error extracting prior value for %s: %s", concept_name, exc)
    return None


# ═══════════════════════════════════════════════════════════════════════════
#  Fallback chains
# ═══════════════════════════════════════════════════════════════════════════

def resolve_concept(
    company_facts: dict | None,
    chain: list[ConceptEntry],
    duration: bool = False,
) -> RawConceptValue | None:
    """Try each concept in order; the first non-None value wins."""
    for entry in chain:
        found = get_latest_concept_value(
            company_facts, entry.xbrl_concept, entry.taxonomy, entry.unit, duration,
        )
        if found is not None:
            return found
    return None


def _prior_for(
    company_facts: dict | None,
    chain: list[ConceptEntry],
    current: RawConceptValue | None,
) -> RawConceptValue | None:
    """Prior-period value using the same concept that produced *current*."""
    if current is None:
        return None
    for entry in chain:
        if entry.xbrl_concept == current.concept:
            return get_prior_concept_value(
                company_facts, entry.xbrl_concept, entry.taxonomy, entry.unit,
                before=current.date,
            )
    return None


def extract_banking_metrics(company_facts: dict | None) -> EdgarMetrics:
    """Resolve every canonical banking concept from a companyfacts document."""
    resolved: dict[str, RawConceptValue | None] = {}
    for field, chain in BANK_CONCEPTS.items():
        resolved[field] = resolve_concept(company_facts, chain, field in DURATION_FIELDS)

    for field, prior_field in AVERAGED_FIELDS.items():
        resolved[prior_field] = _prior_for(
            company_facts, BANK_CONCEPTS[field], resolved[field],
        )

    metrics = EdgarMetrics(**resolved)
    found = sum(1 for v in resolved.values() if v is not None)
    log.debug("Resolved %d/%d banking concepts", found, len(resolved))
    return metrics
