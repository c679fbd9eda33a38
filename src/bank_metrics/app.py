"""Bank metrics HTTP API.

Read endpoints over the MongoDB snapshots plus manual refresh triggers
that run in the background and answer immediately.

Run:  python -m bank_metrics.app
Open: http://localhost:{PORT}/api/banks  (default 3001)
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from bank_metrics.db import get_store, is_available as mongo_available
from bank_metrics.refresh import refresh_all_banks, refresh_bank_data

log = logging.getLogger(__name__)

app = FastAPI(title="Bank Metrics")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ═══════════════════════════════════════════════════════════════════════════
#  Presentation
# ═══════════════════════════════════════════════════════════════════════════

# Dollar amounts reported in millions
MILLIONS_FIELDS = {
    "market_cap", "total_assets", "total_equity", "tangible_book_value",
    "net_income", "average_assets", "average_loans",
}

# Keys whose camelCase form is not the mechanical one
_KEY_OVERRIDES = {
    "name": "bankName",
    "mkt_cap_se": "mktCapSE",
    "ni_tbv": "niTBV",
    "graham_number": "grahamNum",
    "graham_mos": "grahamMoS",
    "graham_mos_pct": "grahamMoSPct",
    "tce_to_ta": "tceToTA",
}

_HIDDEN_KEYS = {"_id", "bank_id"}


def _camel(key: str) -> str:
    if key in _KEY_OVERRIDES:
        return _KEY_OVERRIDES[key]
    head, *rest = key.split("_")
    return head + "".join(part.capitalize() for part in rest)


def to_api_record(doc: dict) -> dict:
    """Snapshot document → API shape (camelCase keys, amounts in millions)."""
    record: dict = {}
    for key, value in doc.items():
        if key in _HIDDEN_KEYS:
            continue
        if key in MILLIONS_FIELDS and value is not None:
            value = value / 1_000_000
        elif isinstance(value, datetime):
            value = value.isoformat()
        record[_camel(key)] = value
    return record


def _require_store():
    store = get_store()
    if store is None:
        raise HTTPException(status_code=503, detail="MongoDB not configured. Add MONGODB_URI to .env")
    return store


# ═══════════════════════════════════════════════════════════════════════════
#  Health check
# ═══════════════════════════════════════════════════════════════════════════

@app.get("/health")
async def health():
    return {
        "status": "ok",
        "mongodb": "connected" if mongo_available() else "unavailable",
    }


# ═══════════════════════════════════════════════════════════════════════════
#  Banks
# ═══════════════════════════════════════════════════════════════════════════

@app.get("/api/banks")
async def list_banks():
    """Latest metrics for every bank, largest market cap first."""
    store = _require_store()
    docs = store.list_latest_metrics()
    docs.sort(key=lambda d: (d.get("market_cap") is None, -(d.get("market_cap") or 0)))
    banks = [to_api_record(d) for d in docs]
    return {
        "success": True,
        "count": len(banks),
        "data": banks,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/api/banks/{ticker}")
async def get_bank(ticker: str):
    store = _require_store()
    doc = store.get_latest_metrics(ticker.upper())
    if doc is None:
        raise HTTPException(status_code=404, detail="Bank not found")
    return {"success": True, "data": to_api_record(doc)}


@app.get("/api/banks/{ticker}/history")
async def bank_history(ticker: str, limit: int = 10):
    """Snapshots for one bank, newest first."""
    store = _require_store()
    docs = store.get_history(ticker.upper(), limit=max(limit, 1))
    return {
        "success": True,
        "ticker": ticker.upper(),
        "count": len(docs),
        "data": [to_api_record(d) for d in docs],
    }


# ═══════════════════════════════════════════════════════════════════════════
#  Manual refresh triggers (run as background tasks)
# ═══════════════════════════════════════════════════════════════════════════

# One refresh at a time: taken by the trigger, released when the task ends
_refresh_lock = threading.Lock()


def _claim_refresh():
    if not _refresh_lock.acquire(blocking=False):
        raise HTTPException(status_code=409, detail="A data refresh is already running")


def _run_refresh_all():
    try:
        summary = refresh_all_banks()
        log.info("Manual refresh completed: %s", summary.model_dump_json())
    finally:
        _refresh_lock.release()


def _run_refresh_bank(ticker: str):
    try:
        result = refresh_bank_data(ticker)
        log.info("Manual refresh for %s completed: %s", ticker, result.model_dump_json())
    finally:
        _refresh_lock.release()


@app.post("/api/banks/refresh")
async def trigger_refresh_all(bg: BackgroundTasks):
    _claim_refresh()
    bg.add_task(_run_refresh_all)
    return {"success": True, "message": "Data refresh started", "status": "processing"}


@app.post("/api/banks/{ticker}/refresh")
async def trigger_refresh_bank(ticker: str, bg: BackgroundTasks):
    _claim_refresh()
    bg.add_task(_run_refresh_bank, ticker.upper())
    return {
        "success": True,
        "message": f"Data refresh started for {ticker.upper()}",
        "status": "processing",
    }


if __name__ == "__main__":
    import uvicorn

    from bank_metrics.config import get_config

    config = get_config()
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    print(f"\n  Bank Metrics API → http://localhost:{config.port}\n")
    uvicorn.run(app, host="0.0.0.0", port=config.port, log_level="info")
