"""MongoDB persistence layer for banks and their dated metrics snapshots.

Collections:
  - banks        : one identity record per ticker (unique ``ticker``)
  - bank_metrics : one snapshot per (bank_id, data_date); re-running a
                    refresh for the same period overwrites the snapshot

get_store() returns None when MONGODB_URI is not set or the server is
unreachable, so read paths can degrade instead of crashing.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import PyMongoError

from bank_metrics.models import Bank, CalculatedMetrics, CompanyInfo, ValidationWarning

log = logging.getLogger(__name__)


class MetricsStore:
    """Banks + metrics snapshots over a pymongo Database."""

    def __init__(self, database: Any):
        self.db = database
        self.banks = database["banks"]
        self.metrics = database["bank_metrics"]

    def ensure_indexes(self):
        self.banks.create_index("ticker", unique=True)
        self.metrics.create_index(
            [("bank_id", ASCENDING), ("data_date", ASCENDING)], unique=True,
        )
        self.metrics.create_index([("ticker", ASCENDING), ("data_date", DESCENDING)])

    # ── Banks ──────────────────────────────────────────────────────────

    @staticmethod
    def _to_bank(doc: dict | None) -> Bank | None:
        if doc is None:
            return None
        return Bank(
            id=str(doc["_id"]),
            ticker=doc["ticker"],
            cik=doc["cik"],
            name=doc.get("name") or "",
            exchange=doc.get("exchange"),
        )

    def get_bank(self, ticker: str) -> Bank | None:
        return self._to_bank(self.banks.find_one({"ticker": ticker.upper()}))

    def list_banks(self) -> list[Bank]:
        return [self._to_bank(d) for d in self.banks.find().sort("ticker", ASCENDING)]

    def create_bank(self, ticker: str, info: CompanyInfo) -> Bank:
        """Insert the identity record for *ticker*, or return the existing one."""
        doc = self.banks.find_one_and_update(
            {"ticker": ticker.upper()},
            {"$setOnInsert": {
                "ticker": ticker.upper(),
                "cik": info.cik,
                "name": info.name,
                "exchange": info.exchange,
                "sic_code": info.sic_code,
                "created_at": datetime.now(timezone.utc),
            }},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return self._to_bank(doc)

    # ── Metrics snapshots ─────────────────────────────────────────────

    def upsert_metrics(
        self,
        bank: Bank,
        metrics: CalculatedMetrics,
        warnings: list[ValidationWarning] | None = None,
        sourced: dict[str, str | None] | None = None,
    ):
        """Insert or overwrite the snapshot for (bank, metrics.data_date).

        *sourced* maps each extracted field to the XBRL concept it came from.
        """
        data = metrics.model_dump()
        data["bank_id"] = bank.id
        data["ticker"] = bank.ticker
        data["name"] = bank.name
        data["exchange"] = bank.exchange
        data["warnings"] = [w.model_dump() for w in warnings or []]
        data["sourced"] = dict(sourced or {})
        data["updated_at"] = datetime.now(timezone.utc)
        self.metrics.update_one(
            {"bank_id": bank.id, "data_date": metrics.data_date},
            {"$set": data},
            upsert=True,
        )

    def get_latest_metrics(self, ticker: str) -> dict | None:
        cursor = (
            self.metrics.find({"ticker": ticker.upper()}, {"_id": 0})
            .sort("data_date", DESCENDING)
            .limit(1)
        )
        return next(iter(cursor), None)

    def list_latest_metrics(self) -> list[dict]:
        """Latest snapshot for every bank that has at least one."""
        latest: list[dict] = []
        for bank in self.list_banks():
            doc = self.get_latest_metrics(bank.ticker)
            if doc is not None:
                latest.append(doc)
        return latest

    def get_history(self, ticker: str, limit: int = 10) -> list[dict]:
        """Snapshots for *ticker*, newest first."""
        return list(
            self.metrics.find({"ticker": ticker.upper()}, {"_id": 0})
            .sort("data_date", DESCENDING)
            .limit(limit)
        )


# ═══════════════════════════════════════════════════════════════════════════
#  Lazy connection
# ═══════════════════════════════════════════════════════════════════════════

_client: Any = None
_store: MetricsStore | None = None
_available: bool | None = None


def get_store() -> MetricsStore | None:
    """Lazy-init MongoDB connection. Returns None if unavailable."""
    global _client, _store, _available
    if _available is False:
        return None
    if _store is not None:
        return _store

    from bank_metrics.config import get_config
    config = get_config()
    if not config.mongodb_uri:
        log.info("MONGODB_URI not set, running without persistence")
        _available = False
        return None

    try:
        _client = MongoClient(config.mongodb_uri, serverSelectionTimeoutMS=5000)
        _client.admin.command("ping")
        store = MetricsStore(_client[config.mongodb_database])
        store.ensure_indexes()
    except PyMongoError as exc:
        log.warning("MongoDB unavailable: %s", exc)
        _available = False
        _client = None
        return None

    _store = store
    _available = True
    log.info("MongoDB connected on %s", config.mongodb_database)
    return _store


def is_available() -> bool:
    """Check if MongoDB is connected."""
    get_store()
    return _available is True
