#!/usr/bin/env python3
"""Standalone CLI for the bank metrics pipeline.

Usage: run any of these from the project root:

  # Refresh every configured bank (prints a JSON summary, exit 1 on any failure)
  python bank_tools.py refresh-all

  # Refresh a single bank
  python bank_tools.py refresh JPM

  # Show the banking concepts extracted from SEC company facts
  python bank_tools.py facts JPM

  # Latest closing price from marketstack
  python bank_tools.py price JPM

  # Test MongoDB connection
  python bank_tools.py mongo
"""

from __future__ import annotations

import logging
import os
import sys

# Ensure the src directory is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))


def _header(title: str):
    print(f"\n{'='*60}")
    print(f"  {title}")
    print(f"{'='*60}\n")


def _setup_logging():
    from bank_metrics.config import get_config
    logging.basicConfig(
        level=get_config().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_refresh_all() -> int:
    """Refresh all configured banks sequentially."""
    from bank_metrics.refresh import refresh_all_banks
    summary = refresh_all_banks()
    print(summary.model_dump_json(indent=2))
    return 1 if summary.failed > 0 else 0


def cmd_refresh(ticker: str) -> int:
    """Refresh one bank."""
    _header(f"Refresh: {ticker.upper()}")
    from bank_metrics.refresh import refresh_bank_data
    result = refresh_bank_data(ticker)
    print(result.model_dump_json(indent=2))
    return 0 if result.success else 1


def cmd_facts(ticker: str) -> int:
    """Extract banking concepts straight from SEC (nothing is stored)."""
    _header(f"Banking facts: {ticker.upper()}")
    from bank_metrics.financials import extract_banking_metrics
    from bank_metrics.sec_client import get_sec_client

    client = get_sec_client()
    cik = client.resolve_cik(ticker)
    if not cik:
        print("  Company not found.")
        return 1
    facts = client.get_company_facts(cik)
    if not facts.ok:
        print(f"  [FAIL] {facts.status.value}: {facts.error}")
        return 1

    metrics = extract_banking_metrics(facts.data)
    print(f"  CIK: {cik}  ({facts.data.get('entityName', '?')})\n")
    print(f"  {'Field':36s}  {'Value':>20s}  {'Date':10s}  {'Form':5s}  Concept")
    print(f"  {'-'*36}  {'-'*20}  {'-'*10}  {'-'*5}  {'-'*30}")
    for name in type(metrics).model_fields:
        raw = getattr(metrics, name)
        if raw is None:
            print(f"  {name:36s}  {'-':>20s}")
            continue
        print(f"  {name:36s}  {raw.value:>20,.2f}  {raw.date:10s}  {raw.form:5s}  {raw.concept}")
    return 0


def cmd_price(ticker: str) -> int:
    """Fetch the latest closing price."""
    _header(f"Price: {ticker.upper()}")
    from bank_metrics.price_client import get_current_price
    price = get_current_price(ticker)
    if price is None:
        print("  No price available (check MARKETSTACK_API_KEY).")
        return 1
    print(f"  {ticker.upper()}: {price:.2f}")
    return 0


def cmd_mongo() -> int:
    """Test MongoDB connection and show stored data counts."""
    _header("MongoDB Connection Test")
    from bank_metrics.config import get_config
    cfg = get_config()
    if not cfg.mongodb_uri:
        print("  MONGODB_URI is not set in .env")
        print("  Refreshes need it; nothing can be stored without it.")
        return 1

    print(f"  URI: {cfg.mongodb_uri[:40]}...")
    from bank_metrics.db import get_store
    store = get_store()
    if store is None:
        print("  [FAIL] Could not connect (see log above)")
        return 1

    print(f"  [PASS] Connected to {cfg.mongodb_database}, indexes ensured")
    print("\n  Existing data:")
    print(f"    Banks:     {store.banks.count_documents({})}")
    print(f"    Snapshots: {store.metrics.count_documents({})}")
    return 0


COMMANDS = {
    "refresh-all": (cmd_refresh_all, ""),
    "refresh": (cmd_refresh, "ticker"),
    "facts": (cmd_facts, "ticker"),
    "price": (cmd_price, "ticker"),
    "mongo": (cmd_mongo, ""),
}


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv or argv[0] in ("-h", "--help", "help"):
        print("\nBank Metrics: Pipeline Tools")
        print("=" * 44)
        print("\nUsage: python bank_tools.py <command> [args]\n")
        print("Commands:")
        for cmd, (_, args) in COMMANDS.items():
            print(f"  {cmd:16s}  {args}")
        print()
        return 0

    cmd_name = argv[0].lower()
    if cmd_name not in COMMANDS:
        print(f"Unknown command: {cmd_name}")
        print(f"Available: {', '.join(COMMANDS.keys())}")
        return 2

    fn, args = COMMANDS[cmd_name]
    if args and len(argv) < 2:
        print(f"Usage: python bank_tools.py {cmd_name} {args}")
        return 2

    _setup_logging()
    if args:
        return fn(argv[1])
    return fn()


if __name__ == "__main__":
    sys.exit(main())
