#!/usr/bin/env python3
"""
Operator CLI for the ledger.

Subcommands:
  init-db        create all tables
  seed-chart     seed the standard bilingual chart of accounts
  upsert-rate    record an exchange rate (and its reciprocal)
  sync-rates     import base-currency rates from a JSON rate file
  reconcile      compare cached balances with recomputed history
  trial-balance  print the trial balance as JSON
  balance-sheet  print the balance sheet as JSON
  profit-loss    print the profit & loss as JSON
  cash-flow      print the cash flow statement as JSON

Usage:
  python3 scripts/ledger_cli.py [--config ledger.yaml] [--db-url URL] <command> ...

Configuration comes from the YAML file (if given) and the LEDGER_DATABASE_URL,
LEDGER_BASE_CURRENCY and LEDGER_LOG_LEVEL environment variables.
"""

import argparse
import json
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from uuid import UUID

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from ledger_kernel.config import load_config, override  # noqa: E402
from ledger_kernel.domain.rate_providers import JsonFileRateProvider  # noqa: E402
from ledger_kernel.db.engine import LedgerStore  # noqa: E402
from ledger_kernel.exceptions import LedgerError  # noqa: E402
from ledger_kernel.logging_config import configure_logging  # noqa: E402
from ledger_modules.reporting.statements import render_to_dict  # noqa: E402
from ledger_services.facade import LedgerFacade  # noqa: E402

# Operator actions are attributed to a fixed system actor
SYSTEM_ACTOR = UUID("00000000-0000-0000-0000-000000000001")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Ledger operator commands")
    p.add_argument("--config", type=Path, default=None, help="YAML config file")
    p.add_argument("--db-url", default=None, help="Database URL (overrides config)")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create all tables")
    sub.add_parser("seed-chart", help="Seed the standard chart of accounts")

    rate = sub.add_parser("upsert-rate", help="Record an exchange rate")
    rate.add_argument("from_currency")
    rate.add_argument("to_currency")
    rate.add_argument("rate", type=Decimal)
    rate.add_argument("--date", type=date.fromisoformat, default=None)

    sync = sub.add_parser("sync-rates", help="Import rates from a JSON rate file")
    sync.add_argument("--file", type=Path, required=True, help="JSON rate file")
    sync.add_argument("--source", default="json_file", help="Provider name to record")
    sync.add_argument("--date", type=date.fromisoformat, default=None)

    sub.add_parser("reconcile", help="Check cached balances against history")

    tb = sub.add_parser("trial-balance", help="Print the trial balance")
    tb.add_argument("--as-of", type=date.fromisoformat, default=None)
    tb.add_argument("--currency", default=None)

    bs = sub.add_parser("balance-sheet", help="Print the balance sheet")
    bs.add_argument("--as-of", type=date.fromisoformat, default=None)
    bs.add_argument("--currency", default=None)
    bs.add_argument("--compare", type=date.fromisoformat, default=None)
    bs.add_argument("--include-zero", action="store_true")

    pl = sub.add_parser("profit-loss", help="Print the profit & loss")
    pl.add_argument("start", type=date.fromisoformat)
    pl.add_argument("end", type=date.fromisoformat)
    pl.add_argument("--currency", default=None)

    cf = sub.add_parser("cash-flow", help="Print the cash flow statement")
    cf.add_argument("start", type=date.fromisoformat)
    cf.add_argument("end", type=date.fromisoformat)
    cf.add_argument("--currency", default=None)
    cf.add_argument("--method", choices=("indirect", "direct"), default="indirect")

    return p.parse_args(argv)


def _print_json(payload: object) -> None:
    print(json.dumps(render_to_dict(payload), indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    config = load_config(args.config)
    if args.db_url:
        config = override(config, database_url=args.db_url)
    configure_logging(level=config.log_level, stream=sys.stderr)

    store = LedgerStore.from_config(config)
    facade = LedgerFacade(store, config)
    try:
        if args.command == "init-db":
            store.create_tables()
            print("  Tables created.")
        elif args.command == "seed-chart":
            accounts = facade.seed_standard_chart(SYSTEM_ACTOR)
            print(f"  Seeded {len(accounts)} accounts.")
        elif args.command == "upsert-rate":
            _print_json(
                facade.upsert_rate(
                    args.from_currency,
                    args.to_currency,
                    args.rate,
                    SYSTEM_ACTOR,
                    rate_date=args.date,
                )
            )
        elif args.command == "sync-rates":
            facade.register_rate_provider(JsonFileRateProvider(args.file, name=args.source))
            _print_json(facade.sync_external_rates(args.source, SYSTEM_ACTOR, args.date))
        elif args.command == "reconcile":
            report = facade.reconcile_balances()
            _print_json(report)
            if not report.is_consistent:
                return 2
        elif args.command == "trial-balance":
            _print_json(facade.get_trial_balance(args.as_of, args.currency))
        elif args.command == "balance-sheet":
            _print_json(
                facade.get_balance_sheet(
                    args.as_of,
                    args.currency,
                    comparison_date=args.compare,
                    include_zero_balances=args.include_zero or None,
                )
            )
        elif args.command == "profit-loss":
            _print_json(facade.get_profit_and_loss(args.start, args.end, args.currency))
        elif args.command == "cash-flow":
            _print_json(
                facade.get_cash_flow(args.start, args.end, args.currency, args.method)
            )
    except LedgerError as exc:
        print(f"  ERROR [{exc.code}]: {exc.message}", file=sys.stderr)
        return 1
    finally:
        store.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
