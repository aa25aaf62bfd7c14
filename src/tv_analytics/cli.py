from __future__ import annotations

import argparse
import dataclasses
import sys
from typing import List, Optional

import pandas as pd

from tv_analytics.config.settings import DISCOUNT_POLICIES, ZERO_RATING_POLICIES, load_settings
from tv_analytics.data.store import ListingStore
from tv_analytics.exceptions.errors import TVAnalyticsError
from tv_analytics.export.exporter import export_report
from tv_analytics.logging.logger import get_logger, init_logging
from tv_analytics.queries.catalog import QueryResult, list_queries, run_all, run_query
from tv_analytics.queries.policy import QueryPolicy

log = get_logger("cli")


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="tv-analytics", description="Descriptive analytics over TV listings")
    ap.add_argument("--config-dir", default="config", help="Directory holding <APP_ENV>.yaml")
    ap.add_argument("--csv", default=None, help="Listings CSV (overrides data.csv_path)")
    ap.add_argument("--discount-policy", choices=DISCOUNT_POLICIES, default=None)
    ap.add_argument("--zero-rating-policy", choices=ZERO_RATING_POLICIES, default=None)

    sub = ap.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="List the available queries")

    run = sub.add_parser("run", help="Run one or more queries by name or number")
    run.add_argument("queries", nargs="*", help="Query names or numbers (1-10)")
    run.add_argument("--all", action="store_true", help="Run every query in catalog order")
    run.add_argument("--show-sql", action="store_true", help="Print the SQL before each result")
    run.add_argument("--export", default=None, metavar="DIR", help="Also write CSV/XML/PDF reports to DIR")

    sub.add_parser("quality", help="Load the CSV and print the data-quality audit")
    return ap


def _render(result: QueryResult, show_sql: bool) -> str:
    lines = [f"[{result.number}] {result.title}"]
    if show_sql and result.sql:
        lines.append(result.sql)
    if result.message:
        lines.append(result.message)
    if not result.df.columns.empty:
        with pd.option_context("display.max_rows", None, "display.width", 200):
            lines.append(result.df.to_string(index=False) if len(result.df) else "(no rows)")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    if args.command == "list":
        for d in list_queries():
            print(f"{d.number:>2}  {d.name:<30} {d.title}")
        return 0

    try:
        settings = load_settings(args.config_dir)
    except FileNotFoundError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except TVAnalyticsError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    overrides = {}
    if args.csv:
        overrides["csv_path"] = args.csv
    if args.discount_policy:
        overrides["discount_policy"] = args.discount_policy
    if args.zero_rating_policy:
        overrides["zero_rating_policy"] = args.zero_rating_policy
    settings = dataclasses.replace(settings, **overrides)
    init_logging(settings.log_level, settings.log_file)

    try:
        policy = QueryPolicy.from_settings(settings)
        with ListingStore.from_csv(settings.csv_path, settings) as store:
            if args.command == "quality":
                for k, v in store.quality.as_dict().items():
                    print(f"{k:<26} {v}")
                return 0

            if not args.all and not args.queries:
                print("error: name at least one query or pass --all", file=sys.stderr)
                return 2

            if args.all:
                results = run_all(store, policy)
            else:
                results = [run_query(store, q, policy) for q in args.queries]

            for res in results:
                print(_render(res, args.show_sql))
                print()
                if args.export:
                    export_report(res.df, args.export, f"{res.number:02d}_{res.name}", title=res.title)
    except TVAnalyticsError as e:
        log.error("Command failed", extra={"command": args.command, "error": str(e)})
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
