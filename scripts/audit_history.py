#!/usr/bin/env python3
"""Print the recorded quality history or the most frequently failing checks."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import duckdb

from silverqc.validate.constants import DEFAULT_LOG_TABLE
from silverqc.validate.output import AuditLogSink
from silverqc.validate.report import failure_recurrence, format_history


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Inspect the data quality audit log.")
    parser.add_argument("--duckdb-path", type=Path, required=True, help="DuckDB database holding the audit log.")
    parser.add_argument("--log-table", default=DEFAULT_LOG_TABLE, help="Audit log table name.")
    parser.add_argument("--run-id", help="Only show one run.")
    parser.add_argument("--table", help="Only show one dataset.")
    parser.add_argument("--failures-only", action="store_true", help="Only show failing checks.")
    parser.add_argument(
        "--recurrence",
        action="store_true",
        help="Rank checks by how many runs they failed in instead of listing records.",
    )
    parser.add_argument("--limit", type=int, default=10, help="Rows shown with --recurrence.")
    args = parser.parse_args(argv)

    if not args.duckdb_path.exists():
        raise SystemExit(f"DuckDB file missing at {args.duckdb_path}")

    with duckdb.connect(str(args.duckdb_path), read_only=True) as con:
        history = AuditLogSink(con, args.log_table).read_history(args.run_id)

    if args.table:
        history = history[history["table_name"] == args.table]

    if args.recurrence:
        recurring = failure_recurrence(history, limit=args.limit)
        if recurring.empty:
            print("No failing checks recorded.")
        else:
            print(recurring.to_string(index=False))
        return

    print(format_history(history, failures_only=args.failures_only))


if __name__ == "__main__":
    main()
