#!/usr/bin/env python3
"""Fail the pipeline when a recorded quality run contains failing checks."""

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
from silverqc.validate.report import order_history


def parse_ignored(values: list[str]) -> set[tuple[str, str]]:
    ignored: set[tuple[str, str]] = set()
    for value in values:
        table, sep, check = value.rpartition(":")
        if not sep or not table or not check:
            raise SystemExit(f"--ignore-check expects table:check, got '{value}'")
        ignored.add((table, check))
    return ignored


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Enforce the silver quality gate.")
    parser.add_argument("--duckdb-path", type=Path, required=True, help="DuckDB database holding the audit log.")
    parser.add_argument("--run-id", help="Run to gate on (defaults to the most recent run).")
    parser.add_argument("--log-table", default=DEFAULT_LOG_TABLE, help="Audit log table name.")
    parser.add_argument(
        "--ignore-check",
        action="append",
        default=[],
        help="table:check to leave out of the gate (repeatable).",
    )
    args = parser.parse_args(argv)

    ignored = parse_ignored(args.ignore_check)
    if not args.duckdb_path.exists():
        raise SystemExit(f"DuckDB file missing at {args.duckdb_path}")

    with duckdb.connect(str(args.duckdb_path), read_only=True) as con:
        sink = AuditLogSink(con, args.log_table)
        run_id = args.run_id or sink.latest_run_id()
        if not run_id:
            raise SystemExit(f"No quality runs recorded in {args.log_table}.")
        history = sink.read_history(run_id)

    if history.empty:
        raise SystemExit(f"No audit records found for run {run_id}.")

    failures = order_history(history, failures_only=True)
    failing = [
        f"{row.check_name} ({row.table_name})"
        for row in failures.itertuples(index=False)
        if (row.table_name, row.check_name) not in ignored
    ]
    if failing:
        raise SystemExit(f"Quality gate failed for run {run_id}: {', '.join(failing)}.")

    print(f"Quality gate passed for run {run_id} ({len(history)} checks).")


if __name__ == "__main__":
    main()
