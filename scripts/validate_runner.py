#!/usr/bin/env python3
"""CLI that runs the silver-layer quality checks and records the results."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import NoReturn

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import duckdb

from silverqc.validate.config import load_catalog
from silverqc.validate.constants import (
    DEFAULT_LOG_TABLE,
    EXIT_CHECKS_FAILED,
    EXIT_ENGINE_FAULT,
    EXIT_OK,
)
from silverqc.validate.errors import QualityEngineError
from silverqc.validate.output import (
    AuditLogSink,
    EphemeralSink,
    build_results_frame,
    persist_batch,
)
from silverqc.validate.paths import RULES_PATH
from silverqc.validate.report import format_results, summarize
from silverqc.validate.runner import ValidationRunner


def abort(message: str) -> NoReturn:
    print(message, file=sys.stderr)
    raise SystemExit(EXIT_ENGINE_FAULT)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Execute data quality checks against the silver tables."
    )
    parser.add_argument("--duckdb-path", type=Path, required=True, help="DuckDB database holding the silver tables.")
    parser.add_argument("--catalog", type=Path, default=RULES_PATH, help="Rule catalog YAML.")
    parser.add_argument("--overrides", type=Path, help="YAML with allowed_values/ceiling_pct overrides.")
    parser.add_argument("--run-id", help="Optional external run identifier (a UUID is generated otherwise).")
    parser.add_argument(
        "--ephemeral",
        action="store_true",
        help="Only print the results; do not append them to the audit log.",
    )
    parser.add_argument("--log-table", default=DEFAULT_LOG_TABLE, help="Audit log table name.")
    parser.add_argument("--workers", type=int, default=1, help="Number of checks evaluated concurrently.")
    parser.add_argument("--timeout", type=float, help="Per-check timeout in seconds.")
    parser.add_argument("--failures-only", action="store_true", help="Only print failing checks.")
    parser.add_argument("--export-dir", type=Path, help="Also write the batch as parquet under this directory.")
    parser.add_argument("--log-level", default="WARNING", help="Python logging level.")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.workers < 1:
        abort("--workers must be at least 1")
    if not args.duckdb_path.exists():
        abort(f"DuckDB file missing at {args.duckdb_path}")

    try:
        catalog = load_catalog(args.catalog, args.overrides)
    except QualityEngineError as exc:
        abort(f"Invalid rule catalog: {exc}")

    try:
        con = duckdb.connect(str(args.duckdb_path), read_only=args.ephemeral)
    except duckdb.Error as exc:
        abort(f"Unable to open {args.duckdb_path}: {exc}")

    with con:
        sink = EphemeralSink() if args.ephemeral else AuditLogSink(con, args.log_table)
        runner = ValidationRunner(
            con,
            catalog,
            sink=sink,
            max_workers=args.workers,
            rule_timeout=args.timeout,
        )
        try:
            batch = runner.run(args.run_id)
        except (QualityEngineError, duckdb.Error) as exc:
            abort(f"Quality run could not be recorded: {exc}")

    print("--- Data Quality Summary ---")
    print(format_results(batch.results, failures_only=args.failures_only))
    if args.export_dir:
        try:
            path = persist_batch(build_results_frame(batch.results), batch.run_id, args.export_dir)
        except OSError as exc:
            abort(f"Unable to export batch to {args.export_dir}: {exc}")
        print(f"Batch exported to {path}")

    counts = summarize(batch.results)
    mode = "ephemeral" if args.ephemeral else f"logged to {args.log_table}"
    print(
        f"Quality run complete · run_id={batch.run_id} · {counts['PASS']} passed "
        f"· {counts['FAIL']} failed · {mode}"
    )
    raise SystemExit(EXIT_CHECKS_FAILED if batch.has_failures else EXIT_OK)


if __name__ == "__main__":
    main()
