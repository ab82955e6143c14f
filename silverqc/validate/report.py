"""Read-only views over a run batch or the audit history."""

from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from silverqc.validate.constants import STATUS_FAIL, STATUS_PASS
from silverqc.validate.models import CheckResult
from silverqc.validate.output import build_results_frame

SUMMARY_COLUMNS = ["table_name", "check_name", "status", "actual_value", "expected_value"]
RECURRENCE_COLUMNS = [
    "table_name",
    "check_name",
    "occurrences",
    "last_seen",
    "last_actual_value",
    "last_details",
]


def order_results(
    results: Iterable[CheckResult], failures_only: bool = False
) -> list[CheckResult]:
    selected = [result for result in results if result.failed or not failures_only]
    return sorted(selected, key=lambda result: (result.table_name, result.check_name))


def order_history(history: pd.DataFrame, failures_only: bool = False) -> pd.DataFrame:
    working = history
    if failures_only:
        working = working[working["status"] == STATUS_FAIL]
    sort_keys = [col for col in ("table_name", "check_name", "run_time", "id") if col in working.columns]
    return working.sort_values(sort_keys, kind="stable").reset_index(drop=True)


def summarize(results: Iterable[CheckResult]) -> dict[str, int]:
    counts = {STATUS_PASS: 0, STATUS_FAIL: 0}
    for result in results:
        counts[result.status] = counts.get(result.status, 0) + 1
    counts["total"] = counts[STATUS_PASS] + counts[STATUS_FAIL]
    return counts


def format_results(results: Iterable[CheckResult], failures_only: bool = False) -> str:
    ordered = order_results(results, failures_only=failures_only)
    if not ordered:
        return "No checks to report."
    frame = build_results_frame(ordered)[SUMMARY_COLUMNS]
    return frame.astype(object).fillna("").to_string(index=False)


def format_history(history: pd.DataFrame, failures_only: bool = False) -> str:
    ordered = order_history(history, failures_only=failures_only)
    if ordered.empty:
        return "No audit records found."
    columns = ["run_id", "run_time", *SUMMARY_COLUMNS]
    return ordered[columns].astype(object).fillna("").to_string(index=False)


def failure_recurrence(history: pd.DataFrame, limit: int = 10) -> pd.DataFrame:
    """Rank checks by how many runs they have failed in."""
    if history.empty:
        return pd.DataFrame(columns=RECURRENCE_COLUMNS)
    failures = history[history["status"] == STATUS_FAIL]
    if failures.empty:
        return pd.DataFrame(columns=RECURRENCE_COLUMNS)
    keys = ["table_name", "check_name"]
    working = failures.sort_values(["run_time", "id"])
    counts = working.groupby(keys, as_index=False).agg(occurrences=("run_id", "nunique"))
    # latest row per check, nulls included
    latest = working.groupby(keys).tail(1)[[*keys, "run_time", "actual_value", "details"]].rename(
        columns={
            "run_time": "last_seen",
            "actual_value": "last_actual_value",
            "details": "last_details",
        }
    )
    grouped = (
        counts.merge(latest, on=keys)
        .sort_values(
            ["occurrences", "last_seen", "table_name", "check_name"],
            ascending=[False, False, True, True],
        )
        .head(limit)
        .reset_index(drop=True)
    )
    return grouped[RECURRENCE_COLUMNS]
