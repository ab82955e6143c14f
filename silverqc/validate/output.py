"""Build result tables and persist them to the audit log."""

from __future__ import annotations

import logging
import threading
from datetime import timezone
from pathlib import Path
from typing import Iterable

import duckdb
import pandas as pd

from silverqc.validate.constants import DEFAULT_LOG_TABLE
from silverqc.validate.errors import PersistenceError
from silverqc.validate.models import CheckResult, RunSummary
from silverqc.validate.paths import DATA_MARTS_BASE
from silverqc.validate.sql_utils import quote_ident, quote_table, split_table

logger = logging.getLogger(__name__)

RESULT_COLUMNS = [
    "run_id",
    "run_time",
    "table_name",
    "check_name",
    "status",
    "actual_value",
    "expected_value",
    "details",
]
HISTORY_COLUMNS = ["id", *RESULT_COLUMNS]


def build_results_frame(results: Iterable[CheckResult]) -> pd.DataFrame:
    records: list[dict[str, object]] = []
    for result in results:
        records.append(
            {
                "run_id": result.run_id,
                # Stored as naive UTC so DuckDB never shifts it to the session time zone.
                "run_time": result.run_time.astimezone(timezone.utc).replace(tzinfo=None),
                "table_name": result.table_name,
                "check_name": result.check_name,
                "status": result.status,
                "actual_value": result.actual_value,
                "expected_value": result.expected_value,
                "details": result.details,
            }
        )
    frame = pd.DataFrame(records, columns=RESULT_COLUMNS)
    frame["run_time"] = pd.to_datetime(frame["run_time"])
    return frame


def persist_batch(frame: pd.DataFrame, run_id: str, base: Path | None = None) -> Path:
    dest = (base or DATA_MARTS_BASE / "dq_check_results") / f"run_id={run_id}"
    dest.mkdir(parents=True, exist_ok=True)
    path = dest / "check_results.parquet"
    frame.to_parquet(path, index=False)
    return path


class EphemeralSink:
    """Keeps batches in memory for inspection; nothing is recorded durably."""

    def __init__(self) -> None:
        self.batches: list[RunSummary] = []

    def write(self, batch: RunSummary) -> None:
        self.batches.append(batch)

    @property
    def latest(self) -> RunSummary | None:
        return self.batches[-1] if self.batches else None


class AuditLogSink:
    """Append-only audit log table keyed by (run_id, table_name, check_name)."""

    def __init__(
        self, con: duckdb.DuckDBPyConnection, log_table: str = DEFAULT_LOG_TABLE
    ) -> None:
        self.con = con
        self.log_table = log_table
        self.relation = quote_table(log_table)
        self._lock = threading.Lock()
        self._ensured = False

    def ensure_table(self) -> None:
        if self._ensured:
            return
        schema, _ = split_table(self.log_table)
        sequence = quote_table(f"{self.log_table}_id_seq")
        sequence_name = f"{self.log_table}_id_seq".replace("'", "''")
        try:
            if schema:
                self.con.execute(f"CREATE SCHEMA IF NOT EXISTS {quote_ident(schema)}")
            self.con.execute(f"CREATE SEQUENCE IF NOT EXISTS {sequence} START 1")
            self.con.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.relation} (
                    id BIGINT PRIMARY KEY DEFAULT nextval('{sequence_name}'),
                    run_id VARCHAR NOT NULL,
                    run_time TIMESTAMP NOT NULL,
                    table_name VARCHAR NOT NULL,
                    check_name VARCHAR NOT NULL,
                    status VARCHAR NOT NULL CHECK (status IN ('PASS', 'FAIL')),
                    actual_value VARCHAR,
                    expected_value VARCHAR,
                    details VARCHAR,
                    UNIQUE (run_id, table_name, check_name)
                )
                """
            )
        except duckdb.Error as exc:
            raise PersistenceError(f"Unable to prepare audit log {self.log_table}: {exc}") from exc
        self._ensured = True
        logger.debug("Audit log %s ready", self.log_table)

    def write(self, batch: RunSummary) -> None:
        frame = build_results_frame(batch.results)
        with self._lock:
            self.ensure_table()
            columns = ", ".join(RESULT_COLUMNS)
            self.con.register("qc_batch", frame)
            try:
                self.con.begin()
                self.con.execute(
                    f"INSERT INTO {self.relation} ({columns}) "
                    f"SELECT {columns} FROM qc_batch ORDER BY table_name, check_name"
                )
                self.con.commit()
            except duckdb.Error as exc:
                self._rollback()
                logger.error("Audit log write for run %s failed: %s", batch.run_id, exc)
                raise PersistenceError(
                    f"Run {batch.run_id} was not recorded in {self.log_table}: {exc}"
                ) from exc
            finally:
                self.con.unregister("qc_batch")
        logger.info("Recorded %d result(s) for run %s in %s", len(frame), batch.run_id, self.log_table)

    def exists(self) -> bool:
        schema, table = split_table(self.log_table)
        query = "SELECT COUNT(*) FROM information_schema.tables WHERE table_name = ?"
        params = [table]
        if schema:
            query += " AND table_schema = ?"
            params.append(schema)
        return bool(self.con.execute(query, params).fetchone()[0])

    def read_history(self, run_id: str | None = None) -> pd.DataFrame:
        if not self.exists():
            return pd.DataFrame(columns=HISTORY_COLUMNS)
        columns = ", ".join(HISTORY_COLUMNS)
        query = f"SELECT {columns} FROM {self.relation}"
        params: list[str] = []
        if run_id:
            query += " WHERE run_id = ?"
            params.append(run_id)
        return self.con.execute(query + " ORDER BY id", params).df()

    def latest_run_id(self) -> str | None:
        if not self.exists():
            return None
        row = self.con.execute(
            f"SELECT run_id FROM {self.relation} ORDER BY run_time DESC, id DESC LIMIT 1"
        ).fetchone()
        return row[0] if row else None

    def _rollback(self) -> None:
        try:
            self.con.rollback()
        except duckdb.Error:
            logger.debug("No open transaction to roll back on %s", self.log_table)
