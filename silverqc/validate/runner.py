"""Validation runner that evaluates the rule catalog against DuckDB tables."""

from __future__ import annotations

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Protocol

import duckdb

from silverqc.validate.config import Catalog, Rule
from silverqc.validate.dataset import Dataset
from silverqc.validate.errors import DatasetUnavailableError
from silverqc.validate.models import CheckResult, RunContext, RunSummary
from silverqc.validate.rule_executor import RuleEvaluator

logger = logging.getLogger(__name__)


class ResultSink(Protocol):
    def write(self, batch: RunSummary) -> None: ...


def new_run_context(run_id: str | None = None) -> RunContext:
    run_id = (run_id or "").strip() or str(uuid.uuid4())
    return RunContext(run_id=run_id, run_time=datetime.now(timezone.utc))


class ValidationRunner:
    def __init__(
        self,
        con: duckdb.DuckDBPyConnection,
        catalog: Catalog,
        sink: ResultSink | None = None,
        max_workers: int = 1,
        rule_timeout: float | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.con = con
        self.catalog = catalog
        self.sink = sink
        self.max_workers = max_workers
        self.rule_timeout = rule_timeout

    def run(self, run_id: str | None = None) -> RunSummary:
        context = new_run_context(run_id)
        logger.info(
            "Starting quality run %s over %d dataset(s), %d check(s)",
            context.run_id,
            len(self.catalog.tables),
            len(self.catalog),
        )
        evaluator = RuleEvaluator(context, timeout=self.rule_timeout)
        unavailable = self._probe_datasets()
        tasks = [rule for table in self.catalog.tables for rule in self.catalog.rules_for(table)]

        if self.max_workers == 1:
            results = [self._evaluate(evaluator, rule, unavailable) for rule in tasks]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                results = list(
                    pool.map(lambda rule: self._evaluate(evaluator, rule, unavailable), tasks)
                )

        batch = RunSummary(context=context, results=results)
        logger.info(
            "Quality run %s finished: %d passed, %d failed",
            context.run_id,
            len(batch.passed),
            len(batch.failures),
        )
        if self.sink is not None:
            self.sink.write(batch)
        return batch

    def _probe_datasets(self) -> dict[str, str]:
        unavailable: dict[str, str] = {}
        cursor = self.con.cursor()
        try:
            for table in self.catalog.tables:
                try:
                    Dataset(cursor, table).probe()
                except DatasetUnavailableError as exc:
                    logger.warning("%s", exc)
                    unavailable[table] = exc.reason
        finally:
            cursor.close()
        return unavailable

    def _evaluate(
        self, evaluator: RuleEvaluator, rule: Rule, unavailable: dict[str, str]
    ) -> CheckResult:
        if rule.table in unavailable:
            return evaluator.unavailable(rule, unavailable[rule.table])
        # One cursor per rule so an interrupt only ever reaches its own query.
        cursor = self.con.cursor()
        try:
            return evaluator.evaluate(Dataset(cursor, rule.table), rule)
        finally:
            cursor.close()
