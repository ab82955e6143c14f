"""DuckDB rule evaluator for validation checks."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from silverqc.validate.config import Rule
from silverqc.validate.dataset import Dataset
from silverqc.validate.models import CheckResult, RunContext
from silverqc.validate.query_utils import QueryExecutorMixin
from silverqc.validate.sql_utils import as_text, literal_list, quote_ident, quote_table
from silverqc.validate.status_utils import StatusMixin

logger = logging.getLogger(__name__)

Handler = Callable[[Dataset, Rule], CheckResult]


class RuleEvaluator(QueryExecutorMixin, StatusMixin):
    def __init__(self, context: RunContext, timeout: float | None = None) -> None:
        self._context = context
        self._timeout = timeout
        self._handlers: dict[str, Handler] = {
            "row_count": self._handle_row_count,
            "not_null": self._handle_not_null,
            "unique": self._handle_unique,
            "allowed_values": self._handle_allowed_values,
            "missing_pct": self._handle_missing_pct,
            "pct_threshold": self._handle_pct_threshold,
            "field_order": self._handle_field_order,
            "field_identity": self._handle_field_identity,
            "condition": self._handle_condition,
            "foreign_key": self._handle_foreign_key,
        }

    def evaluate(self, dataset: Dataset, rule: Rule) -> CheckResult:
        """Evaluate one rule; faults come back as FAIL results, never as exceptions."""
        handler = self._handlers.get(rule.kind)
        if handler is None:
            return self._failure_result(rule, f"No handler for rule kind '{rule.kind}'")

        expired = threading.Event()
        timer = None
        if self._timeout:
            def _expire() -> None:
                expired.set()
                dataset.interrupt()

            timer = threading.Timer(self._timeout, _expire)
            timer.daemon = True
            timer.start()
        try:
            result = handler(dataset, rule)
        except Exception as exc:
            if expired.is_set():
                reason = self._timeout_reason()
            else:
                lines = str(exc).strip().splitlines()
                reason = f"evaluation failed ({type(exc).__name__}): {lines[0] if lines else exc!r}"
            logger.warning("Check %s.%s failed to evaluate: %s", rule.table, rule.check_name, reason)
            return self._failure_result(rule, reason)
        finally:
            if timer is not None:
                timer.cancel()

        # the interrupt is lost when the timer fires between two queries
        if expired.is_set():
            reason = self._timeout_reason()
            logger.warning("Check %s.%s failed to evaluate: %s", rule.table, rule.check_name, reason)
            return self._failure_result(rule, reason)
        return result

    def _timeout_reason(self) -> str:
        return f"rule evaluation exceeded the {self._timeout:g}s timeout"

    def unavailable(self, rule: Rule, reason: str) -> CheckResult:
        return self._failure_result(rule, f"dataset unavailable: {reason}")

    def _handle_row_count(self, dataset: Dataset, rule: Rule) -> CheckResult:
        return self._informational_result(rule, dataset.row_count())

    def _handle_not_null(self, dataset: Dataset, rule: Rule) -> CheckResult:
        column = rule.param("column")
        condition = f"{quote_ident(column)} IS NULL"
        if rule.param("blank_is_null", True):
            condition += f" OR {as_text(column)} = ''"
        return self._execute_condition(dataset, rule, condition)

    def _handle_unique(self, dataset: Dataset, rule: Rule) -> CheckResult:
        column = quote_ident(rule.param("column"))
        query = f"""
        SELECT {column}
        FROM {dataset.relation}
        WHERE {column} IS NOT NULL
        GROUP BY {column}
        HAVING COUNT(*) > 1
        """
        return self._execute_query_result(dataset, rule, query)

    def _handle_allowed_values(self, dataset: Dataset, rule: Rule) -> CheckResult:
        column = rule.param("column")
        ignore_case = bool(rule.param("ignore_case", False))
        value = f"CAST({quote_ident(column)} AS VARCHAR)"
        if ignore_case:
            value = f"LOWER({value})"
        allowed = literal_list(rule.param("allowed_values"), lower=ignore_case)
        condition = f"{quote_ident(column)} IS NOT NULL AND {value} NOT IN ({allowed})"
        if rule.param("null_is_violation", False):
            condition = f"{quote_ident(column)} IS NULL OR ({condition})"
        return self._execute_condition(dataset, rule, condition)

    def _handle_missing_pct(self, dataset: Dataset, rule: Rule) -> CheckResult:
        column = rule.param("column")
        condition = f"{quote_ident(column)} IS NULL OR {as_text(column)} = ''"
        sentinels = rule.param("sentinels")
        if sentinels:
            condition += f" OR LOWER({as_text(column)}) IN ({literal_list(sentinels, lower=True)})"
        return self._execute_pct_condition(dataset, rule, condition)

    def _handle_pct_threshold(self, dataset: Dataset, rule: Rule) -> CheckResult:
        return self._execute_pct_condition(dataset, rule, f"({rule.param('condition')})")

    def _handle_field_order(self, dataset: Dataset, rule: Rule) -> CheckResult:
        start = quote_ident(rule.param("start"))
        end = quote_ident(rule.param("end"))
        if rule.param("null_is_violation", True):
            condition = f"{start} IS NULL OR {end} IS NULL OR {end} < {start}"
        else:
            condition = f"{start} IS NOT NULL AND {end} IS NOT NULL AND {end} < {start}"
        return self._execute_condition(dataset, rule, condition)

    def _handle_field_identity(self, dataset: Dataset, rule: Rule) -> CheckResult:
        left = f"({rule.param('left')})"
        right = f"({rule.param('right')})"
        condition = f"{left} IS NULL OR {right} IS NULL OR {left} <> {right}"
        return self._execute_condition(dataset, rule, condition)

    def _handle_condition(self, dataset: Dataset, rule: Rule) -> CheckResult:
        return self._execute_condition(dataset, rule, f"({rule.param('condition')})")

    def _handle_foreign_key(self, dataset: Dataset, rule: Rule) -> CheckResult:
        column = quote_ident(rule.param("column"))
        ref_table, ref_column = str(rule.param("references")).rsplit(".", 1)
        query = f"""
        SELECT src.{column}
        FROM {dataset.relation} src
        WHERE src.{column} IS NOT NULL
          AND NOT EXISTS (
            SELECT 1
            FROM {quote_table(ref_table)} ref
            WHERE ref.{quote_ident(ref_column)} = src.{column}
          )
        """
        return self._execute_query_result(dataset, rule, query)
