"""Result builders shared by the rule handlers."""

from __future__ import annotations

from silverqc.validate.config import Rule
from silverqc.validate.constants import DETAILS_MAX_LENGTH, STATUS_FAIL, STATUS_PASS
from silverqc.validate.dataset import Dataset
from silverqc.validate.models import CheckResult, RunContext


class QueryExecutorMixin:
    _context: RunContext

    def _build_result(
        self, rule: Rule, status: str, actual_value: str | None, details: str | None
    ) -> CheckResult:
        if details and len(details) > DETAILS_MAX_LENGTH:
            details = details[: DETAILS_MAX_LENGTH - 3] + "..."
        return CheckResult(
            run_id=self._context.run_id,
            run_time=self._context.run_time,
            table_name=rule.table,
            check_name=rule.check_name,
            status=status,
            actual_value=actual_value,
            expected_value=rule.expected_value,
            details=details,
        )

    def _failure_result(self, rule: Rule, reason: str) -> CheckResult:
        return self._build_result(rule, STATUS_FAIL, None, reason)

    def _informational_result(self, rule: Rule, value: int) -> CheckResult:
        return self._build_result(rule, STATUS_PASS, str(value), rule.details)

    def _count_result(self, rule: Rule, count: int) -> CheckResult:
        return self._build_result(rule, self._count_status(count), str(count), rule.details)

    def _pct_result(self, rule: Rule, problem: int, total: int) -> CheckResult:
        pct = self._percentage(problem, total)
        status = self._pct_status(pct, rule.param("ceiling_pct"))
        return self._build_result(rule, status, f"{pct}%", rule.details)

    def _execute_condition(self, dataset: Dataset, rule: Rule, condition: str) -> CheckResult:
        return self._count_result(rule, dataset.count_where(condition))

    def _execute_query_result(self, dataset: Dataset, rule: Rule, query: str) -> CheckResult:
        return self._count_result(rule, dataset.count_query(query))

    def _execute_pct_condition(self, dataset: Dataset, rule: Rule, condition: str) -> CheckResult:
        total = dataset.row_count()
        problem = dataset.count_where(condition) if total else 0
        return self._pct_result(rule, problem, total)
