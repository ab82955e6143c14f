"""Data models for the validation runner."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from silverqc.validate.constants import STATUS_FAIL, STATUS_PASS


@dataclass(frozen=True)
class RunContext:
    run_id: str
    run_time: datetime


@dataclass(frozen=True)
class CheckResult:
    run_id: str
    run_time: datetime
    table_name: str
    check_name: str
    status: str
    actual_value: str | None
    expected_value: str | None
    details: str | None

    @property
    def failed(self) -> bool:
        return self.status == STATUS_FAIL


@dataclass
class RunSummary:
    context: RunContext
    results: list[CheckResult] = field(default_factory=list)

    @property
    def run_id(self) -> str:
        return self.context.run_id

    @property
    def run_time(self) -> datetime:
        return self.context.run_time

    @property
    def failures(self) -> list[CheckResult]:
        return [result for result in self.results if result.failed]

    @property
    def passed(self) -> list[CheckResult]:
        return [result for result in self.results if result.status == STATUS_PASS]

    @property
    def has_failures(self) -> bool:
        return any(result.failed for result in self.results)
