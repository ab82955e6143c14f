"""Status and percentage helpers for rule evaluations."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from silverqc.validate.constants import PCT_PLACES, STATUS_FAIL, STATUS_PASS

_PCT_QUANTUM = Decimal(1).scaleb(-PCT_PLACES)


class StatusMixin:
    @staticmethod
    def _count_status(count: int) -> str:
        return STATUS_PASS if count == 0 else STATUS_FAIL

    @staticmethod
    def _percentage(problem: int, total: int) -> Decimal:
        # An empty dataset has no problem rows: 0%.
        if not total:
            return Decimal(0).quantize(_PCT_QUANTUM)
        pct = Decimal(problem) * 100 / Decimal(total)
        return pct.quantize(_PCT_QUANTUM, rounding=ROUND_HALF_UP)

    @staticmethod
    def _pct_status(pct: Decimal, ceiling: Decimal) -> str:
        return STATUS_PASS if pct <= ceiling else STATUS_FAIL
