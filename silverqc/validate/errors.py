"""Exception types raised by the validation engine."""

from __future__ import annotations


class QualityEngineError(Exception):
    """Base class for faults that stop the audit itself from running."""


class CatalogError(QualityEngineError):
    pass


class DatasetUnavailableError(QualityEngineError):
    def __init__(self, table: str, reason: str) -> None:
        super().__init__(f"Dataset '{table}' is unavailable: {reason}")
        self.table = table
        self.reason = reason


class PersistenceError(QualityEngineError):
    pass
