"""Shared validation constants for checks."""

from __future__ import annotations

STATUS_PASS = "PASS"
STATUS_FAIL = "FAIL"

INFORMATIONAL_KINDS = frozenset({"row_count"})
PERCENTAGE_KINDS = frozenset({"missing_pct", "pct_threshold"})

RULE_KIND_PARAMS = {
    "row_count": (),
    "not_null": ("column",),
    "unique": ("column",),
    "allowed_values": ("column", "allowed_values"),
    "missing_pct": ("column", "ceiling_pct"),
    "pct_threshold": ("condition", "ceiling_pct"),
    "field_order": ("start", "end"),
    "field_identity": ("left", "right"),
    "condition": ("condition",),
    "foreign_key": ("column", "references"),
}

OVERRIDABLE_PARAMS = frozenset({"allowed_values", "ceiling_pct"})

DEFAULT_LOG_TABLE = "data_quality_log"
DETAILS_MAX_LENGTH = 4000
PCT_PLACES = 2

EXIT_OK = 0
EXIT_CHECKS_FAILED = 1
EXIT_ENGINE_FAULT = 2
