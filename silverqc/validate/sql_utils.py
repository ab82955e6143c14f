"""SQL quoting helpers shared by the evaluator and the audit log."""

from __future__ import annotations

from collections.abc import Iterable


def quote_ident(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def quote_table(name: str) -> str:
    """Quote a possibly schema-qualified table name part by part."""
    return ".".join(quote_ident(part) for part in name.split("."))


def split_table(name: str) -> tuple[str | None, str]:
    if "." in name:
        schema, table = name.rsplit(".", 1)
        return schema, table
    return None, name


def literal_list(values: Iterable[str], lower: bool = False) -> str:
    return ", ".join(quote_literal(value.lower() if lower else value) for value in values)


def as_text(column: str) -> str:
    return f"TRIM(CAST({quote_ident(column)} AS VARCHAR))"
