"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone
from typing import Any

import duckdb
import pandas as pd
import pytest

from silverqc.validate.config import parse_catalog
from silverqc.validate.models import RunContext


def load_table(con: duckdb.DuckDBPyConnection, name: str, frame: pd.DataFrame) -> None:
    """Materialize a DataFrame as a (possibly schema-qualified) DuckDB table."""
    if "." in name:
        con.execute(f"CREATE SCHEMA IF NOT EXISTS {name.split('.')[0]}")
    con.register("fixture_frame", frame)
    con.execute(f"CREATE TABLE {name} AS SELECT * FROM fixture_frame")
    con.unregister("fixture_frame")


@pytest.fixture
def con() -> duckdb.DuckDBPyConnection:
    connection = duckdb.connect()
    yield connection
    connection.close()


@pytest.fixture
def run_context() -> RunContext:
    return RunContext(
        run_id="11111111-2222-3333-4444-555555555555",
        run_time=datetime(2026, 1, 5, 6, 30, tzinfo=timezone.utc),
    )


@pytest.fixture
def customers_df() -> pd.DataFrame:
    return pd.DataFrame({"id": [1, 2, 2], "name": ["A", None, "B"]})


@pytest.fixture
def customers_catalog_dict() -> dict[str, Any]:
    return {
        "datasets": {
            "customers": [
                {"check": "row_count", "kind": "row_count"},
                {
                    "check": "null_name_pct",
                    "kind": "missing_pct",
                    "column": "name",
                    "ceiling_pct": 5,
                    "details": "percent of missing names",
                },
                {
                    "check": "duplicate_id",
                    "kind": "unique",
                    "column": "id",
                    "details": "unique id expected",
                },
            ]
        }
    }


@pytest.fixture
def customers_catalog(customers_catalog_dict: dict[str, Any]):
    return parse_catalog(customers_catalog_dict)


@pytest.fixture
def sales_df() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "sls_ord_num": ["SO1", "SO2", "SO3"],
            "sls_quantity": [3, 1, 2],
            "sls_price": [-10, 5, 7],
            "sls_sales": [30, 5, 14],
        }
    )


@pytest.fixture
def make_table(con: duckdb.DuckDBPyConnection):
    def _make(name: str, frame: pd.DataFrame) -> None:
        load_table(con, name, frame)

    return _make
