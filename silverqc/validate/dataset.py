"""Read-only handle over one silver table."""

from __future__ import annotations

import duckdb

from silverqc.validate.errors import DatasetUnavailableError
from silverqc.validate.sql_utils import quote_table


class Dataset:
    def __init__(self, con: duckdb.DuckDBPyConnection, name: str) -> None:
        self.con = con
        self.name = name
        self.relation = quote_table(name)

    def probe(self) -> None:
        try:
            self.con.execute(f"SELECT 1 FROM {self.relation} LIMIT 0").fetchall()
        except duckdb.Error as exc:
            raise DatasetUnavailableError(self.name, str(exc).splitlines()[0]) from exc

    def row_count(self) -> int:
        return self._scalar(f"SELECT COUNT(*) FROM {self.relation}")

    def count_where(self, condition: str) -> int:
        return self._scalar(f"SELECT COUNT(*) FROM {self.relation} WHERE {condition}")

    def count_query(self, query: str) -> int:
        return self._scalar(f"SELECT COUNT(*) FROM ({query}) AS qc_matches")

    def interrupt(self) -> None:
        self.con.interrupt()

    def _scalar(self, query: str) -> int:
        return int(self.con.execute(query).fetchone()[0])
