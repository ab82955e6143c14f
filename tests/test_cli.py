"""Tests for the command line entry points."""

from pathlib import Path

import duckdb
import pandas as pd
import pytest
import yaml

from scripts import audit_history, quality_gate, validate_runner


@pytest.fixture
def warehouse(tmp_path: Path, customers_df: pd.DataFrame) -> Path:
    db_path = tmp_path / "warehouse.duckdb"
    with duckdb.connect(str(db_path)) as con:
        con.register("customers_frame", customers_df)
        con.execute("CREATE TABLE customers AS SELECT * FROM customers_frame")
        con.execute("CREATE TABLE clean_customers AS SELECT * FROM customers_frame WHERE name IS NOT NULL AND id = 1")
    return db_path


@pytest.fixture
def catalog_path(tmp_path: Path, customers_catalog_dict) -> Path:
    path = tmp_path / "rules.yml"
    path.write_text(yaml.safe_dump(customers_catalog_dict, sort_keys=False))
    return path


@pytest.fixture
def clean_catalog_path(tmp_path: Path, customers_catalog_dict) -> Path:
    raw = {"datasets": {"clean_customers": customers_catalog_dict["datasets"]["customers"]}}
    path = tmp_path / "clean_rules.yml"
    path.write_text(yaml.safe_dump(raw, sort_keys=False))
    return path


def run_cli(main, argv: list[str]) -> int:
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    code = excinfo.value.code
    return 0 if code is None else code


class TestValidateRunner:
    def test_failures_exit_one_and_are_logged(self, warehouse, catalog_path, capsys):
        code = run_cli(
            validate_runner.main,
            ["--duckdb-path", str(warehouse), "--catalog", str(catalog_path), "--run-id", "job-1"],
        )

        assert code == 1
        out = capsys.readouterr().out
        assert "null_name_pct" in out
        assert "33.33%" in out
        assert "run_id=job-1" in out
        with duckdb.connect(str(warehouse), read_only=True) as con:
            rows = con.execute("SELECT COUNT(*) FROM data_quality_log WHERE run_id = 'job-1'").fetchone()[0]
        assert rows == 3

    def test_all_pass_exits_zero(self, warehouse, clean_catalog_path):
        code = run_cli(
            validate_runner.main,
            ["--duckdb-path", str(warehouse), "--catalog", str(clean_catalog_path)],
        )
        assert code == 0

    def test_ephemeral_writes_nothing(self, warehouse, catalog_path):
        code = run_cli(
            validate_runner.main,
            ["--duckdb-path", str(warehouse), "--catalog", str(catalog_path), "--ephemeral"],
        )

        assert code == 1
        with duckdb.connect(str(warehouse), read_only=True) as con:
            tables = {row[0] for row in con.execute("SELECT table_name FROM information_schema.tables").fetchall()}
        assert "data_quality_log" not in tables

    def test_overrides_change_outcome(self, warehouse, catalog_path, tmp_path, capsys):
        overrides = tmp_path / "overrides.yml"
        overrides.write_text(yaml.safe_dump({"customers": {"null_name_pct": {"ceiling_pct": 50}}}))

        run_cli(
            validate_runner.main,
            [
                "--duckdb-path", str(warehouse),
                "--catalog", str(catalog_path),
                "--overrides", str(overrides),
                "--ephemeral",
                "--failures-only",
            ],
        )

        out = capsys.readouterr().out
        assert "null_name_pct" not in out
        assert "duplicate_id" in out

    def test_engine_fault_exits_two(self, warehouse, catalog_path):
        first = ["--duckdb-path", str(warehouse), "--catalog", str(catalog_path), "--run-id", "dup"]
        run_cli(validate_runner.main, first)

        assert run_cli(validate_runner.main, first) == 2

    def test_bad_catalog_exits_two(self, warehouse, tmp_path):
        broken = tmp_path / "broken.yml"
        broken.write_text("datasets:\n  customers:\n    - check: x\n      kind: nope\n")

        code = run_cli(
            validate_runner.main, ["--duckdb-path", str(warehouse), "--catalog", str(broken)]
        )

        assert code == 2

    def test_missing_database_exits_two(self, tmp_path, catalog_path):
        code = run_cli(
            validate_runner.main,
            ["--duckdb-path", str(tmp_path / "none.duckdb"), "--catalog", str(catalog_path)],
        )
        assert code == 2

    def test_export_dir(self, warehouse, catalog_path, tmp_path):
        export_dir = tmp_path / "exports"
        run_cli(
            validate_runner.main,
            [
                "--duckdb-path", str(warehouse),
                "--catalog", str(catalog_path),
                "--run-id", "exp",
                "--export-dir", str(export_dir),
                "--workers", "2",
            ],
        )
        exported = pd.read_parquet(export_dir / "run_id=exp" / "check_results.parquet")
        assert len(exported) == 3


    def test_unwritable_export_dir_exits_two(self, warehouse, catalog_path, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        code = run_cli(
            validate_runner.main,
            [
                "--duckdb-path", str(warehouse),
                "--catalog", str(catalog_path),
                "--ephemeral",
                "--export-dir", str(blocker),
            ],
        )

        assert code == 2


class TestQualityGate:
    def test_gate_fails_on_latest_run(self, warehouse, catalog_path):
        run_cli(validate_runner.main, ["--duckdb-path", str(warehouse), "--catalog", str(catalog_path)])

        with pytest.raises(SystemExit) as excinfo:
            quality_gate.main(["--duckdb-path", str(warehouse)])

        assert "duplicate_id (customers)" in str(excinfo.value.code)

    def test_gate_passes_when_failures_ignored(self, warehouse, catalog_path, capsys):
        run_cli(
            validate_runner.main,
            ["--duckdb-path", str(warehouse), "--catalog", str(catalog_path), "--run-id", "g1"],
        )

        quality_gate.main(
            [
                "--duckdb-path", str(warehouse),
                "--run-id", "g1",
                "--ignore-check", "customers:duplicate_id",
                "--ignore-check", "customers:null_name_pct",
            ]
        )

        assert "Quality gate passed for run g1" in capsys.readouterr().out

    def test_gate_without_runs(self, warehouse):
        with pytest.raises(SystemExit) as excinfo:
            quality_gate.main(["--duckdb-path", str(warehouse)])
        assert "No quality runs" in str(excinfo.value.code)


class TestAuditHistory:
    def test_history_and_recurrence(self, warehouse, catalog_path, capsys):
        for run_id in ("h1", "h2"):
            run_cli(
                validate_runner.main,
                ["--duckdb-path", str(warehouse), "--catalog", str(catalog_path), "--run-id", run_id],
            )
        capsys.readouterr()

        audit_history.main(["--duckdb-path", str(warehouse), "--failures-only"])
        listing = capsys.readouterr().out
        assert "h1" in listing and "h2" in listing
        assert "row_count" not in listing

        audit_history.main(["--duckdb-path", str(warehouse), "--recurrence"])
        recurrence = capsys.readouterr().out
        assert "duplicate_id" in recurrence
        assert "2" in recurrence

    def test_empty_history(self, warehouse, capsys):
        audit_history.main(["--duckdb-path", str(warehouse)])
        assert "No audit records found." in capsys.readouterr().out
