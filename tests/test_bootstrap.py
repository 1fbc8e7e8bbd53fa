from __future__ import annotations

from pathlib import Path

from src.timesheet_engine.timesheet_engine.database.bootstrap import (
    _as_target,
    _iter_sql_statements,
    _prepare_schema_sql,
)

SCHEMA = Path(__file__).resolve().parents[1] / "database" / "schema.sql"


def test_schema_splits_into_table_statements():
    sql = _prepare_schema_sql(SCHEMA.read_text(encoding="utf-8"))
    statements = list(_iter_sql_statements(sql))

    assert len(statements) == 4
    assert all(s.startswith("CREATE TABLE IF NOT EXISTS") for s in statements)
    assert not any("CREATE DATABASE" in s or s.startswith("USE") for s in statements)


def test_splitter_keeps_semicolons_inside_quotes():
    statements = list(_iter_sql_statements("INSERT INTO t VALUES('a;b'); SELECT 1;"))
    assert statements == ["INSERT INTO t VALUES('a;b')", "SELECT 1"]


def test_target_defaults():
    target = _as_target({"host": "db", "user": "u", "password": "p"})
    assert target.port == 3306
    assert target.database == "timesheet_db"
