from __future__ import annotations

import logging
import re
from contextlib import closing
from pathlib import Path
from typing import Iterator

import mysql.connector

from .connection import DBConfig

logger = logging.getLogger(__name__)

# a run of quoted literals or non-separator characters; ';' inside quotes survives
_STATEMENT = re.compile(r"""(?:'(?:\\.|[^'\\])*'|"(?:\\.|[^"\\])*"|[^;'"])+""", re.S)


def _as_target(db_config: dict) -> DBConfig:
    return DBConfig.from_settings(db_config)


def _prepare_schema_sql(sql: str) -> str:
    # the target database comes from settings, not from the schema file
    for pattern in (r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", r"(?im)^\s*USE\b.*?;\s*$", r"(?m)^\s*--.*$"):
        sql = re.sub(pattern, "", sql)
    return sql


def _iter_sql_statements(sql: str) -> Iterator[str]:
    for match in _STATEMENT.finditer(sql):
        stmt = match.group(0).strip()
        if stmt:
            yield stmt


def _server(target: DBConfig, *, with_database: bool = True):
    params = {
        "host": target.host,
        "port": target.port,
        "user": target.user,
        "password": target.password,
        "use_pure": True,
    }
    if with_database:
        params["database"] = target.database
    return closing(mysql.connector.connect(**params))


def ensure_database_exists(db_config: dict) -> None:
    target = _as_target(db_config)
    with _server(target, with_database=False) as conn:
        conn.cursor().execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    """Create the time entry tables if missing. Safe to run on every start."""

    target = _as_target(db_config)
    ensure_database_exists(db_config)
    statements = list(_iter_sql_statements(_prepare_schema_sql(Path(schema_path).read_text(encoding="utf-8"))))

    with _server(target) as conn:
        cur = conn.cursor()
        for stmt in statements:
            cur.execute(stmt)
        conn.commit()
    logger.info("applied %d schema statements to %s", len(statements), target.database)


def list_tables(db_config: dict) -> list[str]:
    with _server(_as_target(db_config)) as conn:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
