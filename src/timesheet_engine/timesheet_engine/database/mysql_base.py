from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, time, timedelta
from typing import Any, Dict, Iterator, List, Optional

import mysql.connector
import pytz

from ..core.exceptions import StoreUnavailable
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Surface driver failures as StoreUnavailable (no internal retry)."""

    try:
        yield
    except mysql.connector.Error as exc:
        logger.exception("time entry store failed during %s", action)
        raise StoreUnavailable(f"Time entry store unavailable ({action})") from exc


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def to_db_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """Aware instant -> naive UTC for DATETIME columns."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(pytz.utc).replace(tzinfo=None)


def from_db_datetime(value: Any) -> Optional[datetime]:
    """Naive UTC DATETIME column -> aware instant."""

    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)


def normalize_mysql_time(value: Any) -> Optional[time]:
    """TIME column -> datetime.time.

    Depending on the connector build the value arrives as a time, a timedelta
    since midnight or an 'HH:MM[:SS]' string.
    """

    if value is None or isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        seconds = int(value.total_seconds()) % 86400
        return time(seconds // 3600, seconds % 3600 // 60, seconds % 60)
    if isinstance(value, str):
        fields = [int(p) for p in value.strip().split(":") if p]
        if len(fields) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        return time(*fields[:3])
    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")
