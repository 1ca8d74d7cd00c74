from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

import mysql.connector
import pytz

from ..core.exceptions import StoreUnavailable
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Connection + cursor for one unit of work, committed on success.

    IntegrityError is re-raised for the repository to interpret; any other driver error
    means the store itself is unhealthy and surfaces as StoreUnavailable.
    """

    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as e:
        raise StoreUnavailable("Attendance store is unreachable") from e

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.IntegrityError:
        _rollback(conn)
        raise
    except mysql.connector.Error as e:
        _rollback(conn)
        raise StoreUnavailable(f"Attendance store error: {e}") from e
    except Exception:
        _rollback(conn)
        raise
    finally:
        conn.close()


def _rollback(conn) -> None:
    try:
        conn.rollback()
    except mysql.connector.Error:
        logger.warning("rollback failed on a broken connection", exc_info=True)


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def to_db_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """Aware datetime -> naive UTC for DATETIME columns."""

    if value is None:
        return None
    if value.tzinfo is None:
        raise ValueError("naive datetime cannot be stored")
    return value.astimezone(pytz.utc).replace(tzinfo=None)


def from_db_datetime(value: Optional[datetime], tz) -> Optional[datetime]:
    if value is None:
        return None
    return pytz.utc.localize(value).astimezone(tz)
