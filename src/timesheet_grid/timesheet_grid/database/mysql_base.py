from __future__ import annotations

import asyncio
import json
from contextlib import contextmanager
from decimal import Decimal
from functools import partial
from typing import Any, Callable, Dict, List, Optional, TypeVar

import mysql.connector

from ..core.exceptions import StorageError
from .connection import DatabaseConnection

T = TypeVar("T")


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """One connection + cursor per unit of work; commit on success, rollback on error.

    Connector errors are re-raised as StorageError so services only deal with
    domain exceptions.
    """

    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        raise StorageError(f"Database unavailable: {exc}") from exc

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as exc:
        conn.rollback()
        raise StorageError(str(exc)) from exc
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking connector call off the event loop."""
    return await asyncio.to_thread(partial(func, *args, **kwargs))


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def load_json_column(value: Any) -> Dict[str, Any]:
    """Decode a JSON column across connector implementations.

    mysql-connector can return JSON as:
    - str
    - bytes / bytearray
    - already-decoded dict (C extension with converters)
    """

    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        decoded = json.loads(value) if value.strip() else {}
        if not isinstance(decoded, dict):
            raise StorageError("JSON column does not contain an object")
        return decoded
    raise TypeError(f"Unsupported JSON column value type: {type(value)!r}")


def to_float(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, Decimal):
        return float(value)
    return float(value)
