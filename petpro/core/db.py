# petpro/core/db.py
from __future__ import annotations
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from psycopg2.pool import ThreadedConnectionPool

from petpro.core.config import settings

_pool: Optional[ThreadedConnectionPool] = None
_pool_lock = threading.Lock()


class UniqueViolationError(Exception):
    """A unique constraint rejected a write; `field` names the colliding input when known."""

    def __init__(self, field: Optional[str] = None, constraint: Optional[str] = None) -> None:
        super().__init__(constraint or field or "unique violation")
        self.field = field
        self.constraint = constraint


def _get_pool() -> ThreadedConnectionPool:
    global _pool
    if _pool is None:
        with _pool_lock:
            if _pool is None:
                _pool = ThreadedConnectionPool(
                    settings.PG_POOL_MIN, settings.PG_POOL_MAX,
                    host=settings.PG_HOST,
                    port=settings.PG_PORT,
                    dbname=settings.PG_DB,
                    user=settings.PG_USER,
                    password=settings.PG_PASSWORD,
                    sslmode=settings.PG_SSLMODE,
                )
    return _pool


@contextmanager
def get_conn() -> Iterator:
    """One connection, one transaction: commit on success, rollback on any exception."""
    pool = _get_pool()
    conn = pool.getconn()
    try:
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        pool.putconn(conn)


def close_pool() -> None:
    global _pool
    with _pool_lock:
        if _pool is not None:
            _pool.closeall()
            _pool = None
