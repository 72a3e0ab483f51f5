from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import psycopg2
from psycopg2 import sql
from psycopg2.pool import SimpleConnectionPool

from oxipay_adapter.config import Settings

_pool: SimpleConnectionPool | None = None


def init_pool(cfg: Settings) -> None:
    global _pool
    if _pool is not None:
        return
    if not cfg.db_enabled:
        return
    _pool = SimpleConnectionPool(1, 10, dsn=cfg.db_dsn)


@contextmanager
def get_conn(cfg: Settings) -> Iterator[psycopg2.extensions.connection]:
    """Yield a pooled connection running one transaction.

    Commits when the block exits cleanly, rolls back otherwise. Yields
    ``None`` when no database is configured.
    """
    if _pool is None:
        init_pool(cfg)
    if _pool is None:
        # DB not configured
        yield None  # type: ignore[misc]
        return
    conn: psycopg2.extensions.connection | None = None
    try:
        # Attempt to obtain a healthy connection (retry once on closed connections)
        for attempt in range(2):
            conn = _pool.getconn()
            try:
                if cfg.db_schema:
                    with conn.cursor() as cur:
                        cur.execute(sql.SQL("SET search_path TO {}").format(sql.Identifier(cfg.db_schema)))
                break
            except (psycopg2.OperationalError, psycopg2.InterfaceError):
                _pool.putconn(conn, close=True)
                conn = None
                if attempt == 1:
                    raise
        if conn is None:
            yield None  # type: ignore[misc]
            return
        yield conn
        conn.commit()
    except Exception:
        if conn is not None:
            conn.rollback()
        raise
    finally:
        if conn is not None:
            _pool.putconn(conn)
