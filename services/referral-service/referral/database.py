"""Process-wide Postgres connection pool.

The pool is opened on first use and must be closed explicitly with
:func:`close_pool`, which the application lifespan does on shutdown.
"""

from __future__ import annotations

import logging
from threading import Lock

from psycopg import Connection, IsolationLevel
from psycopg_pool import ConnectionPool

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

_ISOLATION_LEVELS = {
    "read committed": IsolationLevel.READ_COMMITTED,
    "repeatable read": IsolationLevel.REPEATABLE_READ,
    "serializable": IsolationLevel.SERIALIZABLE,
}

_pool: ConnectionPool | None = None
_lock = Lock()


def _isolation_level(settings: Settings) -> IsolationLevel | None:
    if not settings.ledger_isolation_level:
        return None
    try:
        return _ISOLATION_LEVELS[settings.ledger_isolation_level]
    except KeyError as exc:
        raise ValueError(
            f"unsupported LEDGER_ISOLATION_LEVEL {settings.ledger_isolation_level!r}"
        ) from exc


def build_pool(settings: Settings) -> ConnectionPool:
    """Create an unopened pool configured from ``settings``."""
    kwargs: dict[str, str] = {}
    if settings.database_sslmode:
        kwargs["sslmode"] = settings.database_sslmode
    isolation_level = _isolation_level(settings)

    def configure(conn: Connection) -> None:
        if isolation_level is not None:
            conn.isolation_level = isolation_level

    return ConnectionPool(
        settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        kwargs=kwargs,
        configure=configure,
        open=False,
    )


def get_pool() -> ConnectionPool:
    """Return the shared pool, opening it on first call."""
    global _pool
    with _lock:
        if _pool is None:
            pool = build_pool(get_settings())
            pool.open()
            logger.info("ledger connection pool opened (max_size=%s)", pool.max_size)
            _pool = pool
        return _pool


def close_pool() -> None:
    """Close the shared pool if it was opened; later calls to :func:`get_pool` reopen it."""
    global _pool
    with _lock:
        if _pool is None:
            return
        pool, _pool = _pool, None
    pool.close()
    logger.info("ledger connection pool closed")
