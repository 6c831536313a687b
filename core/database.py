"""
core/database.py -- Engine construction and schema registry.

One Engine (and therefore one connection pool) is created per application and
handed to every store. Tables from auth/store.py and catalog/store.py register
on the shared `metadata` so a single create_all() covers the whole schema.

SQLAlchemy Core keeps the backend swappable: SQLite for development and
tests, PostgreSQL in production is a DATABASE_URL change.
"""

from __future__ import annotations

import logging

from sqlalchemy import MetaData, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("storefront.database")

metadata = MetaData()

# Range of a 64-bit INTEGER primary key. sqlite3 raises OverflowError (not a
# SQLAlchemy error) for Python ints outside it, so callers bound ids first.
MIN_ROW_ID = -(2**63)
MAX_ROW_ID = 2**63 - 1


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


def _configure_sqlite(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and register casefold() on a new connection.

    Set per-connection because SQLite PRAGMAs and user functions are not
    inherited by new connections from the pool. SQLite's own lower() folds
    ASCII only, so case-insensitive matching on accented text goes through
    casefold() instead.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.create_function("casefold", 1, _casefold, deterministic=True)


def create_db_engine(db_url: str) -> Engine:
    """Build an Engine for db_url with the SQLite tweaks the API needs.

    check_same_thread=False is required because FastAPI runs sync route
    handlers in a threadpool, so a pooled connection may be used from a
    different thread than the one that opened it.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _configure_sqlite)
    return engine


def ping(engine: Engine) -> bool:
    """Return True if the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Database ping failed", exc_info=True)
        return False
    return True
