"""
core/database.py -- Engine construction for the relational stores.

The engine is built once by the application lifespan (or the CLI) and handed
to UserStore and SessionStore. Nothing in the codebase creates an engine at
import time.

Layer rule: core/ is the kernel. No imports from api/ or auth/.
"""

from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def create_db_engine(db_url: str) -> Engine:
    """Return an Engine for db_url.

    SQLite connections are shared across FastAPI's threadpool workers, so
    check_same_thread is disabled.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine
