"""SQLAlchemy engine construction & read-only connections.

The engine is built once at process start-up (see ``src.api.main``) and
handed to whoever needs it.  Every agent query runs through
``readonly_connection``, which sets the transaction to READ ONLY before
anything else executes.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine

from src.core.config import Settings, get_settings
from src.core.logging import get_logger

logger = get_logger(__name__)


def create_db_engine(settings: Settings | None = None) -> Engine:
    """Build a pooled SQLAlchemy engine from *settings*."""
    settings = settings or get_settings()
    engine = create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        echo=False,
    )
    logger.info("DB engine created  host=%s  db=%s", settings.postgres_host, settings.postgres_db)
    return engine


@contextmanager
def readonly_connection(engine: Engine) -> Generator[Connection, None, None]:
    """Yield a connection set to READ ONLY transaction mode.

    Postgres refuses writes inside the transaction even if the SQL
    slipped past the gate.  The connection is returned to the pool on exit.
    """
    conn = engine.connect()
    try:
        conn.execute(text("SET TRANSACTION READ ONLY"))
        yield conn
    finally:
        conn.close()
