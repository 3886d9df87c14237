"""
Agent tool-call audit log -- records every tool call -> SQL -> result cycle.

The table is created on application start-up via `ensure_log_table()`.
"""
from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.engine import Engine

from src.core.logging import get_logger

logger = get_logger(__name__)

_TABLE = "agent_query_logs"

_CREATE_SQL = f"""
CREATE TABLE IF NOT EXISTS {_TABLE} (
    id              SERIAL PRIMARY KEY,
    tenant_id       VARCHAR(100) NOT NULL,
    tool_name       VARCHAR(60) NOT NULL,
    raw_query       TEXT,
    prepared_sql    TEXT,
    row_count       INTEGER,
    accepted        BOOLEAN NOT NULL DEFAULT TRUE,
    rejection_kind  VARCHAR(40),
    error           TEXT,
    latency_ms      INTEGER,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_INSERT_SQL = text(f"""
    INSERT INTO {_TABLE}
        (tenant_id, tool_name, raw_query, prepared_sql, row_count,
         accepted, rejection_kind, error, latency_ms)
    VALUES
        (:tenant_id, :tool_name, :raw_query, :prepared_sql, :row_count,
         :accepted, :rejection_kind, :error, :latency_ms)
""")


def ensure_log_table(engine: Engine) -> None:
    """Create the audit log table if it doesn't exist."""
    with engine.connect() as conn:
        conn.execute(text(_CREATE_SQL))
        conn.commit()
    logger.info("Query log table '%s' ensured", _TABLE)


def log_query(
    engine: Engine,
    tenant_id: str,
    tool_name: str,
    raw_query: str | None,
    prepared_sql: str | None,
    row_count: int,
    latency_ms: int,
    rejection_kind: str | None = None,
    error: str | None = None,
) -> None:
    """Insert one row into the audit log.  Never raises."""
    params = {
        "tenant_id": tenant_id,
        "tool_name": tool_name,
        "raw_query": raw_query or None,
        "prepared_sql": prepared_sql or None,
        "row_count": row_count,
        "accepted": rejection_kind is None and error is None,
        "rejection_kind": rejection_kind,
        "error": error,
        "latency_ms": latency_ms,
    }

    try:
        with engine.connect() as conn:
            conn.execute(_INSERT_SQL, params)
            conn.commit()
        logger.debug("Tool call logged: tool=%s tenant_len=%d", tool_name, len(tenant_id))
    except Exception:
        logger.exception("Failed to log tool call -- continuing without logging")
