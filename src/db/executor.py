"""
Read-only SQL executor.

Every gated agent query runs through `execute_readonly`, which:
  1. Opens a READ ONLY transaction (Postgres-enforced)
  2. Applies a per-statement timeout (statement_timeout)
  3. Executes exactly one statement, binding only the supplied parameters
  4. Converts Decimal/date/datetime/UUID to JSON-safe Python types
"""
from __future__ import annotations

import decimal
import datetime
import re
import uuid
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Engine

from src.db.connection import readonly_connection
from src.core.config import get_settings
from src.core.logging import get_logger

logger = get_logger(__name__)

# Same shape SQLAlchemy's text() treats as a bind marker; "::" casts excluded.
_BIND_MARKER_RE = re.compile(r"(?<![:\w\\]):(\w+)(?!:)")


def escape_unbound_markers(sql: str, params: dict | None = None) -> str:
    """Escape every ``:name`` in *sql* that is not a key of *params*.

    Model-written SQL such as ``bio = 'dm me :links'`` must reach the
    database verbatim instead of becoming a missing bind parameter.
    """
    bound = params or {}
    return _BIND_MARKER_RE.sub(
        lambda m: m.group(0) if m.group(1) in bound else "\\" + m.group(0),
        sql,
    )


def _serialise_value(val: Any) -> Any:
    """Convert DB types to JSON-serialisable Python types."""
    if isinstance(val, decimal.Decimal):
        return float(val)
    if isinstance(val, (datetime.date, datetime.datetime)):
        return val.isoformat()
    if isinstance(val, datetime.timedelta):
        return str(val)
    if isinstance(val, uuid.UUID):
        return str(val)
    return val


def serialise_rows(columns: list[str], rows: list[tuple]) -> list[dict[str, Any]]:
    return [
        {col: _serialise_value(val) for col, val in zip(columns, row)}
        for row in rows
    ]


def execute_readonly(
    engine: Engine,
    sql: str,
    params: dict | None = None,
    timeout_ms: int | None = None,
) -> list[dict[str, Any]]:
    """Execute a read-only SQL query and return rows as serialisable dicts.

    Backend errors (syntax errors, timeouts, permission errors) propagate
    unchanged as SQLAlchemy exceptions.
    """
    if timeout_ms is None:
        timeout_ms = get_settings().query_timeout_ms
    logger.info("Executing SQL (%d chars, timeout=%dms)", len(sql), timeout_ms)

    with readonly_connection(engine) as conn:
        conn.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))

        result = conn.execute(text(escape_unbound_markers(sql, params)), params or {})
        columns = list(result.keys())
        rows = serialise_rows(columns, result.fetchall())

    logger.info("Returned %d rows", len(rows))
    return rows
