"""
Integration tests -- tool-call audit log.

Requires live Postgres.
"""
from __future__ import annotations

import pytest
from sqlalchemy import text

try:
    from src.db.connection import create_db_engine

    engine = create_db_engine()
    with engine.connect() as _conn:
        _conn.execute(text("SELECT 1"))
    DB_AVAILABLE = True
except Exception:
    DB_AVAILABLE = False

pytestmark = pytest.mark.skipif(not DB_AVAILABLE, reason="Postgres not reachable")

from src.db.query_log import ensure_log_table, log_query


def _count() -> int:
    with engine.connect() as conn:
        return conn.execute(text("SELECT COUNT(*) FROM agent_query_logs")).scalar()


def test_ensure_log_table_idempotent():
    """Calling ensure_log_table() multiple times must not raise."""
    ensure_log_table(engine)
    ensure_log_table(engine)


def test_log_table_exists():
    ensure_log_table(engine)
    with engine.connect() as conn:
        rows = conn.execute(text(
            "SELECT 1 FROM information_schema.tables "
            "WHERE table_name = 'agent_query_logs' "
            "AND table_schema = 'public'"
        )).fetchall()
    assert len(rows) == 1


def test_log_accepted_query():
    ensure_log_table(engine)
    before = _count()
    log_query(
        engine,
        tenant_id="pytest-tenant",
        tool_name="run_custom_analytics_query",
        raw_query="SELECT 1",
        prepared_sql="SELECT 1 LIMIT 100",
        row_count=1,
        latency_ms=3,
    )
    assert _count() == before + 1

    with engine.connect() as conn:
        row = conn.execute(text(
            "SELECT accepted, rejection_kind FROM agent_query_logs "
            "WHERE tenant_id = 'pytest-tenant' ORDER BY id DESC LIMIT 1"
        )).fetchone()
    assert row[0] is True
    assert row[1] is None


def test_log_rejected_query():
    ensure_log_table(engine)
    log_query(
        engine,
        tenant_id="pytest-tenant",
        tool_name="run_custom_analytics_query",
        raw_query="SELECT * FROM videos",
        prepared_sql=None,
        row_count=0,
        latency_ms=0,
        rejection_kind="missing_tenant_placeholder",
        error="Queries touching user-scoped tables must include {{user_id}} placeholder",
    )
    with engine.connect() as conn:
        row = conn.execute(text(
            "SELECT accepted, rejection_kind, prepared_sql FROM agent_query_logs "
            "WHERE tenant_id = 'pytest-tenant' ORDER BY id DESC LIMIT 1"
        )).fetchone()
    assert row[0] is False
    assert row[1] == "missing_tenant_placeholder"
    assert row[2] is None
