"""
Query gate -- shape check -> tenant scope -> row limit.

``prepare`` is the only path by which model-authored SQL reaches the
executor.  It either returns the statement to run, or raises
``RejectedQuery`` for the first violated rule.  The gate holds no mutable
state and does no I/O, so one instance is shared across concurrent tool calls.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache

from src.governance.sql_safety import validate_shape
from src.governance.tenant_scope import enforce_scope, bind_scope
from src.governance.row_limit import enforce_limit, DEFAULT_ROW_LIMIT
from src.core.config import get_settings
from src.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PreparedQuery:
    """A gated statement plus the bind parameters it expects."""
    sql: str
    params: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class QueryGate:
    """Validate, scope and bound model-authored SQL.

    Parameters
    ----------
    default_limit : int
        Row cap appended to statements that carry no LIMIT of their own.
    """
    default_limit: int = DEFAULT_ROW_LIMIT

    def prepare(self, raw_query: str, tenant_id: str) -> str:
        """Return the executable statement with the tenant id inlined as a literal."""
        statement = validate_shape(raw_query)
        scoped = enforce_scope(statement, tenant_id)
        prepared = enforce_limit(scoped, self.default_limit)
        logger.info("Prepared query (%d chars -> %d chars)", len(raw_query), len(prepared))
        return prepared

    def prepare_bound(self, raw_query: str, tenant_id: str) -> PreparedQuery:
        """Like :meth:`prepare`, but the tenant id travels as a bind parameter."""
        statement = validate_shape(raw_query)
        scoped, params = bind_scope(statement, tenant_id)
        prepared = enforce_limit(scoped, self.default_limit)
        logger.info("Prepared bound query (%d chars, %d params)", len(prepared), len(params))
        return PreparedQuery(sql=prepared, params=params)


@lru_cache
def default_gate() -> QueryGate:
    """Gate configured from settings (``SQL_ROW_LIMIT``)."""
    return QueryGate(default_limit=get_settings().sql_row_limit)


def prepare(raw_query: str, tenant_id: str) -> str:
    return default_gate().prepare(raw_query, tenant_id)


def prepare_bound(raw_query: str, tenant_id: str) -> PreparedQuery:
    return default_gate().prepare_bound(raw_query, tenant_id)
