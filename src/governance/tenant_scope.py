"""
Tenant scoping for model-authored SQL.

Tables listed in ``TENANT_SCOPED_TABLES`` hold one row set per tenant.  Any
query touching them must carry the ``{{user_id}}`` placeholder, which is then
replaced by the session's tenant id -- either as a quoted SQL literal
(``enforce_scope``) or as a driver bind parameter (``bind_scope``).

Table detection is substring matching on the lower-cased text: a table is
referenced when its name is followed by whitespace, a dot, a closing paren,
a comma, or the end of the statement.  Table names must therefore not be
substrings of unrelated identifiers.

The tenant id is trusted: it comes from the authenticated session, never from
the model, and is inserted without escaping.

Keep ``TENANT_SCOPED_TABLES`` in sync with the ``tenant_scoped`` flags in
``semantic_layer/schema_manifest.yml``.
"""
from __future__ import annotations

import re

from src.governance.errors import RejectedQuery, MISSING_TENANT_PLACEHOLDER
from src.core.logging import get_logger, preview

logger = get_logger(__name__)

TENANT_SCOPED_TABLES: tuple[str, ...] = ("videos", "daily_metrics")

TENANT_PLACEHOLDER = "{{user_id}}"
TENANT_BIND_PARAM = "tenant_id"

_PLACEHOLDER_RE = re.compile(r"{{\s*user_id\s*}}", re.IGNORECASE)

_TABLE_RES = {
    table: re.compile(rf"{re.escape(table)}(?=[\s.),]|$)")
    for table in TENANT_SCOPED_TABLES
}

_MISSING_REASON = (
    f"Queries touching user-scoped tables must include {TENANT_PLACEHOLDER} placeholder"
)


def referenced_tenant_tables(query: str) -> list[str]:
    """Return the tenant-scoped tables *query* appears to reference."""
    lower = query.lower()
    return [table for table, pattern in _TABLE_RES.items() if pattern.search(lower)]


def requires_scope(query: str) -> bool:
    return bool(referenced_tenant_tables(query))


def has_placeholder(query: str) -> bool:
    return _PLACEHOLDER_RE.search(query) is not None


def _check_placeholder(query: str) -> bool:
    """Return whether scoping applies; raise if it applies but is unmet."""
    tables = referenced_tenant_tables(query)
    if not tables:
        return False
    if not has_placeholder(query):
        logger.warning(
            "Rejected unscoped query on %s: %s", ", ".join(tables), preview(query),
        )
        raise RejectedQuery(MISSING_TENANT_PLACEHOLDER, _MISSING_REASON)
    return True


def enforce_scope(query: str, tenant_id: str) -> str:
    """Replace every placeholder with ``'<tenant_id>'``.

    Queries that touch no tenant-scoped table are returned untouched.

    Raises
    ------
    RejectedQuery
        If a tenant-scoped table is referenced without the placeholder.
    """
    if not _check_placeholder(query):
        return query
    literal = f"'{tenant_id}'"
    return _PLACEHOLDER_RE.sub(lambda _m: literal, query)


def bind_scope(query: str, tenant_id: str) -> tuple[str, dict[str, str]]:
    """Parameterised counterpart of :func:`enforce_scope`.

    Each placeholder becomes ``:tenant_id`` and the returned params dict
    carries the value for the driver to bind.
    """
    if not _check_placeholder(query):
        return query, {}
    marker = f":{TENANT_BIND_PARAM}"
    return _PLACEHOLDER_RE.sub(lambda _m: marker, query), {TENANT_BIND_PARAM: tenant_id}
