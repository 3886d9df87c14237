"""
Row-count ceiling for model-authored SQL.

Supplies a default LIMIT when none is present.  Existing limits are left as
they are, whatever their value.
"""
from __future__ import annotations

import re

DEFAULT_ROW_LIMIT = 100

_LIMIT_RE = re.compile(r"\blimit\s+\d+", re.IGNORECASE)


def has_limit(query: str) -> bool:
    return _LIMIT_RE.search(query) is not None


def enforce_limit(query: str, default_limit: int = DEFAULT_ROW_LIMIT) -> str:
    """Append `` LIMIT <default_limit>`` unless *query* already has a LIMIT."""
    if has_limit(query):
        return query
    return f"{query} LIMIT {int(default_limit)}"
