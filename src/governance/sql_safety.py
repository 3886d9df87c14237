"""
Deterministic SQL shape checks (non-LLM).

These checks are the first stage of the query gate.  They operate purely on
the SQL text -- no parser, no database round-trip.

Checks performed (in order, first failure wins):
  1. Query must be a non-empty string
  2. Trailing semicolons are stripped
  3. Statement must start with SELECT followed by whitespace
  4. No prohibited keyword (INSERT, UPDATE, DROP, COPY ...) followed by
     a space or newline anywhere in the text, subqueries and CTEs included
  5. No ``) select`` nesting when SELECT appears more than once

The keyword filter is deliberately coarse: ``update `` inside a string
literal is rejected, ``updated_by`` is not.
"""
from __future__ import annotations

import re

from src.governance.errors import (
    RejectedQuery,
    EMPTY_QUERY,
    NOT_SELECT,
    PROHIBITED_KEYWORD,
    NESTED_SELECT,
)
from src.core.logging import get_logger, preview

logger = get_logger(__name__)

PROHIBITED_KEYWORDS: tuple[str, ...] = (
    "insert",
    "update",
    "delete",
    "alter",
    "drop",
    "create",
    "replace",
    "truncate",
    "grant",
    "revoke",
    "comment",
    "copy",
    "attach",
    "vacuum",
)

# ── Compiled patterns ────────────────────────────────────

_TRAILING_SEMICOLONS = re.compile(r";+\s*$")

_LEADING_SELECT = re.compile(r"^select\s", re.IGNORECASE)

_SELECT_WORD = re.compile(r"select", re.IGNORECASE)

_NESTED_MARKER = ") select"


def strip_trailing_semicolons(query: str) -> str:
    """Trim *query* and drop any run of trailing ``;`` (plus whitespace)."""
    return _TRAILING_SEMICOLONS.sub("", query.strip())


def find_prohibited_keyword(query: str) -> str | None:
    """Return the first prohibited keyword present in *query*, or ``None``.

    A keyword counts only when followed by a space or a newline.
    """
    lower = query.lower()
    for keyword in PROHIBITED_KEYWORDS:
        if f"{keyword} " in lower or f"{keyword}\n" in lower:
            return keyword
    return None


def has_nested_select(query: str) -> bool:
    """Shallow nesting heuristic: several SELECTs and a ``) select`` sequence."""
    return len(_SELECT_WORD.findall(query)) > 1 and _NESTED_MARKER in query


def validate_shape(query: str) -> str:
    """Validate that *query* is a single read-only SELECT.

    Returns the normalised statement (trimmed, trailing semicolons removed).

    Raises
    ------
    RejectedQuery
        On the first violated rule.
    """
    if not isinstance(query, str) or not query:
        raise RejectedQuery(EMPTY_QUERY, "Query must be a non-empty string")

    if not query.strip():
        raise RejectedQuery(EMPTY_QUERY, "Query must not be empty")

    statement = strip_trailing_semicolons(query)

    if not _LEADING_SELECT.match(statement):
        logger.warning("Rejected non-SELECT statement: %s", preview(statement))
        raise RejectedQuery(NOT_SELECT, "Only SELECT statements are allowed")

    keyword = find_prohibited_keyword(statement)
    if keyword is not None:
        logger.warning("Rejected prohibited keyword '%s': %s", keyword, preview(statement))
        raise RejectedQuery(
            PROHIBITED_KEYWORD,
            "Only read-only queries are permitted",
            detail=keyword,
        )

    if has_nested_select(statement):
        logger.warning("Rejected nested SELECT: %s", preview(statement))
        raise RejectedQuery(NESTED_SELECT, "Nested SELECT statements are not allowed")

    return statement
