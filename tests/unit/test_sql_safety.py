"""
Unit tests — SQL shape validator: empty, SELECT-only, keywords, nesting.
"""
import pytest
from src.governance.sql_safety import (
    PROHIBITED_KEYWORDS,
    find_prohibited_keyword,
    has_nested_select,
    strip_trailing_semicolons,
    validate_shape,
)
from src.governance.errors import RejectedQuery


def _kind(query):
    with pytest.raises(RejectedQuery) as exc_info:
        validate_shape(query)
    return exc_info.value.kind


_SAFE_SQL = """\
SELECT date, total_views
FROM daily_metrics
WHERE user_id = {{user_id}}
ORDER BY date DESC"""


def test_safe_sql_passes():
    assert validate_shape(_SAFE_SQL) == _SAFE_SQL


# ── Empty input ─────────────────────────────────────────

@pytest.mark.parametrize("query", ["", "   ", "\n\t  \n", None, 42])
def test_empty_or_non_string(query):
    assert _kind(query) == "empty_query"


def test_only_semicolons_is_not_select():
    assert _kind(";;;") == "not_select"


# ── Trailing semicolons ─────────────────────────────────

def test_trailing_semicolons_stripped():
    assert validate_shape("SELECT 1;;  \n") == "SELECT 1"


def test_strip_trims_whitespace():
    assert strip_trailing_semicolons("  SELECT 1 ; ") == "SELECT 1 "


def test_inner_semicolon_kept():
    assert strip_trailing_semicolons("SELECT ';' AS x;") == "SELECT ';' AS x"


# ── SELECT only ─────────────────────────────────────────

@pytest.mark.parametrize("query", [
    "DROP TABLE videos; SELECT 1",
    "WITH t AS (SELECT 1) SELECT * FROM t",
    "EXPLAIN SELECT 1",
    "SHOW TABLES",
    "SELECT",
    "SELECT*FROM creators",
    "(SELECT 1)",
])
def test_not_select(query):
    assert _kind(query) == "not_select"


@pytest.mark.parametrize("query", ["select 1", "SeLeCt 1", "SELECT\n1", "SELECT\t1", "  SELECT 1"])
def test_select_case_and_whitespace(query):
    assert validate_shape(query).lower().startswith("select")


def test_not_select_reason():
    with pytest.raises(RejectedQuery, match="Only SELECT statements are allowed"):
        validate_shape("UPDATE videos SET view_count = 0")


# ── Prohibited keywords ─────────────────────────────────

@pytest.mark.parametrize("keyword", PROHIBITED_KEYWORDS)
def test_each_keyword_followed_by_space(keyword):
    query = f"SELECT 1 FROM creators WHERE x IN (SELECT {keyword} foo)"
    assert _kind(query) == "prohibited_keyword"


@pytest.mark.parametrize("keyword", PROHIBITED_KEYWORDS)
def test_each_keyword_followed_by_newline(keyword):
    query = f"SELECT 1 FROM creators\n{keyword.upper()}\nfoo"
    assert _kind(query) == "prohibited_keyword"


def test_stacked_statement_rejected():
    query = "SELECT * FROM creators; DELETE FROM videos"
    assert _kind(query) == "prohibited_keyword"


def test_keyword_inside_string_literal_rejected():
    """Coarse by design: a quoted 'update ' still trips the filter."""
    query = "SELECT * FROM creators WHERE bio = 'daily update here'"
    assert _kind(query) == "prohibited_keyword"


def test_keyword_as_identifier_prefix_allowed():
    query = "SELECT updated_by, created_at FROM creators"
    assert validate_shape(query) == query


def test_keyword_at_end_of_statement_allowed():
    """No trailing whitespace after the keyword -> not matched."""
    query = "SELECT username FROM creators ORDER BY copy"
    assert find_prohibited_keyword(query) is None


def test_keyword_detail_recorded():
    with pytest.raises(RejectedQuery) as exc_info:
        validate_shape("SELECT 1; truncate videos")
    assert exc_info.value.detail == "truncate"
    assert exc_info.value.reason == "Only read-only queries are permitted"


# ── Nested SELECT heuristic ─────────────────────────────

def test_nested_select_rejected():
    query = "SELECT * FROM (SELECT 1) select_alias"
    assert _kind(query) == "nested_select"


def test_parenthesised_union_rejected():
    query = "SELECT a FROM (SELECT a FROM creators) select a"
    assert has_nested_select(query)


def test_subquery_without_marker_allowed():
    query = "SELECT username FROM creators WHERE follower_count > (SELECT avg(follower_count) FROM creators)"
    assert validate_shape(query) == query


def test_marker_requires_two_selects():
    assert not has_nested_select("count(x) select")
    assert not has_nested_select("SELECT 1")


def test_marker_is_case_sensitive():
    """Only the lower-case literal ``) select`` counts."""
    assert not has_nested_select("SELECT * FROM (SELECT 1) SELECT")


# ── Precedence ──────────────────────────────────────────

def test_not_select_wins_over_keyword():
    assert _kind("DELETE FROM videos") == "not_select"


def test_keyword_wins_over_nesting():
    assert _kind("SELECT * FROM (SELECT 1) select drop table") == "prohibited_keyword"
