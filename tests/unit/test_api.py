"""
API tests -- FastAPI endpoints via TestClient (no live server needed).
"""
import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from src.api.main import app
from src.api.deps import get_tenant_id, get_tools
from src.copilot.tools import AnalyticsTools

client = TestClient(app)

_HEADERS = {"X-Tenant-Id": "abc-123"}


class _RecordingExecutor:
    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error
        self.calls = []

    def __call__(self, engine, sql, params=None, timeout_ms=None):
        self.calls.append((sql, params))
        if self.error is not None:
            raise self.error
        return self.rows


@pytest.fixture
def executor():
    ex = _RecordingExecutor(rows=[{"n": 1}])

    def _tools(tenant_id: str = Depends(get_tenant_id)):
        return AnalyticsTools(None, tenant_id, executor=ex, audit_logger=None)

    app.dependency_overrides[get_tools] = _tools
    yield ex
    app.dependency_overrides.clear()


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ── /query ──────────────────────────────────────────────

def test_query_requires_tenant(executor):
    resp = client.post("/query", json={"query": "SELECT 1"})
    assert resp.status_code == 401
    assert executor.calls == []


def test_query_blank_tenant_rejected(executor):
    resp = client.post("/query", json={"query": "SELECT 1"}, headers={"X-Tenant-Id": "  "})
    assert resp.status_code == 401


def test_query_success(executor):
    resp = client.post(
        "/query",
        json={"query": "SELECT count(*) AS n FROM videos WHERE user_id = {{user_id}}"},
        headers=_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["query"] == "SELECT count(*) AS n FROM videos WHERE user_id = 'abc-123' LIMIT 100"
    assert data["row_count"] == 1
    assert data["rows"] == [{"n": 1}]
    assert executor.calls[0][0] == data["query"]


def test_query_rejected_is_422(executor):
    resp = client.post("/query", json={"query": "SELECT * FROM videos"}, headers=_HEADERS)
    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert detail["kind"] == "missing_tenant_placeholder"
    assert executor.calls == []


def test_query_execution_error_is_500(executor):
    executor.error = RuntimeError("boom")
    resp = client.post("/query", json={"query": "SELECT 1"}, headers=_HEADERS)
    assert resp.status_code == 500
    assert "boom" in resp.json()["detail"]


# ── /query/prepare ──────────────────────────────────────

def test_prepare_dry_run():
    resp = client.post(
        "/query/prepare",
        json={"query": "SELECT * FROM daily_metrics WHERE user_id = {{ user_id }};"},
        headers=_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json()["query"] == "SELECT * FROM daily_metrics WHERE user_id = 'abc-123' LIMIT 100"


@pytest.mark.parametrize("query,kind", [
    ("", "empty_query"),
    ("DROP TABLE videos; SELECT 1", "not_select"),
    ("SELECT 1; delete from videos", "prohibited_keyword"),
    ("SELECT * FROM (SELECT 1) select 2", "nested_select"),
])
def test_prepare_rejections(query, kind):
    resp = client.post("/query/prepare", json={"query": query}, headers=_HEADERS)
    assert resp.status_code == 422
    assert resp.json()["detail"]["kind"] == kind


def test_prepare_requires_tenant():
    resp = client.post("/query/prepare", json={"query": "SELECT 1"})
    assert resp.status_code == 401


# ── /query/tool ─────────────────────────────────────────

def test_tool_call(executor):
    resp = client.post(
        "/query/tool",
        json={"name": "get_overall_stats", "arguments": {}},
        headers=_HEADERS,
    )
    assert resp.status_code == 200
    assert "total_videos" in resp.json()
    assert all(params == {"tenant_id": "abc-123"} for _, params in executor.calls)


def test_tool_call_unknown(executor):
    resp = client.post("/query/tool", json={"name": "nope"}, headers=_HEADERS)
    assert resp.status_code == 200
    assert "Unknown tool" in resp.json()["error"]


# ── /schema ─────────────────────────────────────────────

def test_schema():
    resp = client.get("/schema")
    assert resp.status_code == 200
    data = resp.json()
    assert [t["name"] for t in data["tables"]] == ["videos", "daily_metrics", "creators"]
    assert data["tenant_scoped_tables"] == ["daily_metrics", "videos"]
    assert len(data["usage_rules"]) == 5


def test_schema_manifest_text():
    resp = client.get("/schema/manifest")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert "## daily_metrics" in resp.text


def test_agent_config():
    resp = client.get("/schema/agent")
    assert resp.status_code == 200
    data = resp.json()
    assert "Lumo AI" in data["system_prompt"]
    assert len(data["tools"]) == 5


def test_tool_call_backend_error_is_result(executor):
    executor.error = RuntimeError("connection refused")
    resp = client.post("/query/tool", json={"name": "get_video_metrics"}, headers=_HEADERS)
    assert resp.status_code == 200
    assert resp.json() == {"error": "Execution error: connection refused"}
