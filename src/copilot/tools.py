"""
Agent tool handlers -- the only way the model touches the database.

Each ``AnalyticsTools`` instance is bound to one authenticated tenant.  The
fixed tools build their own parameterised SQL; ``run_custom_analytics_query``
accepts model-written SQL and sends it through the query gate first.

Failures never escape a tool call: gate rejections and execution errors are
returned as ``{"error": ...}`` results so the model can reformulate.
"""
from __future__ import annotations

import datetime
from typing import Any, Callable

from sqlalchemy.engine import Engine

from src.governance.errors import RejectedQuery
from src.governance.query_gate import QueryGate, PreparedQuery
from src.governance.tenant_scope import TENANT_BIND_PARAM
from src.db.executor import execute_readonly
from src.db.query_log import log_query
from src.core.config import Settings, get_settings
from src.core.logging import get_logger, preview
from src.core.utils import timer, truncate

logger = get_logger(__name__)

Executor = Callable[..., list[dict[str, Any]]]
AuditLogger = Callable[..., None]

_VIDEO_SORT_COLUMNS = {
    "engagement": "engagement_rate",
    "views": "view_count",
    "likes": "like_count",
    "recent": "video_created_at",
}

MAX_LOOKBACK_DAYS = 3650

_CUSTOM_QUERY_DESCRIPTION = (
    "Run a read-only SQL SELECT query against the analytics schema. "
    "Include {{user_id}} when referencing user-scoped tables (videos, daily_metrics)."
)


class AnalyticsTools:
    """Tool handlers scoped to a single tenant.

    Parameters
    ----------
    engine : Engine
        Shared SQLAlchemy engine, created once at start-up.
    tenant_id : str
        Identifier from the authenticated session.  Never taken from the model.
    settings : Settings, optional
        Defaults to ``get_settings()``.
    executor : callable, optional
        ``(engine, sql, params, timeout_ms=...) -> rows``; defaults to
        :func:`execute_readonly`.
    audit_logger : callable, optional
        Defaults to :func:`log_query`.  Pass ``None`` to disable auditing.
    """

    def __init__(
        self,
        engine: Engine | None,
        tenant_id: str,
        settings: Settings | None = None,
        executor: Executor = execute_readonly,
        audit_logger: AuditLogger | None = log_query,
    ):
        if not tenant_id:
            raise ValueError("tenant_id is required")
        self.engine = engine
        self.tenant_id = tenant_id
        self.settings = settings or get_settings()
        self.gate = QueryGate(default_limit=self.settings.sql_row_limit)
        self._execute = executor
        self._audit = audit_logger

    # ── Internals ───────────────────────────────────────

    def _run(self, sql: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        return self._execute(
            self.engine, sql, params, timeout_ms=self.settings.query_timeout_ms,
        )

    def _clamp_limit(self, limit: int) -> int:
        return max(1, min(int(limit), self.settings.sql_row_limit))

    def _record(self, tool_name: str, **fields: Any) -> None:
        if self._audit is None or self.engine is None:
            return
        self._audit(self.engine, tenant_id=self.tenant_id, tool_name=tool_name, **fields)

    def _prepare(self, query: str) -> PreparedQuery:
        if self.settings.tenant_binding == "parameter":
            return self.gate.prepare_bound(query, self.tenant_id)
        return PreparedQuery(sql=self.gate.prepare(query, self.tenant_id))

    # ── Fixed tools ─────────────────────────────────────

    def get_video_metrics(self, limit: int = 10, sort_by: str = "engagement") -> dict[str, Any]:
        """Top videos of the tenant, sorted by the requested metric."""
        column = _VIDEO_SORT_COLUMNS.get(sort_by)
        if column is None:
            raise ValueError(
                f"Unknown sort '{sort_by}'. Allowed: {', '.join(_VIDEO_SORT_COLUMNS)}"
            )
        sql = (
            "SELECT tiktok_video_id, description, view_count, like_count, "
            "comment_count, share_count, engagement_rate, video_created_at "
            f"FROM videos WHERE user_id = :{TENANT_BIND_PARAM} "
            f"ORDER BY {column} DESC NULLS LAST LIMIT :limit"
        )
        rows = self._run(sql, {TENANT_BIND_PARAM: self.tenant_id, "limit": self._clamp_limit(limit)})
        return {
            "videos": [
                {
                    "id": r["tiktok_video_id"],
                    "description": truncate(r.get("description")),
                    "views": r.get("view_count"),
                    "likes": r.get("like_count"),
                    "comments": r.get("comment_count"),
                    "shares": r.get("share_count"),
                    "engagement_rate": r.get("engagement_rate"),
                    "created_at": r.get("video_created_at"),
                }
                for r in rows
            ],
            "count": len(rows),
        }

    def get_daily_metrics(self, days: int = 7, today: datetime.date | None = None) -> dict[str, Any]:
        """Daily metrics for the last *days* days plus period totals."""
        days = max(1, min(int(days), MAX_LOOKBACK_DAYS))
        start_date = (today or datetime.date.today()) - datetime.timedelta(days=days)
        sql = (
            "SELECT date, total_views, total_likes, total_comments, total_shares, "
            "follower_count, avg_engagement_rate "
            f"FROM daily_metrics WHERE user_id = :{TENANT_BIND_PARAM} "
            "AND date >= :start_date ORDER BY date DESC"
        )
        rows = self._run(sql, {TENANT_BIND_PARAM: self.tenant_id, "start_date": start_date})

        totals = {"views": 0, "likes": 0, "comments": 0, "shares": 0}
        for r in rows:
            totals["views"] += r.get("total_views") or 0
            totals["likes"] += r.get("total_likes") or 0
            totals["comments"] += r.get("total_comments") or 0
            totals["shares"] += r.get("total_shares") or 0

        return {
            "period": f"Last {days} days",
            "totals": totals,
            "daily_breakdown": [
                {
                    "date": r["date"],
                    "views": r.get("total_views"),
                    "likes": r.get("total_likes"),
                    "engagement": r.get("avg_engagement_rate"),
                    "followers": r.get("follower_count"),
                }
                for r in rows
            ],
        }

    def get_overall_stats(self) -> dict[str, Any]:
        """Account-level summary across all videos."""
        params = {TENANT_BIND_PARAM: self.tenant_id}
        stats_rows = self._run(
            "SELECT count(*) AS total_videos, sum(view_count) AS total_views, "
            "sum(like_count) AS total_likes, avg(engagement_rate) AS avg_engagement "
            f"FROM videos WHERE user_id = :{TENANT_BIND_PARAM}",
            params,
        )
        latest_rows = self._run(
            "SELECT follower_count FROM daily_metrics "
            f"WHERE user_id = :{TENANT_BIND_PARAM} ORDER BY date DESC LIMIT 1",
            params,
        )
        stats = stats_rows[0] if stats_rows else {}
        latest = latest_rows[0] if latest_rows else {}
        return {
            "total_videos": stats.get("total_videos") or 0,
            "total_views": stats.get("total_views") or 0,
            "total_likes": stats.get("total_likes") or 0,
            "avg_engagement_rate": round(float(stats.get("avg_engagement") or 0), 2),
            "current_followers": latest.get("follower_count") or 0,
        }

    def find_similar_creators(
        self,
        min_followers: int | None = None,
        max_followers: int | None = None,
        limit: int = 10,
    ) -> dict[str, Any]:
        """Public creators within a follower-count range."""
        conditions: list[str] = []
        params: dict[str, Any] = {"limit": self._clamp_limit(limit)}
        if min_followers is not None:
            conditions.append("follower_count >= :min_followers")
            params["min_followers"] = int(min_followers)
        if max_followers is not None:
            conditions.append("follower_count <= :max_followers")
            params["max_followers"] = int(max_followers)

        sql = "SELECT username, follower_count, total_likes, video_count, bio FROM creators"
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        sql += " ORDER BY follower_count DESC NULLS LAST LIMIT :limit"

        rows = self._run(sql, params)
        return {
            "creators": [
                {
                    "username": r["username"],
                    "followers": r.get("follower_count"),
                    "total_likes": r.get("total_likes"),
                    "videos": r.get("video_count"),
                    "bio": truncate(r.get("bio")),
                }
                for r in rows
            ],
            "count": len(rows),
        }

    # ── Model-authored SQL ──────────────────────────────

    def run_custom_analytics_query(self, query: str) -> dict[str, Any]:
        """Gate, execute and audit a model-written SELECT."""
        tool_name = "run_custom_analytics_query"
        prepared: PreparedQuery | None = None
        rows: list[dict[str, Any]] = []
        response: dict[str, Any]
        audit: dict[str, Any] = {}

        with timer() as t:
            try:
                prepared = self._prepare(query)
                rows = self._run(prepared.sql, prepared.params)
                response = {"query": prepared.sql, "row_count": len(rows), "rows": rows}
            except RejectedQuery as exc:
                response = exc.to_dict()
                audit = {"rejection_kind": exc.kind, "error": exc.reason}
            except Exception as exc:
                logger.exception("Custom query execution failed: %s", preview(str(query)))
                response = {"error": f"Execution error: {exc}"}
                if prepared is not None:
                    response["query"] = prepared.sql
                audit = {"error": str(exc)}

        self._record(
            tool_name,
            raw_query=query if isinstance(query, str) else None,
            prepared_sql=prepared.sql if prepared else None,
            row_count=len(rows),
            latency_ms=t["elapsed_ms"],
            **audit,
        )
        return response

    # ── Dispatch ────────────────────────────────────────

    def call(self, name: str, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
        """Invoke tool *name* with model-supplied *arguments*."""
        handler = _TOOL_HANDLERS.get(name)
        if handler is None:
            return {"error": f"Unknown tool '{name}'. Available: {', '.join(_TOOL_HANDLERS)}"}
        try:
            return handler(self, **(arguments or {}))
        except (TypeError, ValueError, OverflowError) as exc:
            logger.warning("Tool %s called with bad arguments: %s", name, exc)
            return {"error": f"Invalid arguments for {name}: {exc}"}
        except Exception as exc:
            logger.exception("Tool %s failed", name)
            return {"error": f"Execution error: {exc}"}


_TOOL_HANDLERS: dict[str, Callable[..., dict[str, Any]]] = {
    "get_video_metrics": AnalyticsTools.get_video_metrics,
    "get_daily_metrics": AnalyticsTools.get_daily_metrics,
    "get_overall_stats": AnalyticsTools.get_overall_stats,
    "find_similar_creators": AnalyticsTools.find_similar_creators,
    "run_custom_analytics_query": AnalyticsTools.run_custom_analytics_query,
}


def tool_specs() -> list[dict[str, Any]]:
    """Function-calling descriptions of every tool, in JSON-schema form."""
    return [
        {
            "name": "get_video_metrics",
            "description": "Get video performance metrics for the authenticated user",
            "parameters": {
                "type": "object",
                "properties": {
                    "limit": {"type": "integer", "default": 10, "description": "Number of videos to return"},
                    "sort_by": {
                        "type": "string",
                        "enum": list(_VIDEO_SORT_COLUMNS),
                        "default": "engagement",
                        "description": "Sort videos by this metric",
                    },
                },
            },
        },
        {
            "name": "get_daily_metrics",
            "description": "Get daily performance metrics for a time period",
            "parameters": {
                "type": "object",
                "properties": {
                    "days": {"type": "integer", "default": 7, "description": "Number of days to look back"},
                },
            },
        },
        {
            "name": "get_overall_stats",
            "description": "Get overall account statistics and summary",
            "parameters": {"type": "object", "properties": {}},
        },
        {
            "name": "find_similar_creators",
            "description": "Find similar creators in the database based on follower count",
            "parameters": {
                "type": "object",
                "properties": {
                    "min_followers": {"type": "integer", "description": "Minimum follower count"},
                    "max_followers": {"type": "integer", "description": "Maximum follower count"},
                    "limit": {"type": "integer", "default": 10, "description": "Maximum number of results"},
                },
            },
        },
        {
            "name": "run_custom_analytics_query",
            "description": _CUSTOM_QUERY_DESCRIPTION,
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "minLength": 10,
                        "description": "SQL SELECT statement using tables documented in the schema manifest",
                    },
                },
                "required": ["query"],
            },
        },
    ]
