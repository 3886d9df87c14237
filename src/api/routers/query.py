"""POST /query -- gated execution of model-written SQL for the session tenant."""
from __future__ import annotations

from pydantic import BaseModel, Field
from fastapi import APIRouter, Depends, HTTPException

from src.api.deps import get_tenant_id, get_tools
from src.copilot.tools import AnalyticsTools
from src.governance.errors import RejectedQuery
from src.governance.query_gate import default_gate
from src.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


class QueryRequest(BaseModel):
    query: str = Field(..., max_length=10_000, description="SQL SELECT statement written by the agent")


class QueryResponse(BaseModel):
    query: str
    row_count: int
    rows: list[dict]


class PrepareResponse(BaseModel):
    query: str


class ToolCallRequest(BaseModel):
    name: str = Field(..., description="Tool name, e.g. 'get_video_metrics'")
    arguments: dict = Field(default_factory=dict)


@router.post("", response_model=QueryResponse)
def query_endpoint(req: QueryRequest, tools: AnalyticsTools = Depends(get_tools)):
    """Gate -> execute -> rows.  Rejections map to 422."""
    result = tools.run_custom_analytics_query(req.query)
    if "kind" in result:
        raise HTTPException(status_code=422, detail={"kind": result["kind"], "reason": result["error"]})
    if "error" in result:
        raise HTTPException(status_code=500, detail=result["error"])
    return QueryResponse(**result)


@router.post("/prepare", response_model=PrepareResponse)
def prepare_endpoint(req: QueryRequest, tenant_id: str = Depends(get_tenant_id)):
    """Dry-run: return the statement the gate would execute."""
    try:
        prepared = default_gate().prepare(req.query, tenant_id)
    except RejectedQuery as exc:
        raise HTTPException(status_code=422, detail={"kind": exc.kind, "reason": exc.reason})
    return PrepareResponse(query=prepared)


@router.post("/tool")
def tool_endpoint(req: ToolCallRequest, tools: AnalyticsTools = Depends(get_tools)):
    """Invoke any agent tool by name; errors come back inside the result."""
    return tools.call(req.name, req.arguments)
