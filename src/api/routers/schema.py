"""
GET /schema, GET /schema/manifest, GET /schema/agent -- metadata endpoints.
"""
from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from src.copilot.prompt import build_system_prompt
from src.copilot.tools import tool_specs
from src.governance.schema_manifest import load_schema_manifest, render_manifest

router = APIRouter()


class ColumnItem(BaseModel):
    name: str
    type: str
    description: str


class TableItem(BaseModel):
    name: str
    description: str
    tenant_scoped: bool
    columns: list[ColumnItem]


class SchemaResponse(BaseModel):
    tables: list[TableItem]
    tenant_scoped_tables: list[str]
    usage_rules: list[str]


class AgentConfigResponse(BaseModel):
    system_prompt: str
    tools: list[dict]


@router.get("/schema", response_model=SchemaResponse)
def schema_catalog() -> SchemaResponse:
    """Return the full schema manifest as JSON."""
    manifest = load_schema_manifest()
    return SchemaResponse(
        tables=[TableItem(**t) for t in manifest.get_tables_list()],
        tenant_scoped_tables=sorted(manifest.tenant_scoped_tables()),
        usage_rules=manifest.usage_rules,
    )


@router.get("/schema/manifest", response_class=PlainTextResponse)
def schema_manifest_text() -> str:
    """Return the manifest exactly as the model sees it."""
    return render_manifest()


@router.get("/schema/agent", response_model=AgentConfigResponse)
def agent_config() -> AgentConfigResponse:
    """System prompt and tool descriptions for the agent runtime."""
    return AgentConfigResponse(system_prompt=build_system_prompt(), tools=tool_specs())
