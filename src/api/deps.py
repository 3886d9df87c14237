"""
Request-scoped dependencies: shared engine, session tenant, tool handlers.
"""
from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.engine import Engine

from src.copilot.tools import AnalyticsTools


def get_engine(request: Request) -> Engine | None:
    """The engine built in the application lifespan."""
    return getattr(request.app.state, "engine", None)


def get_tenant_id(x_tenant_id: str | None = Header(None)) -> str:
    """Tenant id established by the session layer in front of this service."""
    if x_tenant_id is None or not x_tenant_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_tenant_id.strip()


def get_tools(
    engine: Engine | None = Depends(get_engine),
    tenant_id: str = Depends(get_tenant_id),
) -> AnalyticsTools:
    return AnalyticsTools(engine, tenant_id)
