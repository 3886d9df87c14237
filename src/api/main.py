"""
FastAPI application entry-point.
"""
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routers import query, schema
from src.db.connection import create_db_engine
from src.db.query_log import ensure_log_table
from src.core.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = create_db_engine()
    try:
        ensure_log_table(engine)
    except Exception:
        logger.warning("Could not ensure query log table (DB may not be available)")
    app.state.engine = engine
    try:
        yield
    finally:
        engine.dispose()
        logger.info("DB engine disposed")


app = FastAPI(
    title="Creator Analytics Gate",
    version="0.1.0",
    description="Tenant-scoped, read-only SQL tools for an analytics agent",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(query.router, prefix="/query", tags=["Query"])
app.include_router(schema.router, tags=["Schema"])


@app.get("/health")
def health():
    return {"status": "ok"}
