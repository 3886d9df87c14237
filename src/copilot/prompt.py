"""
System prompt for the analytics agent.
"""
from __future__ import annotations

from src.governance.schema_manifest import render_manifest, SchemaManifest

_PREAMBLE = """\
You are Lumo AI, an analytics assistant for TikTok creators.
Use the available tools to retrieve real data and never guess values.
You have read-only access to the following database schema:
"""


def build_system_prompt(manifest: SchemaManifest | None = None) -> str:
    return _PREAMBLE + render_manifest(manifest)
