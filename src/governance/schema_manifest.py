"""
Loads, parses, and caches the schema manifest YAML into typed objects.

The manifest is the documentation handed to the model:
  - tables, their columns and types
  - which tables are tenant-scoped
  - usage rules (scope by user_id, read-only access ...)

``render_manifest`` turns it into the markdown block embedded in the
agent's system prompt.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from functools import lru_cache
from typing import Any

import yaml

_MANIFEST_PATH = Path(__file__).resolve().parents[2] / "semantic_layer" / "schema_manifest.yml"


# ── Typed domain objects ─────────────────────────────────

@dataclass(frozen=True)
class Column:
    name: str
    type: str
    description: str = ""


@dataclass(frozen=True)
class Table:
    name: str
    description: str
    columns: list[Column] = field(default_factory=list)
    tenant_scoped: bool = False

    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]


@dataclass
class SchemaManifest:
    """Fully parsed schema manifest."""

    version: int
    tables: dict[str, Table]       # keyed by name
    usage_rules: list[str]

    def table(self, name: str) -> Table | None:
        return self.tables.get(name)

    def get_table_names(self) -> list[str]:
        return list(self.tables.keys())

    def tenant_scoped_tables(self) -> set[str]:
        return {t.name for t in self.tables.values() if t.tenant_scoped}

    def get_tables_list(self) -> list[dict[str, Any]]:
        """Return tables as a list of dicts (for API responses)."""
        result = []
        for t in self.tables.values():
            result.append({
                "name": t.name,
                "description": t.description,
                "tenant_scoped": t.tenant_scoped,
                "columns": [
                    {"name": c.name, "type": c.type, "description": c.description}
                    for c in t.columns
                ],
            })
        return result


# ── Parsing ──────────────────────────────────────────────

def _parse_column(raw: dict[str, Any]) -> Column:
    return Column(
        name=raw["name"],
        type=raw.get("type", "text"),
        description=raw.get("description", "") or "",
    )


def _parse_table(raw: dict[str, Any]) -> Table:
    return Table(
        name=raw["name"],
        description=raw.get("description", ""),
        columns=[_parse_column(c) for c in raw.get("columns") or []],
        tenant_scoped=bool(raw.get("tenant_scoped", False)),
    )


def _parse_manifest(raw_yaml: dict[str, Any]) -> SchemaManifest:
    tables = {t["name"]: _parse_table(t) for t in raw_yaml.get("tables", [])}
    return SchemaManifest(
        version=raw_yaml.get("version", 1),
        tables=tables,
        usage_rules=list(raw_yaml.get("usage_rules") or []),
    )


# ── Rendering ────────────────────────────────────────────

def _render_column(col: Column) -> str:
    line = f"- {col.name} ({col.type})"
    if col.description:
        line += f": {col.description}"
    return line


def render_manifest(manifest: SchemaManifest | None = None) -> str:
    """Render the manifest as the markdown text supplied to the model."""
    if manifest is None:
        manifest = load_schema_manifest()

    lines = ["# Analytics Schema Manifest (read-only)", ""]
    for table in manifest.tables.values():
        lines.append(f"## {table.name}")
        for col in table.columns:
            lines.append(_render_column(col))
        lines.append("")

    lines.append("## Usage Rules")
    for i, rule in enumerate(manifest.usage_rules, start=1):
        lines.append(f"{i}. {rule}")
    return "\n".join(lines) + "\n"


# ── Public API ───────────────────────────────────────────

@lru_cache
def load_schema_manifest() -> SchemaManifest:
    """Load and cache the schema manifest from YAML."""
    with open(_MANIFEST_PATH) as f:
        raw = yaml.safe_load(f)
    return _parse_manifest(raw)
