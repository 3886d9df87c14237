"""
RejectedQuery -- the single failure type raised by the query gate.

Every gate failure is terminal for the tool invocation that triggered it.
The ``kind`` identifies which rule fired; ``reason`` is the human-readable
message surfaced back to the model so it can reformulate its query.
"""
from __future__ import annotations

EMPTY_QUERY = "empty_query"
NOT_SELECT = "not_select"
PROHIBITED_KEYWORD = "prohibited_keyword"
NESTED_SELECT = "nested_select"
MISSING_TENANT_PLACEHOLDER = "missing_tenant_placeholder"

REJECTION_KINDS = (
    EMPTY_QUERY,
    NOT_SELECT,
    PROHIBITED_KEYWORD,
    NESTED_SELECT,
    MISSING_TENANT_PLACEHOLDER,
)


class RejectedQuery(ValueError):
    """A model-authored query that the gate refuses to execute."""

    def __init__(self, kind: str, reason: str, detail: str | None = None):
        if kind not in REJECTION_KINDS:
            raise ValueError(f"Unknown rejection kind '{kind}'")
        super().__init__(reason)
        self.kind = kind
        self.reason = reason
        self.detail = detail

    def to_dict(self) -> dict[str, str]:
        """Tool-result payload handed back to the model."""
        return {"error": self.reason, "kind": self.kind}

    def __repr__(self) -> str:
        return f"RejectedQuery(kind={self.kind!r}, reason={self.reason!r})"
