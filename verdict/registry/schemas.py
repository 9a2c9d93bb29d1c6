"""Pydantic models for the ruleset registry and its HTTP API."""

from typing import Any

from pydantic import BaseModel, Field

from verdict.rules.schemas import RuleTrace
from verdict.visualization.graph import RulesetGraph


# =============================================================================
# Registry Models
# =============================================================================


class RegistryEntryInfo(BaseModel):
    """Summary of a registered ruleset."""

    id: str
    name: str | None = None
    created_at: str


class TraceRun(BaseModel):
    """One recorded run of a registered ruleset."""

    id: str
    created_at: str
    facts: Any = None
    fired: list[str] = Field(default_factory=list)
    trace: list[RuleTrace] = Field(default_factory=list)

    @property
    def matched_count(self) -> int:
        return sum(1 for rule in self.trace if rule.matched)


# =============================================================================
# API Responses
# =============================================================================


class RulesetListResponse(BaseModel):
    """Response for listing registered rulesets."""

    rulesets: list[RegistryEntryInfo]
    total: int


class RulesetDetailResponse(BaseModel):
    """Detailed view of one registered ruleset."""

    id: str
    name: str | None = None
    created_at: str
    graph: RulesetGraph
    mermaid: str
    trace_count: int


class TraceSummary(BaseModel):
    """Short description of a recorded run."""

    id: str
    created_at: str
    fired_count: int
    matched_count: int


class TraceListResponse(BaseModel):
    """Response for listing recorded runs of a ruleset."""

    ruleset_id: str
    traces: list[TraceSummary]
    total: int
