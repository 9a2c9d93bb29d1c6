"""Routes for inspecting registered rulesets and their recorded runs."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from verdict.core.errors import RulesetNotFoundError
from verdict.visualization.graph import RulesetGraph
from .schemas import (
    RegistryEntryInfo,
    RulesetDetailResponse,
    RulesetListResponse,
    TraceListResponse,
    TraceRun,
    TraceSummary,
)
from .service import RulesetRegistry, get_registry

router = APIRouter(prefix="/rulesets", tags=["Rulesets"])


def _require(registry: RulesetRegistry, ruleset_id: str) -> RegistryEntryInfo:
    try:
        return registry.require(ruleset_id)
    except RulesetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("", response_model=RulesetListResponse)
async def list_rulesets(registry: RulesetRegistry = Depends(get_registry)) -> RulesetListResponse:
    """List all registered rulesets."""
    entries = registry.list()
    return RulesetListResponse(rulesets=entries, total=len(entries))


@router.get("/{ruleset_id}", response_model=RulesetDetailResponse)
async def get_ruleset(
    ruleset_id: str, registry: RulesetRegistry = Depends(get_registry)
) -> RulesetDetailResponse:
    """Get a ruleset's graph, Mermaid source and trace count (by id or name)."""
    info = _require(registry, ruleset_id)

    return RulesetDetailResponse(
        id=info.id,
        name=info.name,
        created_at=info.created_at,
        graph=registry.get_graph(info.id),
        mermaid=registry.get_mermaid(info.id),
        trace_count=len(registry.list_traces(info.id)),
    )


@router.get("/{ruleset_id}/graph", response_model=RulesetGraph)
async def get_ruleset_graph(
    ruleset_id: str, registry: RulesetRegistry = Depends(get_registry)
) -> RulesetGraph:
    """Get the node/edge graph of a ruleset."""
    info = _require(registry, ruleset_id)
    return registry.get_graph(info.id)


@router.get("/{ruleset_id}/mermaid", response_class=PlainTextResponse)
async def get_ruleset_mermaid(
    ruleset_id: str, registry: RulesetRegistry = Depends(get_registry)
) -> str:
    """Get the Mermaid flowchart source of a ruleset."""
    info = _require(registry, ruleset_id)
    return registry.get_mermaid(info.id)


@router.get("/{ruleset_id}/traces", response_model=TraceListResponse)
async def list_ruleset_traces(
    ruleset_id: str, registry: RulesetRegistry = Depends(get_registry)
) -> TraceListResponse:
    """List recorded runs of a ruleset, oldest first."""
    info = _require(registry, ruleset_id)

    traces = [
        TraceSummary(
            id=run.id,
            created_at=run.created_at,
            fired_count=len(run.fired),
            matched_count=run.matched_count,
        )
        for run in registry.list_traces(info.id)
    ]
    return TraceListResponse(ruleset_id=info.id, traces=traces, total=len(traces))


@router.get("/{ruleset_id}/traces/{trace_id}", response_model=TraceRun)
async def get_ruleset_trace(
    ruleset_id: str, trace_id: str, registry: RulesetRegistry = Depends(get_registry)
) -> TraceRun:
    """Get one recorded run with its full trace."""
    info = _require(registry, ruleset_id)
    run = registry.get_trace(info.id, trace_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Trace not found: {trace_id}")
    return run
