"""
Registry of rulesets created in this process.

Keeps each registered ruleset's graph source and a rolling window of recent
run traces for inspection. The engine reports into a registry only when one
is attached; nothing in the run loop depends on it.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog
from fastapi.encoders import jsonable_encoder

from verdict.core.config import get_settings
from verdict.core.errors import RulesetNotFoundError
from verdict.rules.schemas import RuleTrace
from verdict.visualization.graph import RulesetGraph
from .schemas import RegistryEntryInfo, TraceRun

logger = structlog.get_logger(__name__)


class GraphSource(Protocol):
    """Anything that can describe its rule structure (a ``RulesetBuilder``)."""

    def graph(self) -> RulesetGraph: ...

    def to_mermaid(self) -> str: ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _snapshot_facts(facts: Any) -> Any:
    """JSON-ready copy of run facts, or their repr when they cannot be encoded."""
    try:
        return jsonable_encoder(facts)
    except (TypeError, ValueError):
        logger.debug("facts_not_encodable", facts_type=type(facts).__name__)
        return repr(facts)


@dataclass
class _Entry:
    id: str
    name: str | None
    created_at: str
    source: GraphSource
    traces: deque[TraceRun]
    lock: threading.Lock = field(default_factory=threading.Lock)

    def info(self) -> RegistryEntryInfo:
        return RegistryEntryInfo(id=self.id, name=self.name, created_at=self.created_at)


class RulesetRegistry:
    """In-memory store of rulesets and their recent traces."""

    def __init__(self, trace_limit: int | None = None):
        if trace_limit is None:
            trace_limit = get_settings().trace_limit
        if trace_limit < 1:
            raise ValueError(f"trace_limit must be at least 1, got {trace_limit}")
        self.trace_limit = trace_limit
        self._entries: dict[str, _Entry] = {}
        self._names: dict[str, str] = {}
        self._lock = threading.Lock()
        self._ruleset_counter = 0
        self._trace_counter = 0

    def register(self, source: GraphSource, name: str | None = None) -> str:
        """Register a ruleset and return its id (``ruleset-<n>``).

        A later ruleset with the same name takes over name lookups.
        """
        with self._lock:
            ruleset_id = f"ruleset-{self._ruleset_counter}"
            self._ruleset_counter += 1
            self._entries[ruleset_id] = _Entry(
                id=ruleset_id,
                name=name,
                created_at=_now_iso(),
                source=source,
                traces=deque(maxlen=self.trace_limit),
            )
            if name:
                self._names[name] = ruleset_id
        logger.debug("ruleset_registered", ruleset_id=ruleset_id, name=name)
        return ruleset_id

    def _get_entry(self, id_or_name: str) -> _Entry | None:
        entry = self._entries.get(id_or_name)
        if entry is not None:
            return entry
        ruleset_id = self._names.get(id_or_name)
        return self._entries.get(ruleset_id) if ruleset_id else None

    def list(self) -> list[RegistryEntryInfo]:
        """List all registered rulesets in registration order."""
        return [entry.info() for entry in list(self._entries.values())]

    def get(self, id_or_name: str) -> RegistryEntryInfo | None:
        entry = self._get_entry(id_or_name)
        return entry.info() if entry else None

    def require(self, id_or_name: str) -> RegistryEntryInfo:
        """Get a ruleset by id or name.

        Raises:
            RulesetNotFoundError: If nothing matches
        """
        entry = self._get_entry(id_or_name)
        if entry is None:
            raise RulesetNotFoundError(f"Ruleset not found: {id_or_name}")
        return entry.info()

    def get_graph(self, id_or_name: str) -> RulesetGraph | None:
        """Get a ruleset graph by id or name."""
        entry = self._get_entry(id_or_name)
        return entry.source.graph() if entry else None

    def get_mermaid(self, id_or_name: str) -> str | None:
        """Get Mermaid output by id or name."""
        entry = self._get_entry(id_or_name)
        return entry.source.to_mermaid() if entry else None

    def record_trace(
        self,
        id_or_name: str,
        trace: list[RuleTrace],
        fired: list[str],
        facts: Any,
    ) -> TraceRun | None:
        """Record a completed run. Only the newest ``trace_limit`` runs are kept."""
        entry = self._get_entry(id_or_name)
        if entry is None:
            return None

        with self._lock:
            trace_id = f"trace-{self._trace_counter}"
            self._trace_counter += 1

        run = TraceRun(
            id=trace_id,
            created_at=_now_iso(),
            facts=_snapshot_facts(facts),
            fired=list(fired),
            trace=[rule.model_copy(deep=True) for rule in trace],
        )
        with entry.lock:
            entry.traces.append(run)
        logger.debug("trace_recorded", ruleset_id=entry.id, trace_id=trace_id)
        return run

    def list_traces(self, id_or_name: str) -> list[TraceRun]:
        """List recorded runs for a ruleset, oldest first."""
        entry = self._get_entry(id_or_name)
        if entry is None:
            return []
        with entry.lock:
            return list(entry.traces)

    def get_trace(self, id_or_name: str, trace_id: str) -> TraceRun | None:
        """Get a recorded run by id."""
        for run in self.list_traces(id_or_name):
            if run.id == trace_id:
                return run
        return None

    def clear(self) -> None:
        """Remove every ruleset and trace, and restart id numbering."""
        with self._lock:
            self._entries.clear()
            self._names.clear()
            self._ruleset_counter = 0
            self._trace_counter = 0


# Global registry instance
_registry: RulesetRegistry | None = None


def get_registry() -> RulesetRegistry:
    """Get or create the process-wide registry."""
    global _registry
    if _registry is None:
        _registry = RulesetRegistry()
    return _registry


def reset_registry(registry: RulesetRegistry | None = None) -> RulesetRegistry:
    """Replace the process-wide registry (a fresh one by default)."""
    global _registry
    _registry = registry or RulesetRegistry()
    return _registry
