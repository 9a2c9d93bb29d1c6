"""Registry domain - ruleset inspection store and HTTP routes."""

from .service import RulesetRegistry, get_registry, reset_registry
from .schemas import (
    RegistryEntryInfo,
    TraceRun,
    RulesetListResponse,
    RulesetDetailResponse,
    TraceSummary,
    TraceListResponse,
)
from .router import router

__all__ = [
    # Router
    "router",
    # Service
    "RulesetRegistry",
    "get_registry",
    "reset_registry",
    # Schemas
    "RegistryEntryInfo",
    "TraceRun",
    "RulesetListResponse",
    "RulesetDetailResponse",
    "TraceSummary",
    "TraceListResponse",
]
