"""Pydantic models and value types for rules, run options and run results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from verdict.conditions.service import ConditionTrace
from verdict.runtime.trace import explain_trace


# =============================================================================
# Run Options
# =============================================================================


class Activation(str, Enum):
    """Whether a run stops at the first matching rule."""

    ALL = "all"
    FIRST = "first"


class EffectsMode(str, Enum):
    """How actions see the effects value."""

    MUTABLE = "mutable"
    IMMUTABLE = "immutable"


class MergeStrategy(str, Enum):
    """How a patch returned by an action is merged into effects."""

    ASSIGN = "assign"
    DEEP = "deep"


class SkipReason(str, Enum):
    """Why a rule was not evaluated."""

    DISABLED = "disabled"
    TAG_FILTERED = "tag-filtered"
    TAG_EXCLUDED = "tag-excluded"


class RunOptions(BaseModel):
    """Options for one run of a compiled ruleset."""

    model_config = ConfigDict(frozen=True)

    activation: Activation = Field(Activation.ALL, description="Stop after first match or run all")
    effects_mode: EffectsMode = Field(EffectsMode.MUTABLE, description="Share or clone effects")
    merge_strategy: MergeStrategy = Field(MergeStrategy.ASSIGN, description="Patch merge mode")
    rollback_on_error: bool = Field(False, description="Skip failing actions instead of aborting")
    include_tags: frozenset[str] | None = Field(None, description="Only run rules with these tags")
    exclude_tags: frozenset[str] | None = Field(None, description="Skip rules with these tags")


# =============================================================================
# Rule Metadata and Traces
# =============================================================================


class RuleMeta(BaseModel):
    """Descriptive and filtering metadata for a rule."""

    model_config = ConfigDict(frozen=True)

    tags: tuple[str, ...] | None = None
    description: str | None = None
    version: str | None = None
    reason_code: str | None = None
    enabled: bool | None = None


class RuleTrace(BaseModel):
    """Record of one rule's evaluation during a run."""

    rule_id: str
    matched: bool = False
    conditions: list[ConditionTrace] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)
    duration_ms: float | None = None
    error: str | None = None
    meta: RuleMeta | None = None
    skipped_reason: SkipReason | None = None


# =============================================================================
# Action Context and Results
# =============================================================================


class NoteRecorder:
    """Collects free-form notes an action attaches to its rule trace."""

    def __init__(self, notes: list[str]):
        self._notes = notes

    def note(self, message: str) -> None:
        self._notes.append(message)


@dataclass
class ActionContext:
    """Arguments passed to a rule action."""

    facts: Any
    effects: Any
    trace: NoteRecorder


@dataclass(frozen=True)
class RunResult:
    """Output of one run: final effects, fired rule ids and the trace."""

    effects: Any
    fired: list[str] = field(default_factory=list)
    trace: list[RuleTrace] = field(default_factory=list)
    ruleset_name: str | None = None

    def explain(self) -> str:
        """Render the trace as a readable multi-line explanation."""
        return explain_trace(self.trace, self.ruleset_name)
