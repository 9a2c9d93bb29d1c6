"""Condition nodes - evaluable predicates over facts with structured traces."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping

from pydantic import BaseModel


# =============================================================================
# Trace and Metadata
# =============================================================================


class ConditionKind(str, Enum):
    """Structural kind of a condition node."""

    ATOMIC = "atomic"
    AND = "and"
    OR = "or"
    NOT = "not"


class ConditionTrace(BaseModel):
    """Result of evaluating one condition against one facts value."""

    label: str
    result: bool
    left: Any = None
    op: str | None = None
    right: Any = None
    children: list[ConditionTrace] | None = None
    reason_code: str | None = None


ConditionTrace.model_rebuild()


@dataclass(frozen=True)
class ConditionMeta:
    """Static structure attached to a condition for introspection.

    ``children`` holds the child condition nodes themselves, not their
    evaluation results.
    """

    label: str
    kind: ConditionKind = ConditionKind.ATOMIC
    reason_code: str | None = None
    children: tuple[Condition, ...] = ()


@dataclass(frozen=True, eq=False)
class Condition:
    """A pure ``facts -> ConditionTrace`` function with attached metadata."""

    evaluate: Callable[[Any], ConditionTrace]
    meta: ConditionMeta

    def __call__(self, facts: Any) -> ConditionTrace:
        return self.evaluate(facts)

    @property
    def label(self) -> str:
        return self.meta.label

    def __repr__(self) -> str:
        return f"Condition({self.meta.kind.value}: {self.meta.label!r})"


Details = Callable[[Any], Mapping[str, Any]]


# =============================================================================
# Atomic Conditions
# =============================================================================


def condition(
    label: str,
    test: Callable[[Any], Any],
    details: Details | None = None,
    *,
    reason_code: str | None = None,
) -> Condition:
    """Create an atomic condition.

    Args:
        label: Human-readable label used in traces and graphs
        test: Predicate over the facts value
        details: Optional callable returning ``left``/``op``/``right`` for the trace
        reason_code: Optional code copied into every trace of this condition

    Example:
        is_adult = condition(
            "is adult",
            lambda facts: facts["user"]["age"] >= 18,
            lambda facts: {"left": facts["user"]["age"], "op": ">=", "right": 18},
            reason_code="AGE_18",
        )
    """
    meta = ConditionMeta(label=label, kind=ConditionKind.ATOMIC, reason_code=reason_code)

    def evaluate(facts: Any) -> ConditionTrace:
        result = bool(test(facts))
        info = details(facts) if details else {}
        return ConditionTrace(
            label=label,
            result=result,
            left=info.get("left"),
            op=info.get("op"),
            right=info.get("right"),
            reason_code=reason_code,
        )

    return Condition(evaluate=evaluate, meta=meta)
