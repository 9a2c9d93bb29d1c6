"""Rules service layer - rule and ruleset builders."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

import structlog

from verdict.conditions.field import FieldFactory, field as field_accessor
from verdict.conditions.service import Condition
from verdict.core.config import get_settings
from verdict.core.errors import CompileError, RuleDefinitionError
from verdict.runtime.telemetry import TelemetryAdapter
from verdict.visualization.graph import RulesetGraph, build_graph, to_mermaid
from .engine import CompiledRuleset, Validator
from .schemas import ActionContext, RuleMeta

if TYPE_CHECKING:
    from verdict.registry.service import RulesetRegistry

logger = structlog.get_logger(__name__)

Action = Callable[[ActionContext], Any]


# =============================================================================
# Rule Model
# =============================================================================


class RuleStage(str, Enum):
    """Lifecycle of a rule builder."""

    DRAFT = "draft"
    READY = "ready"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class Rule:
    """A finalized rule. Created once by ``RuleBuilder.end()`` and never mutated."""

    id: str
    priority: float
    order: int
    conditions: tuple[Condition, ...]
    action: Action
    meta: RuleMeta | None = None
    is_async: bool = False


# =============================================================================
# Rule Builder
# =============================================================================


class RuleBuilder:
    """Fluent builder for one rule; ``end()`` returns to the ruleset builder."""

    def __init__(self, ruleset: RulesetBuilder, rule_id: str):
        self._ruleset = ruleset
        self.rule_id = rule_id
        self._priority: float = 0
        self._conditions: tuple[Condition, ...] = ()
        self._action: Action | None = None
        self._is_async = False
        self._meta: dict[str, Any] = {}
        self.stage = RuleStage.DRAFT

    def __repr__(self) -> str:
        return f"RuleBuilder({self.rule_id!r}, stage={self.stage.value})"

    def _ensure_open(self) -> None:
        if self.stage is RuleStage.FINALIZED:
            raise RuleDefinitionError(f"Rule {self.rule_id!r} is already finalized.")

    def priority(self, value: float) -> RuleBuilder:
        """Set rule priority. Higher runs first."""
        self._ensure_open()
        self._priority = value
        return self

    def when(self, *conditions: Condition) -> RuleBuilder:
        """Set the rule's conditions. They are evaluated in order and short-circuit."""
        self._ensure_open()
        for cond in conditions:
            if not isinstance(cond, Condition):
                raise RuleDefinitionError(
                    f"Rule {self.rule_id!r}: when() expects conditions, got {type(cond).__name__}"
                )
        self._conditions = tuple(conditions)
        return self

    def meta(self, meta: RuleMeta | None = None, **fields: Any) -> RuleBuilder:
        """Merge metadata. Existing tags are kept unless new tags are given."""
        self._ensure_open()
        updates = meta.model_dump(exclude_none=True) if meta is not None else {}
        updates.update({key: value for key, value in fields.items() if value is not None})
        self._meta.update(updates)
        return self

    def tags(self, *tags: str) -> RuleBuilder:
        """Set the tags used by include/exclude filters."""
        self._ensure_open()
        self._meta["tags"] = tuple(tags)
        return self

    def description(self, description: str) -> RuleBuilder:
        self._ensure_open()
        self._meta["description"] = description
        return self

    def version(self, version: str) -> RuleBuilder:
        self._ensure_open()
        self._meta["version"] = version
        return self

    def reason_code(self, reason_code: str) -> RuleBuilder:
        """Set a reason code shown in explanations and graphs."""
        self._ensure_open()
        self._meta["reason_code"] = reason_code
        return self

    def enabled(self, enabled: bool = True) -> RuleBuilder:
        self._ensure_open()
        self._meta["enabled"] = enabled
        return self

    def then(self, action: Action) -> RuleBuilder:
        """Set the action. Returning a mapping (or pydantic model) applies a patch.

        Coroutine functions are treated like ``then_async``.
        """
        self._ensure_open()
        self._action = action
        self._is_async = inspect.iscoroutinefunction(action)
        self.stage = RuleStage.READY
        return self

    def then_async(self, action: Action) -> RuleBuilder:
        """Set an action that must be awaited; only ``run_async()`` accepts it."""
        self._ensure_open()
        self._action = action
        self._is_async = True
        self.stage = RuleStage.READY
        return self

    def end(self) -> RulesetBuilder:
        """Finalize the rule and return to the ruleset builder.

        Raises:
            RuleDefinitionError: If no action was set or the rule is already finalized
        """
        self._ensure_open()
        if self._action is None:
            raise RuleDefinitionError("then() is required before end().")

        rule = Rule(
            id=self.rule_id,
            priority=self._priority,
            order=self._ruleset._next_order(),
            conditions=self._conditions,
            action=self._action,
            meta=RuleMeta(**self._meta) if self._meta else None,
            is_async=self._is_async,
        )
        self._ruleset._add_rule(rule)
        self.stage = RuleStage.FINALIZED
        return self._ruleset


# =============================================================================
# Ruleset Builder
# =============================================================================


class RulesetBuilder:
    """Collects rules and shared configuration, then compiles an engine."""

    def __init__(self, name: str | None = None, facts: Any = None):
        self.name = name
        self.facts_model = facts
        self._rules: list[Rule] = []
        self._next_order_value = 0
        self._default_effects: Callable[[], Any] | None = None
        self._validate_facts: Validator | None = None
        self._validate_effects: Validator | None = None
        self._telemetry: TelemetryAdapter | None = None
        self._registry: RulesetRegistry | None = None
        self.registry_id: str | None = None

    def __repr__(self) -> str:
        return f"RulesetBuilder(name={self.name!r}, rules={len(self._rules)})"

    @property
    def rules(self) -> tuple[Rule, ...]:
        """Finalized rules in declaration order."""
        return tuple(self._rules)

    def default_effects(self, factory: Callable[[], Any]) -> RulesetBuilder:
        """Set the factory producing a fresh effects value per run. Required before compile()."""
        self._default_effects = factory
        return self

    def validate_facts(self, validator: Validator) -> RulesetBuilder:
        """Set a validator called on the facts before each run."""
        self._validate_facts = validator
        return self

    def validate_effects(self, validator: Validator) -> RulesetBuilder:
        """Set a validator called on fresh default effects and on final effects."""
        self._validate_effects = validator
        return self

    def telemetry(self, adapter: TelemetryAdapter) -> RulesetBuilder:
        """Attach a telemetry adapter (see ``verdict.runtime.telemetry``)."""
        self._telemetry = adapter
        return self

    def attach_registry(self, registry: RulesetRegistry) -> RulesetBuilder:
        """Register this ruleset so its graph and run traces can be inspected."""
        self._registry = registry
        self.registry_id = registry.register(self, self.name)
        return self

    def rule(self, rule_id: str) -> RuleBuilder:
        """Start a new rule."""
        return RuleBuilder(self, rule_id)

    def field(self, path: str | None = None) -> Any:
        """Field accessor bound to this ruleset's facts model."""
        if path is None:
            return FieldFactory(self.facts_model)
        return field_accessor(self.facts_model, path)

    def _add_rule(self, rule: Rule) -> None:
        self._rules.append(rule)

    def _next_order(self) -> int:
        order = self._next_order_value
        self._next_order_value += 1
        return order

    def graph(self) -> RulesetGraph:
        """Export the rule structure as nodes and edges."""
        return build_graph(self.name, self._rules)

    def to_mermaid(self) -> str:
        """Export a Mermaid flowchart of the rule structure."""
        return to_mermaid(self.graph())

    def compile(self) -> CompiledRuleset:
        """Sort the rules by (priority desc, declaration order) and build an engine.

        Raises:
            CompileError: If no default effects factory was set
        """
        if self._default_effects is None:
            raise CompileError("default_effects() is required before compile().")

        ordered = tuple(sorted(self._rules, key=lambda rule: (-rule.priority, rule.order)))
        logger.debug("ruleset_compiled", ruleset=self.name, rules=[rule.id for rule in ordered])
        return CompiledRuleset(
            rules=ordered,
            default_effects=self._default_effects,
            name=self.name,
            validate_facts=self._validate_facts,
            validate_effects=self._validate_effects,
            telemetry=self._telemetry,
            recorder=self._registry,
            ruleset_id=self.registry_id,
        )


def ruleset(
    name: str | None = None,
    *,
    facts: Any = None,
    registry: RulesetRegistry | None = None,
    register: bool | None = None,
) -> RulesetBuilder:
    """Create a new ruleset builder.

    Args:
        name: Ruleset name used in explanations, graphs and the registry
        facts: Optional facts model type for typed field accessors
        registry: Registry to report into (defaults to the process registry)
        register: Force or suppress registration; defaults to ``Settings.auto_register``

    Example:
        engine = (
            ruleset("eligibility")
            .default_effects(lambda: {"flags": []})
            .rule("adult")
            .when(field("user.age").gte(18))
            .then(lambda ctx: ctx.effects["flags"].append("adult"))
            .end()
            .compile()
        )
    """
    builder = RulesetBuilder(name, facts=facts)
    if register is False:
        return builder
    if registry is None and (register or get_settings().auto_register):
        from verdict.registry.service import get_registry

        registry = get_registry()
    if registry is not None:
        builder.attach_registry(registry)
    return builder
