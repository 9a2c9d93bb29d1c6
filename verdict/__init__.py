"""
Verdict - declarative rule evaluation with explainable traces.

    from verdict import field, ruleset

    engine = (
        ruleset("eligibility")
        .default_effects(lambda: {"flags": []})
        .rule("adult")
        .priority(10)
        .reason_code("AGE_18")
        .when(field("user.age").gte(18))
        .then(lambda ctx: ctx.effects["flags"].append("adult"))
        .end()
        .compile()
    )
    result = engine.run({"user": {"age": 20}})
    print(result.explain())
"""

from verdict.core import (
    Settings,
    get_settings,
    configure_logging,
    get_logger,
    VerdictError,
    CompileError,
    RuleDefinitionError,
    ValidationError,
    AsyncActionMisuseError,
    RuleActionError,
    OperatorRegistrationError,
    OperatorLookupError,
    FieldPathError,
    RulesetNotFoundError,
    RuleLoadError,
)
from verdict.conditions import (
    Condition,
    ConditionKind,
    ConditionMeta,
    ConditionTrace,
    condition,
    and_,
    or_,
    not_,
    custom,
    field,
    resolve_path,
    OperatorRegistry,
    get_operator_registry,
)
from verdict.conditions import operators as op
from verdict.rules import (
    Activation,
    EffectsMode,
    MergeStrategy,
    SkipReason,
    RunOptions,
    RuleMeta,
    RuleTrace,
    ActionContext,
    RunResult,
    Rule,
    RuleBuilder,
    RulesetBuilder,
    CompiledRuleset,
    ruleset,
    model_facts,
    model_effects,
    RulesetLoader,
)
from verdict.runtime import (
    explain_trace,
    TelemetryAdapter,
    TelemetrySpan,
    OpenTelemetryAdapter,
    create_otel_adapter,
)
from verdict.visualization import RulesetGraph, build_graph, to_mermaid
from verdict.registry import RulesetRegistry, get_registry, reset_registry

__version__ = "0.1.0"

__all__ = [
    # Builders
    "ruleset",
    "Rule",
    "RuleBuilder",
    "RulesetBuilder",
    "CompiledRuleset",
    # Conditions
    "Condition",
    "ConditionKind",
    "ConditionMeta",
    "ConditionTrace",
    "condition",
    "and_",
    "or_",
    "not_",
    "custom",
    "field",
    "resolve_path",
    "op",
    "OperatorRegistry",
    "get_operator_registry",
    # Run options and results
    "Activation",
    "EffectsMode",
    "MergeStrategy",
    "SkipReason",
    "RunOptions",
    "RuleMeta",
    "RuleTrace",
    "ActionContext",
    "RunResult",
    "explain_trace",
    # Validation and loading
    "model_facts",
    "model_effects",
    "RulesetLoader",
    # Telemetry
    "TelemetryAdapter",
    "TelemetrySpan",
    "OpenTelemetryAdapter",
    "create_otel_adapter",
    # Registry and graphs
    "RulesetRegistry",
    "get_registry",
    "reset_registry",
    "RulesetGraph",
    "build_graph",
    "to_mermaid",
    # Config and logging
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Errors
    "VerdictError",
    "CompileError",
    "RuleDefinitionError",
    "ValidationError",
    "AsyncActionMisuseError",
    "RuleActionError",
    "OperatorRegistrationError",
    "OperatorLookupError",
    "FieldPathError",
    "RulesetNotFoundError",
    "RuleLoadError",
]
