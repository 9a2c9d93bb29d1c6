"""Rules domain - builders, the run loop and declarative loading."""

from .schemas import (
    Activation,
    EffectsMode,
    MergeStrategy,
    SkipReason,
    RunOptions,
    RuleMeta,
    RuleTrace,
    ActionContext,
    RunResult,
)
from .service import Rule, RuleBuilder, RulesetBuilder, RuleStage, ruleset
from .engine import CompiledRuleset, deep_merge, merge_effects, get_skip_reason
from .validation import model_facts, model_effects
from .loader import RulesetLoader

__all__ = [
    # Schemas
    "Activation",
    "EffectsMode",
    "MergeStrategy",
    "SkipReason",
    "RunOptions",
    "RuleMeta",
    "RuleTrace",
    "ActionContext",
    "RunResult",
    # Builders
    "Rule",
    "RuleBuilder",
    "RulesetBuilder",
    "RuleStage",
    "ruleset",
    # Engine
    "CompiledRuleset",
    "deep_merge",
    "merge_effects",
    "get_skip_reason",
    # Validation
    "model_facts",
    "model_effects",
    # Loading
    "RulesetLoader",
]
