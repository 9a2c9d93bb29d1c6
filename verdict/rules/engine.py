"""
Run loop for compiled rulesets.

The evaluation algorithm lives in a single generator, ``_steps``. Whenever an
action returns an awaitable, the generator yields it as a ``PendingAction``
and waits to be resumed with the resolved value. ``run`` drives the generator
synchronously and rejects every pending action; ``run_async`` awaits each
pending action before resuming, so rule N's effects are committed before rule
N+1 starts.
"""

from __future__ import annotations

import copy
import dataclasses
import inspect
import time
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Generator, Protocol

import structlog
from pydantic import BaseModel

from verdict.core.errors import (
    AsyncActionMisuseError,
    RuleActionError,
    ValidationError,
)
from verdict.runtime.telemetry import (
    CONDITION_SPAN,
    RULE_SPAN,
    RUN_SPAN,
    TelemetryAdapter,
    condition_attributes,
    record_exception,
    rule_attributes,
    ruleset_attributes,
    run_with_span,
)
from .schemas import (
    Activation,
    ActionContext,
    EffectsMode,
    MergeStrategy,
    NoteRecorder,
    RuleMeta,
    RuleTrace,
    RunOptions,
    RunResult,
    SkipReason,
)

if TYPE_CHECKING:
    from .service import Rule

logger = structlog.get_logger(__name__)

Validator = Callable[[Any], Any]


class TraceRecorder(Protocol):
    """Receives one report per completed run (implemented by the registry)."""

    def record_trace(self, ruleset_id: str, trace: list[RuleTrace], fired: list[str], facts: Any) -> Any: ...


@dataclass
class PendingAction:
    """An awaitable returned by a rule action, waiting to be resolved."""

    rule_id: str
    awaitable: Awaitable[Any]

    def discard(self) -> None:
        """Drop the awaitable without running it."""
        close = getattr(self.awaitable, "close", None) or getattr(self.awaitable, "cancel", None)
        if close is not None:
            close()


# =============================================================================
# Skip and Merge Helpers
# =============================================================================


def get_skip_reason(
    meta: RuleMeta | None,
    include_tags: frozenset[str] | None = None,
    exclude_tags: frozenset[str] | None = None,
) -> SkipReason | None:
    """Decide whether a rule is skipped before its conditions are evaluated."""
    if meta is not None and meta.enabled is False:
        return SkipReason.DISABLED
    tags = set(meta.tags or ()) if meta is not None else set()
    if include_tags and not tags & include_tags:
        return SkipReason.TAG_FILTERED
    if exclude_tags and tags & exclude_tags:
        return SkipReason.TAG_EXCLUDED
    return None


def _is_structure(value: Any) -> bool:
    return isinstance(value, (Mapping, BaseModel)) or (
        dataclasses.is_dataclass(value) and not isinstance(value, type)
    )


def _get(target: Any, key: str) -> Any:
    if isinstance(target, Mapping):
        return target.get(key)
    return getattr(target, key, None)


def _set(target: Any, key: str, value: Any) -> None:
    if isinstance(target, MutableMapping):
        target[key] = value
    else:
        setattr(target, key, value)


def _as_patch(patch: Any) -> Mapping[str, Any]:
    if isinstance(patch, BaseModel):
        return patch.model_dump(exclude_unset=True)
    if isinstance(patch, Mapping):
        return patch
    raise TypeError(
        f"Rule actions must return None or a mapping patch, got {type(patch).__name__}"
    )


def deep_merge(target: Any, patch: Mapping[str, Any]) -> None:
    """Recursively merge ``patch`` into ``target``.

    Mapping values recurse into the matching target field (created as a dict
    when missing); every other value, sequences included, replaces the field.
    """
    for key, value in patch.items():
        if isinstance(value, Mapping):
            current = _get(target, key)
            if not _is_structure(current):
                current = {}
                _set(target, key, current)
            deep_merge(current, value)
        else:
            _set(target, key, value)


def merge_effects(target: Any, patch: Any, strategy: MergeStrategy) -> None:
    """Merge an action's returned patch into the working effects."""
    patch = _as_patch(patch)
    if strategy is MergeStrategy.ASSIGN:
        for key, value in patch.items():
            _set(target, key, value)
        return
    deep_merge(target, patch)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0


# =============================================================================
# Compiled Ruleset
# =============================================================================


class CompiledRuleset:
    """An immutable, sorted rule sequence that can be run any number of times."""

    def __init__(
        self,
        rules: tuple[Rule, ...],
        default_effects: Callable[[], Any],
        name: str | None = None,
        validate_facts: Validator | None = None,
        validate_effects: Validator | None = None,
        telemetry: TelemetryAdapter | None = None,
        recorder: TraceRecorder | None = None,
        ruleset_id: str | None = None,
    ):
        self.rules = rules
        self.name = name
        self.ruleset_id = ruleset_id
        self._default_effects = default_effects
        self._validate_facts = validate_facts
        self._validate_effects = validate_effects
        self._telemetry = telemetry
        self._recorder = recorder

    def __repr__(self) -> str:
        return f"CompiledRuleset(name={self.name!r}, rules={[r.id for r in self.rules]})"

    @property
    def order(self) -> list[str]:
        """Rule ids in execution order."""
        return [rule.id for rule in self.rules]

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def run(self, facts: Any, options: RunOptions | None = None, **overrides: Any) -> RunResult:
        """Evaluate the ruleset synchronously.

        Options can be given as a ``RunOptions`` instance and/or keyword
        arguments (``activation``, ``effects_mode``, ``merge_strategy``,
        ``rollback_on_error``, ``include_tags``, ``exclude_tags``).

        Raises:
            ValidationError: If a facts or effects validator rejects its input
            AsyncActionMisuseError: If a matched rule has an async action
            RuleActionError: If an action raises and rollback is disabled
        """
        options = self._resolve_options(options, overrides)
        return run_with_span(
            self._telemetry,
            RUN_SPAN,
            ruleset_attributes(self.name or self.ruleset_id),
            lambda: self._drive_sync(facts, options),
        )

    async def run_async(
        self, facts: Any, options: RunOptions | None = None, **overrides: Any
    ) -> RunResult:
        """Evaluate the ruleset, awaiting async actions one rule at a time."""
        options = self._resolve_options(options, overrides)
        if self._telemetry is None:
            return await self._drive_async(facts, options)

        span = self._telemetry.start_span(RUN_SPAN, ruleset_attributes(self.name or self.ruleset_id))
        try:
            return await self._drive_async(facts, options)
        except Exception as exc:
            record_exception(span, exc)
            raise
        finally:
            span.end()

    @staticmethod
    def _resolve_options(options: RunOptions | None, overrides: dict[str, Any]) -> RunOptions:
        if options is None:
            return RunOptions(**overrides)
        if overrides:
            return RunOptions(**{**options.model_dump(), **overrides})
        return options

    def _drive_sync(self, facts: Any, options: RunOptions) -> RunResult:
        steps = self._steps(facts, options, suspendable=False)
        try:
            pending = next(steps)
            while True:
                pending.discard()
                pending = steps.throw(AsyncActionMisuseError(pending.rule_id))
        except StopIteration as stop:
            return stop.value

    async def _drive_async(self, facts: Any, options: RunOptions) -> RunResult:
        steps = self._steps(facts, options, suspendable=True)
        try:
            pending = next(steps)
            while True:
                try:
                    value = await pending.awaitable
                except Exception as exc:
                    pending = steps.throw(exc)
                else:
                    pending = steps.send(value)
        except StopIteration as stop:
            return stop.value

    # -------------------------------------------------------------------------
    # Shared algorithm
    # -------------------------------------------------------------------------

    def _steps(
        self, facts: Any, options: RunOptions, suspendable: bool
    ) -> Generator[PendingAction, Any, RunResult]:
        self._validate("facts", self._validate_facts, facts)
        effects = self._default_effects()
        self._validate("effects", self._validate_effects, effects)

        trace: list[RuleTrace] = []
        fired: list[str] = []
        immutable = options.effects_mode is EffectsMode.IMMUTABLE

        for rule in self.rules:
            started = time.perf_counter()
            rule_trace = RuleTrace(rule_id=rule.id, meta=rule.meta)

            skip_reason = get_skip_reason(rule.meta, options.include_tags, options.exclude_tags)
            if skip_reason is not None:
                rule_trace.skipped_reason = skip_reason
                rule_trace.duration_ms = _elapsed_ms(started)
                trace.append(rule_trace)
                continue

            matched = self._evaluate_conditions(rule, facts, rule_trace)
            rule_trace.matched = matched

            if matched:
                working = copy.deepcopy(effects) if immutable else effects
                snapshot = (
                    copy.deepcopy(effects) if not immutable and options.rollback_on_error else None
                )
                context = ActionContext(
                    facts=facts, effects=working, trace=NoteRecorder(rule_trace.notes)
                )
                span = (
                    self._telemetry.start_span(RULE_SPAN, rule_attributes(self.name, rule.id))
                    if self._telemetry is not None
                    else None
                )
                try:
                    if rule.is_async and not suspendable:
                        raise AsyncActionMisuseError(rule.id)
                    outcome = rule.action(context)
                    if inspect.isawaitable(outcome):
                        outcome = yield PendingAction(rule.id, outcome)
                    if outcome is not None:
                        merge_effects(working, outcome, options.merge_strategy)
                    effects = working
                except AsyncActionMisuseError as exc:
                    self._record_error(span, rule_trace, exc)
                    raise
                except Exception as exc:
                    self._record_error(span, rule_trace, exc)
                    if not options.rollback_on_error:
                        raise RuleActionError(rule.id, exc) from exc
                    if snapshot is not None:
                        effects = snapshot
                    logger.warning(
                        "rule_action_rolled_back",
                        ruleset=self.name,
                        rule_id=rule.id,
                        error=str(exc),
                    )
                finally:
                    if span is not None:
                        span.end()
                fired.append(rule.id)

            rule_trace.duration_ms = _elapsed_ms(started)
            trace.append(rule_trace)

            if matched and options.activation is Activation.FIRST:
                break

        self._validate("effects", self._validate_effects, effects)

        if self._recorder is not None and self.ruleset_id is not None:
            self._recorder.record_trace(self.ruleset_id, trace, fired, facts)

        logger.debug(
            "ruleset_run_completed",
            ruleset=self.name,
            evaluated=len(trace),
            fired=len(fired),
        )
        return RunResult(effects=effects, fired=fired, trace=trace, ruleset_name=self.name)

    def _evaluate_conditions(self, rule: Rule, facts: Any, rule_trace: RuleTrace) -> bool:
        """Evaluate a rule's conditions in order, stopping at the first failure."""
        for cond in rule.conditions:
            result = run_with_span(
                self._telemetry,
                CONDITION_SPAN,
                condition_attributes(self.name, rule.id, cond.label),
                lambda: cond(facts),
            )
            rule_trace.conditions.append(result)
            if not result.result:
                return False
        return True

    @staticmethod
    def _record_error(span: Any, rule_trace: RuleTrace, error: Exception) -> None:
        rule_trace.error = str(error)
        rule_trace.notes.append(f"error: {error}")
        if span is not None:
            record_exception(span, error)

    @staticmethod
    def _validate(stage: str, validator: Validator | None, value: Any) -> None:
        if validator is None:
            return
        try:
            validator(value)
        except Exception as exc:
            raise ValidationError(stage, str(exc)) from exc
