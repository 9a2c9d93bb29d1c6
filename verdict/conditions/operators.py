"""
Boolean composition and the named-operator registry.

Composite ``and_``/``or_`` evaluate every child on each call, even once the
outcome is settled, so traces always show the outcome of every branch.
"""

from __future__ import annotations

from typing import Any, Callable

import structlog

from verdict.core.errors import OperatorLookupError, OperatorRegistrationError
from .service import Condition, ConditionKind, ConditionMeta, ConditionTrace, Details, condition

logger = structlog.get_logger(__name__)

OperatorFactory = Callable[..., Condition]


def _resolve_label(default: str, label: Any) -> str:
    if label is None:
        return default
    if isinstance(label, str):
        return label
    return str(getattr(label, "label", default))


def _split_args(default: str, args: tuple[Any, ...]) -> tuple[str, tuple[Condition, ...]]:
    """Separate an optional leading label from the child conditions."""
    if not args:
        return default, ()
    first, *rest = args
    if isinstance(first, Condition):
        return default, tuple(args)
    return _resolve_label(default, first), tuple(rest)


# =============================================================================
# Composition
# =============================================================================


def and_(*args: Any) -> Condition:
    """Combine conditions with logical AND.

    Accepts an optional label first: ``and_("vip adult", is_adult, is_vip)``.
    With no children the result is ``True``.
    """
    label, children = _split_args("and", args)
    meta = ConditionMeta(label=label, kind=ConditionKind.AND, children=children)

    def evaluate(facts: Any) -> ConditionTrace:
        traces = [child(facts) for child in children]
        return ConditionTrace(
            label=label,
            result=all(trace.result for trace in traces),
            op="and",
            left=[trace.label for trace in traces],
            children=traces,
        )

    return Condition(evaluate=evaluate, meta=meta)


def or_(*args: Any) -> Condition:
    """Combine conditions with logical OR. With no children the result is ``False``."""
    label, children = _split_args("or", args)
    meta = ConditionMeta(label=label, kind=ConditionKind.OR, children=children)

    def evaluate(facts: Any) -> ConditionTrace:
        traces = [child(facts) for child in children]
        return ConditionTrace(
            label=label,
            result=any(trace.result for trace in traces),
            op="or",
            left=[trace.label for trace in traces],
            children=traces,
        )

    return Condition(evaluate=evaluate, meta=meta)


def not_(label_or_condition: Any, maybe_condition: Condition | None = None) -> Condition:
    """Negate a single condition: ``not_(cond)`` or ``not_("label", cond)``."""
    if isinstance(label_or_condition, Condition):
        label = "not"
        child = label_or_condition
    else:
        label = _resolve_label("not", label_or_condition)
        if maybe_condition is None:
            raise TypeError("not_() requires a condition to negate")
        child = maybe_condition

    meta = ConditionMeta(label=label, kind=ConditionKind.NOT, children=(child,))

    def evaluate(facts: Any) -> ConditionTrace:
        trace = child(facts)
        return ConditionTrace(
            label=label,
            result=not trace.result,
            op="not",
            left=trace.label,
            children=[trace],
        )

    return Condition(evaluate=evaluate, meta=meta)


def custom(
    label: str,
    test: Callable[[Any], Any],
    details: Details | None = None,
    *,
    reason_code: str | None = None,
) -> Condition:
    """Create a user-defined condition (same contract as :func:`condition`)."""
    return condition(label, test, details, reason_code=reason_code)


# =============================================================================
# Named Operator Registry
# =============================================================================


class OperatorRegistry:
    """Maps operator names to condition factories."""

    def __init__(self) -> None:
        self._factories: dict[str, OperatorFactory] = {}

    def register(self, name: str, factory: OperatorFactory) -> None:
        """Register a factory under ``name``.

        Raises:
            OperatorRegistrationError: If the name is already taken
        """
        if name in self._factories:
            raise OperatorRegistrationError(f'Operator "{name}" is already registered.')
        self._factories[name] = factory
        logger.debug("operator_registered", operator=name)

    def use(self, name: str, *args: Any, **kwargs: Any) -> Condition:
        """Build a condition from a registered factory.

        Raises:
            OperatorLookupError: If no factory is registered under ``name``
        """
        factory = self._factories.get(name)
        if factory is None:
            raise OperatorLookupError(f'Operator "{name}" is not registered.')
        return factory(*args, **kwargs)

    def has(self, name: str) -> bool:
        return name in self._factories

    def names(self) -> list[str]:
        return sorted(self._factories)

    def unregister(self, name: str) -> None:
        self._factories.pop(name, None)

    def clear(self) -> None:
        self._factories.clear()


# Global registry instance
_operators = OperatorRegistry()


def get_operator_registry() -> OperatorRegistry:
    """Get the process-wide operator registry."""
    return _operators


def register(name: str, factory: OperatorFactory) -> None:
    """Register a named operator in the process-wide registry."""
    _operators.register(name, factory)


def use(name: str, *args: Any, **kwargs: Any) -> Condition:
    """Create a condition using a registered operator."""
    return _operators.use(name, *args, **kwargs)


def has(name: str) -> bool:
    """Check whether an operator name is registered."""
    return _operators.has(name)


def names() -> list[str]:
    """List registered operator names, sorted."""
    return _operators.names()
