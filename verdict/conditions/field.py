"""
Field accessors - conditions generated from dotted paths into the facts.

A path such as ``"user.age"`` is resolved at evaluation time by walking
mappings (by key), lists and tuples (by integer index) and other objects (by
attribute). Broken paths resolve to ``None``; they never raise.

When a facts model type is supplied, the value type at the path is inferred
from annotations and the returned accessor only exposes the operators that
make sense for it (numbers get ``gt``/``between``, strings get ``matches``,
...). Without a model every operator is available.
"""

from __future__ import annotations

import dataclasses
import numbers
import re
import types
from collections.abc import Mapping, Sequence, Set
from datetime import date, datetime
from typing import Annotated, Any, Callable, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel

from verdict.core.errors import FieldPathError
from .service import Condition, condition

_SEQUENCE_TYPES = (list, tuple, set, frozenset)
_SCALAR_TYPES = (str, bytes, bool, int, float, complex, numbers.Number, date)


# =============================================================================
# Runtime Path Resolution
# =============================================================================


def resolve_path(facts: Any, path: str) -> Any:
    """Resolve a dotted path against a facts value.

    Returns ``None`` when a segment is missing or the current value cannot be
    indexed further.
    """
    current = facts
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, (list, tuple)):
            if not part.isdigit() or int(part) >= len(current):
                return None
            current = current[int(part)]
        elif isinstance(current, _SCALAR_TYPES) or isinstance(current, (set, frozenset)):
            return None
        else:
            current = getattr(current, part, None)
    return current


# =============================================================================
# Static Type Inference
# =============================================================================


def _unwrap(tp: Any) -> Any:
    """Strip ``Annotated`` and ``Optional`` wrappers; ambiguous unions become ``None``."""
    origin = get_origin(tp)
    if origin is Annotated:
        return _unwrap(get_args(tp)[0])
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(tp) if arg is not type(None)]
        if len(members) == 1:
            return _unwrap(members[0])
        return None
    return tp


def _annotations_of(tp: Any) -> dict[str, Any] | None:
    """Field annotations for a model type, or None if it is not introspectable."""
    if not isinstance(tp, type):
        return None
    if issubclass(tp, BaseModel):
        return {name: info.annotation for name, info in tp.model_fields.items()}
    if dataclasses.is_dataclass(tp):
        try:
            hints = get_type_hints(tp)
        except (NameError, TypeError):
            return None
        return {f.name: hints.get(f.name, Any) for f in dataclasses.fields(tp)}
    try:
        hints = get_type_hints(tp)
    except (NameError, TypeError):
        return None
    return hints or None


def infer_path_type(model: Any, path: str) -> Any:
    """Infer the declared type at ``path`` on ``model``.

    Returns ``None`` when the type cannot be determined statically.

    Raises:
        FieldPathError: If a segment does not exist on an annotated model
    """
    current = model
    for part in path.split("."):
        current = _unwrap(current)
        if current is None or current is Any:
            return None

        origin = get_origin(current)
        args = get_args(current)
        if origin is not None and isinstance(origin, type) and issubclass(origin, Mapping):
            current = args[1] if len(args) == 2 else None
            continue
        if origin is not None and isinstance(origin, type) and issubclass(origin, (list, tuple)):
            if not part.isdigit():
                raise FieldPathError(f"Path {path!r}: segment {part!r} is not a valid index")
            current = args[0] if args else None
            continue
        if isinstance(current, type) and issubclass(current, _SCALAR_TYPES):
            raise FieldPathError(
                f"Path {path!r}: cannot descend into {current.__name__} at segment {part!r}"
            )

        hints = _annotations_of(current)
        if hints is None:
            return None
        if part not in hints:
            raise FieldPathError(
                f"Path {path!r}: {getattr(current, '__name__', current)!s} has no field {part!r}"
            )
        current = hints[part]

    return _unwrap(current)


def _field_class(tp: Any) -> type[Field]:
    if tp is None or tp is Any or tp is object:
        return AnyField
    origin = get_origin(tp) or tp
    if not isinstance(origin, type):
        return AnyField
    if issubclass(origin, bool):
        return BooleanField
    if issubclass(origin, date):
        return TemporalField
    if issubclass(origin, numbers.Number):
        return NumberField
    if issubclass(origin, str):
        return StringField
    if issubclass(origin, (Sequence, Set)) and not issubclass(origin, bytes):
        return SequenceField
    return Field


# =============================================================================
# Field Accessors
# =============================================================================


def _compare(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def safe(actual: Any, expected: Any) -> bool:
        try:
            return bool(compare(actual, expected))
        except TypeError:
            return False

    return safe


_gt = _compare(lambda a, b: a > b)
_gte = _compare(lambda a, b: a >= b)
_lt = _compare(lambda a, b: a < b)
_lte = _compare(lambda a, b: a <= b)


class Field:
    """Accessor for one path. Exposes the operators valid for every type."""

    def __init__(self, path: str):
        self.path = path

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r})"

    def get(self, facts: Any) -> Any:
        """Resolve this field's value from ``facts``."""
        return resolve_path(facts, self.path)

    def _condition(
        self,
        label: str,
        test: Callable[[Any], bool],
        op: str,
        right: Any,
    ) -> Condition:
        return condition(
            label,
            lambda facts: test(self.get(facts)),
            lambda facts: {"left": self.get(facts), "op": op, "right": right},
        )

    def eq(self, value: Any) -> Condition:
        return self._condition(f"{self.path} == {value}", lambda v: v == value, "==", value)

    def in_(self, values: Sequence[Any]) -> Condition:
        values = list(values)
        return self._condition(
            f"{self.path} in [{len(values)}]", lambda v: v in values, "in", values
        )


class _ContainsField(Field):
    def contains(self, value: Any) -> Condition:
        """Substring test for strings, membership test for sequences, else False."""

        def test(current: Any) -> bool:
            if isinstance(current, str):
                return str(value) in current
            if isinstance(current, _SEQUENCE_TYPES):
                return value in current
            return False

        return self._condition(f"{self.path} contains {value}", test, "contains", value)


class NumberField(Field):
    """Accessor for numeric values."""

    def gt(self, value: Any) -> Condition:
        return self._condition(f"{self.path} > {value}", lambda v: _gt(v, value), ">", value)

    def gte(self, value: Any) -> Condition:
        return self._condition(f"{self.path} >= {value}", lambda v: _gte(v, value), ">=", value)

    def lt(self, value: Any) -> Condition:
        return self._condition(f"{self.path} < {value}", lambda v: _lt(v, value), "<", value)

    def lte(self, value: Any) -> Condition:
        return self._condition(f"{self.path} <= {value}", lambda v: _lte(v, value), "<=", value)

    def between(self, minimum: Any, maximum: Any) -> Condition:
        """Inclusive range check."""
        return self._condition(
            f"{self.path} between {minimum} and {maximum}",
            lambda v: _gte(v, minimum) and _lte(v, maximum),
            "between",
            [minimum, maximum],
        )


class StringField(_ContainsField):
    """Accessor for string values."""

    def starts_with(self, value: str) -> Condition:
        return self._condition(
            f"{self.path} starts_with {value}",
            lambda v: isinstance(v, str) and v.startswith(value),
            "starts_with",
            value,
        )

    def matches(self, pattern: str | re.Pattern[str]) -> Condition:
        """Regular-expression search (``re.search`` semantics)."""
        compiled = re.compile(pattern)
        return self._condition(
            f"{self.path} matches /{compiled.pattern}/",
            lambda v: isinstance(v, str) and compiled.search(v) is not None,
            "matches",
            compiled.pattern,
        )


class BooleanField(Field):
    """Accessor for boolean values."""

    def is_true(self) -> Condition:
        return self._condition(f"{self.path} is true", lambda v: v is True, "is", True)

    def is_false(self) -> Condition:
        return self._condition(f"{self.path} is false", lambda v: v is False, "is", False)


def _temporal_pair(current: Any, value: date) -> tuple[date, date] | None:
    if not isinstance(current, date):
        return None
    # datetime and date do not compare directly
    if isinstance(current, datetime) and not isinstance(value, datetime):
        return current.date(), value
    if isinstance(value, datetime) and not isinstance(current, datetime):
        return current, value.date()
    return current, value


class TemporalField(Field):
    """Accessor for ``date`` / ``datetime`` values."""

    def before(self, value: date) -> Condition:
        def test(current: Any) -> bool:
            pair = _temporal_pair(current, value)
            return pair is not None and _lt(*pair)

        iso = value.isoformat()
        return self._condition(f"{self.path} before {iso}", test, "before", iso)

    def after(self, value: date) -> Condition:
        def test(current: Any) -> bool:
            pair = _temporal_pair(current, value)
            return pair is not None and _gt(*pair)

        iso = value.isoformat()
        return self._condition(f"{self.path} after {iso}", test, "after", iso)


class SequenceField(_ContainsField):
    """Accessor for list, tuple and set values."""

    def any(self, predicate: Callable[[Any], Any], label: str | None = None) -> Condition:
        """True if ``predicate`` holds for at least one item."""
        return self._condition(
            label or f"{self.path} any",
            lambda v: isinstance(v, _SEQUENCE_TYPES) and any(predicate(item) for item in v),
            "any",
            "predicate",
        )

    def all(self, predicate: Callable[[Any], Any], label: str | None = None) -> Condition:
        """True if ``predicate`` holds for every item (vacuously for empty sequences)."""
        return self._condition(
            label or f"{self.path} all",
            lambda v: isinstance(v, _SEQUENCE_TYPES) and all(predicate(item) for item in v),
            "all",
            "predicate",
        )


class AnyField(NumberField, StringField, BooleanField, TemporalField, SequenceField):
    """Accessor for untyped paths - every operator is available."""


# =============================================================================
# Factory
# =============================================================================


class FieldFactory:
    """Creates accessors for paths of one facts model."""

    def __init__(self, model: Any = None):
        self.model = model

    def __call__(self, path: str) -> Field:
        return create_field(path, self.model)

    def __repr__(self) -> str:
        name = getattr(self.model, "__name__", None) if self.model is not None else None
        return f"FieldFactory({name or 'untyped'})"


def create_field(path: str, model: Any = None) -> Field:
    """Create the accessor matching the inferred type at ``path``."""
    if model is None:
        return AnyField(path)
    return _field_class(infer_path_type(model, path))(path)


def field(model: Any = None, path: str | None = None) -> Any:
    """Create a field accessor, or a factory of accessors for a facts model.

    Example:
        facts_field = field(Facts)
        is_adult = facts_field("user.age").gte(18)

        is_vip = field(Facts, "user.tags").contains("vip")
        untyped = field("user.age").gte(18)
    """
    if isinstance(model, str) and path is None:
        return create_field(model)
    if path is None:
        return FieldFactory(model)
    return create_field(path, model)
