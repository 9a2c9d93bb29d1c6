"""Conditions domain - predicates, boolean composition and field accessors."""

from .service import (
    ConditionKind,
    ConditionTrace,
    ConditionMeta,
    Condition,
    condition,
)
from .operators import (
    and_,
    or_,
    not_,
    custom,
    OperatorRegistry,
    get_operator_registry,
    register,
    use,
    has,
    names,
)
from .field import (
    Field,
    NumberField,
    StringField,
    BooleanField,
    TemporalField,
    SequenceField,
    AnyField,
    FieldFactory,
    field,
    create_field,
    resolve_path,
    infer_path_type,
)

__all__ = [
    # Models
    "ConditionKind",
    "ConditionTrace",
    "ConditionMeta",
    "Condition",
    "condition",
    # Composition
    "and_",
    "or_",
    "not_",
    "custom",
    # Operator registry
    "OperatorRegistry",
    "get_operator_registry",
    "register",
    "use",
    "has",
    "names",
    # Field accessors
    "Field",
    "NumberField",
    "StringField",
    "BooleanField",
    "TemporalField",
    "SequenceField",
    "AnyField",
    "FieldFactory",
    "field",
    "create_field",
    "resolve_path",
    "infer_path_type",
]
