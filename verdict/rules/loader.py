"""
Declarative rulesets loaded from YAML.

Document shape:

    name: eligibility
    default_effects:
      flags: []
    rules:
      - id: adult
        priority: 10
        tags: [age]
        reason_code: AGE_18
        when:
          - field: user.age
            operator: gte
            value: 18
          - any:
              - "user.country == DE"
              - {field: user.tags, operator: contains, value: vip}
        then:
          patch: {flags: [adult]}
          note: adult flag set
"""

from __future__ import annotations

import copy
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable

import structlog
import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from verdict.conditions import operators
from verdict.conditions.field import AnyField
from verdict.conditions.service import Condition, condition
from verdict.core.errors import RuleLoadError, VerdictError
from .schemas import ActionContext
from .service import RulesetBuilder, ruleset

logger = structlog.get_logger(__name__)


# =============================================================================
# Document Models
# =============================================================================


class ActionSpec(BaseModel):
    """What a declarative rule does when it matches."""

    patch: dict[str, Any] | None = Field(None, description="Patch merged into effects")
    note: str | None = Field(None, description="Note added to the rule trace")


class RuleSpec(BaseModel):
    """A single declarative rule."""

    id: str = Field(..., description="Unique rule identifier")
    priority: float = Field(0, description="Higher runs first")
    tags: list[str] = Field(default_factory=list, description="Classification tags")
    description: str | None = None
    version: str | None = None
    reason_code: str | None = None
    enabled: bool | None = None
    when: list[Any] = Field(default_factory=list, description="Condition specifications")
    then: ActionSpec = Field(default_factory=ActionSpec)


class RulesetSpec(BaseModel):
    """A declarative ruleset document."""

    name: str | None = None
    default_effects: dict[str, Any] = Field(default_factory=dict)
    rules: list[RuleSpec] = Field(default_factory=list)


# =============================================================================
# Condition Parsing
# =============================================================================


def _parse_temporal(value: Any) -> date:
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as exc:
        raise RuleLoadError(f"Invalid date value: {value!r}") from exc


def _exists(accessor: AnyField) -> Condition:
    return condition(
        f"{accessor.path} exists",
        lambda facts: accessor.get(facts) is not None,
        lambda facts: {"left": accessor.get(facts), "op": "exists", "right": True},
    )


# operator name -> builder(field accessor, value)
FIELD_OPERATORS: dict[str, Callable[[AnyField, Any], Condition]] = {
    "eq": lambda f, v: f.eq(v),
    "ne": lambda f, v: operators.not_(f"{f.path} != {v}", f.eq(v)),
    "in": lambda f, v: f.in_(v),
    "not_in": lambda f, v: operators.not_(f"{f.path} not_in [{len(v)}]", f.in_(v)),
    "gt": lambda f, v: f.gt(v),
    "gte": lambda f, v: f.gte(v),
    "lt": lambda f, v: f.lt(v),
    "lte": lambda f, v: f.lte(v),
    "between": lambda f, v: f.between(v[0], v[1]),
    "contains": lambda f, v: f.contains(v),
    "starts_with": lambda f, v: f.starts_with(v),
    "matches": lambda f, v: f.matches(v),
    "is_true": lambda f, v: f.is_true(),
    "is_false": lambda f, v: f.is_false(),
    "before": lambda f, v: f.before(_parse_temporal(v)),
    "after": lambda f, v: f.after(_parse_temporal(v)),
    "exists": lambda f, v: _exists(f),
}

OPERATOR_ALIASES = {
    "==": "eq",
    "!=": "ne",
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
}


class RulesetLoader:
    """Loads YAML rulesets into ``RulesetBuilder`` instances."""

    def __init__(self, rules_dir: str | Path | None = None, register: bool | None = None):
        self.rules_dir = Path(rules_dir) if rules_dir else None
        self.register = register
        self._rulesets: dict[str, RulesetBuilder] = {}

    def load_file(self, path: str | Path) -> list[RulesetBuilder]:
        """Load one YAML file holding a ruleset document or a list of them."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Ruleset file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            try:
                content = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise RuleLoadError(f"Invalid YAML in {path}: {exc}") from exc

        documents = content if isinstance(content, list) else [content]
        builders = [self.load(document) for document in documents]
        logger.info("ruleset_file_loaded", path=str(path), rulesets=len(builders))
        return builders

    def load_directory(self, path: str | Path | None = None) -> list[RulesetBuilder]:
        """Load every ``*.yaml`` / ``*.yml`` file in a directory.

        Files that fail to load are logged and skipped.
        """
        path = Path(path) if path else self.rules_dir
        if not path:
            raise ValueError("No rules directory specified")
        if not path.exists():
            raise FileNotFoundError(f"Rules directory not found: {path}")

        builders = []
        for yaml_file in sorted([*path.glob("*.yaml"), *path.glob("*.yml")]):
            try:
                builders.extend(self.load_file(yaml_file))
            except (VerdictError, OSError) as exc:
                logger.warning("ruleset_file_skipped", path=str(yaml_file), error=str(exc))
        return builders

    def loads(self, text: str) -> RulesetBuilder:
        """Load a single ruleset document from a YAML string."""
        try:
            content = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise RuleLoadError(f"Invalid YAML: {exc}") from exc
        return self.load(content)

    def load(self, data: Any) -> RulesetBuilder:
        """Build a ruleset from an already-parsed document."""
        if not isinstance(data, dict):
            raise RuleLoadError("A ruleset document must be a mapping")
        try:
            spec = RulesetSpec(**data)
        except PydanticValidationError as exc:
            raise RuleLoadError(f"Invalid ruleset document: {exc}") from exc

        builder = ruleset(spec.name, register=self.register)
        defaults = spec.default_effects
        builder.default_effects(lambda: copy.deepcopy(defaults))

        for rule_spec in spec.rules:
            rule = builder.rule(rule_spec.id).priority(rule_spec.priority)
            if rule_spec.tags:
                rule.tags(*rule_spec.tags)
            rule.meta(
                description=rule_spec.description,
                version=rule_spec.version,
                reason_code=rule_spec.reason_code,
                enabled=rule_spec.enabled,
            )
            conditions = [self._parse_condition(item, rule_spec.id) for item in rule_spec.when]
            rule.when(*conditions).then(self._build_action(rule_spec.then)).end()

        if spec.name:
            self._rulesets[spec.name] = builder
        return builder

    def get_ruleset(self, name: str) -> RulesetBuilder | None:
        """Get a loaded ruleset by name."""
        return self._rulesets.get(name)

    def _build_action(self, spec: ActionSpec) -> Callable[[ActionContext], Any]:
        patch = spec.patch
        note = spec.note

        def action(ctx: ActionContext) -> Any:
            if note:
                ctx.trace.note(note)
            return copy.deepcopy(patch) if patch is not None else None

        return action

    def _parse_condition(self, data: Any, rule_id: str) -> Condition:
        """Parse a condition spec, a group (all/any/not) or a string condition."""
        if isinstance(data, str):
            return self._parse_string_condition(data, rule_id)
        if not isinstance(data, dict):
            raise RuleLoadError(f"Rule {rule_id!r}: invalid condition {data!r}")

        label = data.get("label")
        if "all" in data:
            children = [self._parse_condition(item, rule_id) for item in data["all"]]
            return operators.and_(label, *children) if label else operators.and_(*children)
        if "any" in data:
            children = [self._parse_condition(item, rule_id) for item in data["any"]]
            return operators.or_(label, *children) if label else operators.or_(*children)
        if "not" in data:
            child = self._parse_condition(data["not"], rule_id)
            return operators.not_(label, child) if label else operators.not_(child)
        if "op" in data:
            try:
                return operators.use(data["op"], *data.get("args", []), **data.get("kwargs", {}))
            except VerdictError as exc:
                raise RuleLoadError(f"Rule {rule_id!r}: {exc}") from exc
        if "field" in data:
            return self._field_condition(
                data["field"], data.get("operator", "eq"), data.get("value"), rule_id
            )
        raise RuleLoadError(f"Rule {rule_id!r}: unrecognized condition {data!r}")

    def _field_condition(self, path: str, operator: str, value: Any, rule_id: str) -> Condition:
        name = OPERATOR_ALIASES.get(operator, operator)
        build = FIELD_OPERATORS.get(name)
        if build is None:
            raise RuleLoadError(f"Rule {rule_id!r}: unknown operator {operator!r}")
        try:
            return build(AnyField(path), value)
        except (TypeError, IndexError, ValueError) as exc:
            raise RuleLoadError(
                f"Rule {rule_id!r}: invalid value {value!r} for operator {operator!r}"
            ) from exc

    def _parse_string_condition(self, cond_str: str, rule_id: str) -> Condition:
        """Parse a string condition like ``user.age >= 18``."""
        for op in ["==", "!=", ">=", "<=", ">", "<", " in "]:
            if op in cond_str:
                parts = cond_str.split(op)
                if len(parts) == 2:
                    path = parts[0].strip()
                    value = self._parse_value(parts[1].strip())
                    return self._field_condition(path, op.strip(), value, rule_id)

        return self._field_condition(cond_str.strip(), "exists", True, rule_id)

    def _parse_value(self, value_str: str) -> Any:
        """Parse a string value into the appropriate type."""
        if value_str.lower() == "true":
            return True
        if value_str.lower() == "false":
            return False

        if value_str.startswith("[") and value_str.endswith("]"):
            inner = value_str[1:-1]
            return [self._parse_value(item.strip()) for item in inner.split(",") if item.strip()]

        try:
            if "." in value_str:
                return float(value_str)
            return int(value_str)
        except ValueError:
            pass

        return value_str.strip("'\"")
