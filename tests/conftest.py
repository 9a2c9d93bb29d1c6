"""Pytest fixtures for test suite."""

from typing import Any

import pytest

from verdict import RulesetRegistry, condition, field, ruleset
from verdict.conditions import get_operator_registry
from verdict.registry import reset_registry


# =============================================================================
# Global State
# =============================================================================


@pytest.fixture(autouse=True)
def clean_registries() -> RulesetRegistry:
    """Fresh process registry and operator registry for every test."""
    registry = reset_registry()
    get_operator_registry().clear()
    yield registry
    registry.clear()
    get_operator_registry().clear()


@pytest.fixture
def registry(clean_registries: RulesetRegistry) -> RulesetRegistry:
    """The process-wide registry rulesets report into."""
    return clean_registries


# =============================================================================
# Condition Fixtures
# =============================================================================


class CallCounter:
    """Condition stub that records how often it was evaluated."""

    def __init__(self, label: str, result: bool = True):
        self.calls = 0
        self._result = result
        self.condition = condition(label, self._test)

    def _test(self, facts: Any) -> bool:
        self.calls += 1
        return self._result


@pytest.fixture
def counter():
    """Factory for counting condition stubs."""
    return CallCounter


@pytest.fixture
def always_true():
    return condition("always", lambda facts: True)


@pytest.fixture
def always_false():
    return condition("never", lambda facts: False)


# =============================================================================
# Ruleset Fixtures
# =============================================================================


@pytest.fixture
def adult_facts() -> dict:
    return {"user": {"age": 20, "country": "DE", "tags": ["vip"]}}


@pytest.fixture
def eligibility_engine():
    """Ruleset flagging adults, with reason code and tags."""

    def flag_adult(ctx):
        ctx.effects["flags"].append("adult")
        ctx.trace.note("adult flag set")

    return (
        ruleset("eligibility")
        .default_effects(lambda: {"flags": []})
        .rule("adult")
        .priority(10)
        .tags("age")
        .reason_code("AGE_18")
        .when(field("user.age").gte(18))
        .then(flag_adult)
        .end()
        .rule("vip")
        .priority(5)
        .tags("marketing")
        .when(field("user.tags").contains("vip"))
        .then(lambda ctx: {"vip": True})
        .end()
        .compile()
    )
