"""Validators for facts and effects built from pydantic schemas."""

from __future__ import annotations

from typing import Any, Callable

from pydantic import TypeAdapter


def _validator(schema: Any) -> Callable[[Any], None]:
    adapter = TypeAdapter(schema)

    def validate(value: Any) -> None:
        adapter.validate_python(value)

    return validate


def model_facts(schema: Any) -> Callable[[Any], None]:
    """Create a facts validator from a pydantic model or any type.

    Example:
        class Facts(BaseModel):
            age: int

        ruleset("rs").validate_facts(model_facts(Facts))
    """
    return _validator(schema)


def model_effects(schema: Any) -> Callable[[Any], None]:
    """Create an effects validator from a pydantic model or any type."""
    return _validator(schema)
