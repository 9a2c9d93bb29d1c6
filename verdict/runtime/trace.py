"""
Trace rendering for rule evaluation.

Turns the structured run trace into an indented, human-readable explanation:

    Ruleset eligibility
    - Rule adult: matched [tags: age] [reason: AGE_18]
      - [true] user.age >= 18 (20 >= 18)
      - note: adult flag set
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

if TYPE_CHECKING:
    from verdict.conditions.service import ConditionTrace
    from verdict.rules.schemas import RuleTrace


def explain_trace(trace: Iterable[RuleTrace], name: str | None = None) -> str:
    """Render a run trace.

    Args:
        trace: Rule traces in execution order
        name: Optional ruleset name for the header line

    Returns:
        Multi-line explanation text
    """
    lines = [f"Ruleset {name}" if name else "Ruleset"]

    for rule in trace:
        meta = rule.meta
        tags = f" [tags: {', '.join(meta.tags)}]" if meta and meta.tags else ""
        reason = f" [reason: {meta.reason_code}]" if meta and meta.reason_code else ""
        if rule.skipped_reason:
            status = f"skipped ({rule.skipped_reason.value})"
        elif rule.matched:
            status = "matched"
        else:
            status = "not matched"
        lines.append(f"- Rule {rule.rule_id}: {status}{tags}{reason}")

        for condition in rule.conditions:
            lines.extend(_render_condition(condition, 2))
        for note in rule.notes:
            lines.append(f"  - note: {note}")

    return "\n".join(lines)


def format_condition(condition: ConditionTrace) -> str:
    """Format a single condition trace line (without indentation)."""
    parts = [f"[{'true' if condition.result else 'false'}]", condition.label]
    if condition.reason_code:
        parts.append(f"{{reason: {condition.reason_code}}}")
    # composite nodes show their children on the following lines instead
    if condition.op and condition.children is None:
        parts.append(f"({_format_value(condition.left)} {condition.op} {_format_value(condition.right)})")
    return " ".join(parts)


def _render_condition(condition: ConditionTrace, indent: int) -> list[str]:
    lines = [f"{' ' * indent}- {format_condition(condition)}"]
    for child in condition.children or []:
        lines.extend(_render_condition(child, indent + 2))
    return lines


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)
