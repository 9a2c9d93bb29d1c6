"""
Telemetry hooks for rule execution.

The engine wraps each run, rule action and condition evaluation in a span when
a :class:`TelemetryAdapter` is attached. Without an adapter the only cost is a
``None`` check. :class:`OpenTelemetryAdapter` bridges to an OpenTelemetry
tracer.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, TypeVar

from opentelemetry import trace as otel_trace

T = TypeVar("T")

RUN_SPAN = "verdict.run"
RULE_SPAN = "verdict.rule"
CONDITION_SPAN = "verdict.condition"

ATTR_RULESET = "verdict.ruleset"
ATTR_RULE_ID = "verdict.rule_id"
ATTR_CONDITION = "verdict.condition"


class TelemetrySpan(Protocol):
    """Minimal span interface. ``record_exception`` and attribute setters are optional."""

    def end(self) -> None: ...


class TelemetryAdapter(Protocol):
    """Starts spans for the engine."""

    def start_span(self, name: str, attributes: dict[str, Any] | None = None) -> TelemetrySpan: ...


def record_exception(span: Any, error: BaseException) -> None:
    """Report an exception to a span if it supports it."""
    recorder = getattr(span, "record_exception", None)
    if recorder is not None:
        recorder(error)


def run_with_span(
    adapter: TelemetryAdapter | None,
    name: str,
    attributes: dict[str, Any],
    fn: Callable[[], T],
) -> T:
    """Call ``fn`` inside a span; exceptions are recorded and re-raised."""
    if adapter is None:
        return fn()
    span = adapter.start_span(name, attributes)
    try:
        return fn()
    except Exception as exc:
        record_exception(span, exc)
        raise
    finally:
        span.end()


def ruleset_attributes(ruleset_name: str | None) -> dict[str, Any]:
    return {ATTR_RULESET: ruleset_name or "ruleset"}


def rule_attributes(ruleset_name: str | None, rule_id: str) -> dict[str, Any]:
    return {ATTR_RULESET: ruleset_name or "ruleset", ATTR_RULE_ID: rule_id}


def condition_attributes(ruleset_name: str | None, rule_id: str, label: str) -> dict[str, Any]:
    return {
        ATTR_RULESET: ruleset_name or "ruleset",
        ATTR_RULE_ID: rule_id,
        ATTR_CONDITION: label,
    }


class OpenTelemetryAdapter:
    """Telemetry adapter backed by an OpenTelemetry tracer.

    Example:
        from opentelemetry import trace
        adapter = OpenTelemetryAdapter(trace.get_tracer("verdict"))
        ruleset("eligibility").telemetry(adapter)
    """

    def __init__(self, tracer: otel_trace.Tracer | None = None):
        self.tracer = tracer or otel_trace.get_tracer("verdict")

    def start_span(self, name: str, attributes: dict[str, Any] | None = None) -> Any:
        span = self.tracer.start_span(name, attributes=attributes)
        if attributes:
            span.set_attributes(attributes)
        return span


def create_otel_adapter(tracer: otel_trace.Tracer | None = None) -> OpenTelemetryAdapter:
    """Create a telemetry adapter from an OpenTelemetry tracer."""
    return OpenTelemetryAdapter(tracer)
