"""
Runtime package for verdict.

Provides:
- Trace rendering for explanations
- Telemetry hooks (span adapter protocol and OpenTelemetry bridge)
"""

from verdict.runtime.trace import explain_trace, format_condition
from verdict.runtime.telemetry import (
    TelemetryAdapter,
    TelemetrySpan,
    OpenTelemetryAdapter,
    create_otel_adapter,
    run_with_span,
    RUN_SPAN,
    RULE_SPAN,
    CONDITION_SPAN,
)

__all__ = [
    # Trace
    "explain_trace",
    "format_condition",
    # Telemetry
    "TelemetryAdapter",
    "TelemetrySpan",
    "OpenTelemetryAdapter",
    "create_otel_adapter",
    "run_with_span",
    "RUN_SPAN",
    "RULE_SPAN",
    "CONDITION_SPAN",
]
