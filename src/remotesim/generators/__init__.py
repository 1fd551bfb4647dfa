"""Span generation: logical clock, span tree builder, tracing backends."""

from .clock import SimulationClock
from .span_tree import Span, SpanTreeBuilder
from .tracing import InMemoryTracingClient, OtelTracingClient, SpanRecord, TracingClient

__all__ = [
    "SimulationClock",
    "Span",
    "SpanTreeBuilder",
    "SpanRecord",
    "TracingClient",
    "InMemoryTracingClient",
    "OtelTracingClient",
]
