"""Span exporters for the OpenTelemetry tracing client."""

from .file_exporter import FileSpanExporter, span_to_dict
from .otlp_exporter import create_otlp_trace_exporter, otlp_traces_endpoint, parse_headers

__all__ = [
    "create_otlp_trace_exporter",
    "otlp_traces_endpoint",
    "parse_headers",
    "FileSpanExporter",
    "span_to_dict",
]
