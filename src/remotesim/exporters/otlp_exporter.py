"""
OTLP trace export for simulated sessions (HTTP/protobuf or gRPC).
"""

from typing import Any

from opentelemetry.sdk.trace.export import SpanExporter

from ..errors import InvalidParameter

PROTOCOLS = ("http", "grpc")


def otlp_traces_endpoint(endpoint: str, protocol: str) -> str:
    """Normalize a collector address for the chosen protocol.

    HTTP exporters post to <base>/v1/traces; gRPC takes host:port only.
    """
    if protocol not in PROTOCOLS:
        raise InvalidParameter(f"Unknown OTLP protocol {protocol!r}; use one of {PROTOCOLS}")
    base = endpoint.strip().rstrip("/")
    if protocol == "grpc":
        return base.split("://", 1)[-1]
    return base if base.endswith("/v1/traces") else f"{base}/v1/traces"


def create_otlp_trace_exporter(
    endpoint: str = "http://localhost:4318",
    protocol: str = "http",
    headers: dict[str, str] | None = None,
    **kwargs: Any,
) -> SpanExporter:
    """
    Build the span exporter that ships session trees to a collector.

    Args:
        endpoint: Collector base URL (/v1/traces is appended for HTTP)
        protocol: "http" or "grpc"
        headers: Extra request headers, e.g. from OTEL_EXPORTER_OTLP_HEADERS
        **kwargs: Additional exporter configuration

    Returns:
        Configured SpanExporter
    """
    target = otlp_traces_endpoint(endpoint, protocol)
    if protocol == "grpc":
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        kwargs.setdefault("insecure", endpoint.strip().startswith("http://"))
        return OTLPSpanExporter(endpoint=target, headers=headers, **kwargs)

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import (  # type: ignore[assignment]
        OTLPSpanExporter,
    )

    return OTLPSpanExporter(endpoint=target, headers=headers, **kwargs)


def parse_headers(raw: str | None) -> dict[str, str] | None:
    """Parse "k1=v1,k2=v2" (OTEL_EXPORTER_OTLP_HEADERS style) into a dict."""
    if not raw:
        return None
    headers: dict[str, str] = {}
    for pair in raw.split(","):
        key, sep, value = pair.partition("=")
        if sep and key.strip():
            headers[key.strip()] = value.strip()
    return headers or None
