"""
JSONL span exporter.

Each simulated span becomes one line shaped like the simulator's own view of
it: operation, description, string tags, numeric data, breadcrumbs and the
captured error (if any), plus ids and nanosecond timestamps for joining
spans back into session trees offline.
"""

import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

logger = logging.getLogger(__name__)

# Set by the tracing client on every span; reported as top-level keys instead.
_RESERVED_ATTRIBUTES = ("span.op", "span.description", "error.type", "enduser.id")


def _hex(value: int | None, width: int) -> str | None:
    return format(value, f"0{width}x") if value is not None else None


def _class_name(exception_type: Any) -> str | None:
    # Newer SDKs report the qualified name (remotesim.errors.ConnectionTimeout).
    if exception_type is None:
        return None
    return str(exception_type).rsplit(".", 1)[-1]


def span_to_dict(span: ReadableSpan) -> dict[str, Any]:
    """Flatten a finished span into the simulator's JSON record."""
    attributes = dict(span.attributes or {})
    tags: dict[str, str] = {}
    data: dict[str, float] = {}
    for key, value in attributes.items():
        if key in _RESERVED_ATTRIBUTES:
            continue
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            data[key] = value
        else:
            tags[key] = str(value)

    breadcrumbs = []
    error = None
    for event in span.events:
        attrs = dict(event.attributes or {})
        if event.name == "breadcrumb":
            breadcrumbs.append(
                {
                    "level": attrs.get("breadcrumb.level"),
                    "category": attrs.get("breadcrumb.category"),
                    "message": attrs.get("message"),
                    "timestamp": event.timestamp,
                }
            )
        elif event.name == "exception":
            error = {
                "type": attributes.get("error.type"),
                "exception": _class_name(attrs.pop("exception.type", None)),
                "message": attrs.pop("exception.message", None),
                "context": {
                    k: v for k, v in attrs.items() if not k.startswith("exception.")
                },
            }

    start, end = span.start_time or 0, span.end_time or 0
    return {
        "operation": attributes.get("span.op", span.name),
        "description": attributes.get("span.description", ""),
        "trace_id": _hex(span.context.trace_id, 32),
        "span_id": _hex(span.context.span_id, 16),
        "parent_span_id": _hex(span.parent.span_id, 16) if span.parent else None,
        "start_ns": start,
        "end_ns": end,
        "duration_ms": (end - start) / 1_000_000,
        "status": span.status.status_code.name,
        "user_id": attributes.get("enduser.id"),
        "tags": tags,
        "data": data,
        "breadcrumbs": breadcrumbs,
        "error": error,
        "service": (span.resource.attributes.get("service.name") if span.resource else None),
    }


class FileSpanExporter(SpanExporter):
    """Append simulated spans to a JSONL file."""

    def __init__(self, output_path: str | Path, append: bool = True):
        self.output_path = Path(output_path)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        if not append:
            self.output_path.unlink(missing_ok=True)

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        try:
            payload = "".join(
                json.dumps(span_to_dict(span), default=str) + "\n" for span in spans
            )
            with self.output_path.open("a", encoding="utf-8") as f:
                f.write(payload)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Could not write %d spans to %s: %s", len(spans), self.output_path, e)
            return SpanExportResult.FAILURE
        return SpanExportResult.SUCCESS

    def shutdown(self) -> None:
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True
