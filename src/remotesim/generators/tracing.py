"""
Tracing client boundary.

The simulation core talks to a telemetry backend only through TracingClient.
Two implementations ship here:

- OtelTracingClient: OpenTelemetry SDK tracer provider with a batch processor
  in front of any SpanExporter (OTLP, JSONL file, console).
- InMemoryTracingClient: records every finished span as a SpanRecord together
  with captured errors, breadcrumbs and user contexts; used for dry runs and
  as the recording double in tests.

Handles returned by start_span are opaque to the core.
"""

import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from opentelemetry import context as otel_context
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter
from opentelemetry.trace import SpanKind, Status, StatusCode

from .. import __version__

logger = logging.getLogger(__name__)


@dataclass
class SpanRecord:
    """Snapshot of a finished span as reported to the backend."""

    span_id: int
    parent_id: int | None
    operation: str
    description: str
    start_ns: int
    end_ns: int
    tags: dict[str, str] = field(default_factory=dict)
    data: dict[str, float] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        return (self.end_ns - self.start_ns) / 1_000_000

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


@dataclass
class CapturedError:
    error: BaseException
    tags: dict[str, str]
    span_id: int | None = None


@dataclass
class Breadcrumb:
    level: str
    category: str
    message: str
    span_id: int | None = None


class TracingClient(ABC):
    """Narrow capability the simulation core needs from a tracing backend."""

    @abstractmethod
    def start_span(
        self, parent: Any | None, operation: str, description: str, start_time_ns: int
    ) -> Any:
        """Open a span under parent (None for a root) and return its handle."""

    @abstractmethod
    def set_tag(self, handle: Any, key: str, value: str) -> None:
        pass

    @abstractmethod
    def set_numeric_field(self, handle: Any, key: str, value: float) -> None:
        pass

    @abstractmethod
    def finish_span(self, handle: Any, end_time_ns: int) -> None:
        pass

    @abstractmethod
    def capture_error(
        self, error: BaseException, context_tags: dict[str, str], handle: Any | None = None
    ) -> None:
        pass

    @abstractmethod
    def add_breadcrumb(
        self, level: str, category: str, message: str, handle: Any | None = None
    ) -> None:
        pass

    @abstractmethod
    def set_user_context(self, user_id: str, handle: Any | None = None) -> None:
        pass

    def shutdown(self) -> None:
        """Flush and release backend resources."""


@dataclass
class _PendingSpan:
    span_id: int
    parent_id: int | None
    operation: str
    description: str
    start_ns: int
    tags: dict[str, str] = field(default_factory=dict)
    data: dict[str, float] = field(default_factory=dict)


class InMemoryTracingClient(TracingClient):
    """Keep everything in lists; nothing leaves the process."""

    def __init__(self):
        self._ids = itertools.count(1)
        self.records: list[SpanRecord] = []
        self.open_spans: dict[int, _PendingSpan] = {}
        self.errors: list[CapturedError] = []
        self.breadcrumbs: list[Breadcrumb] = []
        self.users: dict[int, str] = {}

    def start_span(
        self, parent: Any | None, operation: str, description: str, start_time_ns: int
    ) -> _PendingSpan:
        pending = _PendingSpan(
            span_id=next(self._ids),
            parent_id=parent.span_id if parent is not None else None,
            operation=operation,
            description=description,
            start_ns=start_time_ns,
        )
        self.open_spans[pending.span_id] = pending
        return pending

    def set_tag(self, handle: _PendingSpan, key: str, value: str) -> None:
        handle.tags[key] = value

    def set_numeric_field(self, handle: _PendingSpan, key: str, value: float) -> None:
        handle.data[key] = value

    def finish_span(self, handle: _PendingSpan, end_time_ns: int) -> None:
        self.open_spans.pop(handle.span_id, None)
        self.records.append(
            SpanRecord(
                span_id=handle.span_id,
                parent_id=handle.parent_id,
                operation=handle.operation,
                description=handle.description,
                start_ns=handle.start_ns,
                end_ns=end_time_ns,
                tags=dict(handle.tags),
                data=dict(handle.data),
            )
        )

    def capture_error(
        self, error: BaseException, context_tags: dict[str, str], handle: Any | None = None
    ) -> None:
        span_id = handle.span_id if handle is not None else None
        self.errors.append(CapturedError(error, dict(context_tags), span_id))

    def add_breadcrumb(
        self, level: str, category: str, message: str, handle: Any | None = None
    ) -> None:
        span_id = handle.span_id if handle is not None else None
        self.breadcrumbs.append(Breadcrumb(level, category, message, span_id))

    def set_user_context(self, user_id: str, handle: Any | None = None) -> None:
        if handle is not None:
            self.users[handle.span_id] = user_id

    def by_operation(self, operation: str) -> list[SpanRecord]:
        return [r for r in self.records if r.operation == operation]

    def children_of(self, record: SpanRecord) -> list[SpanRecord]:
        return [r for r in self.records if r.parent_id == record.span_id]


# Bluetooth I/O is modelled as outbound calls; the session root is the entry point.
_SPAN_KIND_BY_PREFIX = (
    ("session", SpanKind.SERVER),
    ("bt.", SpanKind.CLIENT),
    ("device.", SpanKind.CLIENT),
)


def _span_kind(operation: str) -> SpanKind:
    for prefix, kind in _SPAN_KIND_BY_PREFIX:
        if operation.startswith(prefix):
            return kind
    return SpanKind.INTERNAL


class _PrintSpanProcessor:
    """SpanProcessor that prints each simulated span with its tags and breadcrumbs."""

    def on_start(self, span: Any, parent_context: Any = None) -> None:
        pass

    def on_end(self, span: ReadableSpan) -> None:
        span_id = format(span.context.span_id, "016x")
        parent_id = format(span.parent.span_id, "016x") if span.parent else "-"
        duration_ms = ((span.end_time or 0) - (span.start_time or 0)) / 1_000_000
        status = span.status.status_code.name if span.status else "UNSET"
        print(
            f"   [{span.name}] {duration_ms:.1f}ms status={status} "
            f"span_id={span_id} parent_id={parent_id}"
        )
        for k, v in sorted((span.attributes or {}).items()):
            if k != "span.op":
                print(f"      {k}={v}")
        for event in span.events:
            attrs = event.attributes or {}
            if event.name == "breadcrumb":
                print(
                    f"      ~ {attrs.get('breadcrumb.level')} "
                    f"{attrs.get('breadcrumb.category')}: {attrs.get('message')}"
                )
            else:
                print(f"      ! {event.name}: {attrs.get('exception.message', '')}")
        print()

    def shutdown(self) -> None:
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True


class OtelTracingClient(TracingClient):
    """Emit simulated spans through an OpenTelemetry TracerProvider."""

    def __init__(
        self,
        exporter: SpanExporter,
        service_name: str = "bluetooth-remote",
        service_version: str = __version__,
        environment: str = "simulation",
        show_full_spans: bool = False,
    ):
        resource = Resource.create(
            {
                "service.name": service_name,
                "service.version": service_version,
                "deployment.environment.name": environment,
            }
        )
        self.provider = TracerProvider(resource=resource)
        if show_full_spans:
            self.provider.add_span_processor(_PrintSpanProcessor())  # type: ignore[arg-type]
        # Instant runs (time_scale=0) emit faster than the default 2048-span queue drains.
        self.provider.add_span_processor(BatchSpanProcessor(exporter, max_queue_size=16384))
        self.tracer = self.provider.get_tracer(__name__, service_version)

    def start_span(
        self, parent: Any | None, operation: str, description: str, start_time_ns: int
    ) -> trace.Span:
        # Roots get an empty context so no ambient span leaks in as a parent.
        ctx = (
            trace.set_span_in_context(parent)
            if parent is not None
            else otel_context.Context()
        )
        span = self.tracer.start_span(
            operation,
            context=ctx,
            kind=_span_kind(operation),
            start_time=start_time_ns,
        )
        span.set_attribute("span.op", operation)
        span.set_attribute("span.description", description)
        return span

    def set_tag(self, handle: trace.Span, key: str, value: str) -> None:
        handle.set_attribute(key, value)

    def set_numeric_field(self, handle: trace.Span, key: str, value: float) -> None:
        handle.set_attribute(key, value)

    def finish_span(self, handle: trace.Span, end_time_ns: int) -> None:
        handle.end(end_time=end_time_ns)

    def capture_error(
        self, error: BaseException, context_tags: dict[str, str], handle: Any | None = None
    ) -> None:
        """Set status=ERROR, error.type, and an exception event on the span."""
        if handle is None:
            logger.warning("Captured error without span: %s %s", error, context_tags)
            return
        handle.set_attribute("error.type", getattr(error, "error_type", type(error).__name__))
        handle.set_status(Status(StatusCode.ERROR, str(error)))
        handle.record_exception(error, attributes=dict(context_tags))

    def add_breadcrumb(
        self, level: str, category: str, message: str, handle: Any | None = None
    ) -> None:
        if handle is None:
            logger.debug("breadcrumb [%s] %s: %s", level, category, message)
            return
        handle.add_event(
            "breadcrumb",
            {"breadcrumb.level": level, "breadcrumb.category": category, "message": message},
        )

    def set_user_context(self, user_id: str, handle: Any | None = None) -> None:
        if handle is not None:
            handle.set_attribute("enduser.id", user_id)

    def shutdown(self) -> None:
        """Flush before shutdown so the exporter receives every batch."""
        try:
            self.provider.force_flush(5000)
        except Exception as e:
            logger.warning("Span flush failed: %s", e)
        self.provider.shutdown()
