"""
Span tree builder.

Builds the session -> operation -> sub-operation hierarchy and owns the
start/finish lifecycle of every span:

- a span is finished exactly once (FinishedTwice otherwise)
- duration is readable only after finish (SpanNotFinished otherwise)
- a parent's end time is max(now, latest child end) so a parent never ends
  before any of its children
- finishing a parent with open children is flagged: UnfinishedChildren in
  strict mode, a WARNING otherwise

Tags and numeric fields are streamed to the tracing client as they are set;
finish() reports the end time and returns the span's SpanRecord snapshot.
Every client call is isolated: a failing backend is logged and ignored so
the simulation proceeds identically with or without telemetry delivery.
"""

import itertools
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

from ..errors import FinishedTwice, SpanLifecycleError, SpanNotFinished, UnfinishedChildren
from .clock import SimulationClock
from .tracing import SpanRecord, TracingClient

logger = logging.getLogger(__name__)

# Shared across builders so concurrent sessions never reuse a span id.
_span_ids = itertools.count(1)


def _detached(span: "Span | None") -> bool:
    """True when the span exists locally but has no backend handle."""
    return span is not None and span.handle is None


@dataclass(eq=False)
class Span:
    """A timed unit of work with tags, numeric fields and ordered children."""

    span_id: int
    operation: str
    description: str
    start_ns: int
    parent: "Span | None" = None
    end_ns: int | None = None
    tags: dict[str, str] = field(default_factory=dict)
    data: dict[str, float] = field(default_factory=dict)
    children: list["Span"] = field(default_factory=list)
    handle: Any = field(default=None, repr=False)

    @property
    def finished(self) -> bool:
        return self.end_ns is not None

    @property
    def duration_ms(self) -> float:
        if self.end_ns is None:
            raise SpanNotFinished(f"Span {self.operation!r} has not finished")
        return (self.end_ns - self.start_ns) / 1_000_000

    @property
    def is_root(self) -> bool:
        return self.parent is None

    def unfinished_children(self) -> list["Span"]:
        return [c for c in self.children if not c.finished]

    def walk(self) -> Iterator["Span"]:
        """Depth-first iteration over this span and its descendants."""
        yield self
        for child in self.children:
            yield from child.walk()

    def find(self, operation: str) -> list["Span"]:
        return [s for s in self.walk() if s.operation == operation]

    def snapshot(self) -> SpanRecord:
        if self.end_ns is None:
            raise SpanNotFinished(f"Span {self.operation!r} has not finished")
        return SpanRecord(
            span_id=self.span_id,
            parent_id=self.parent.span_id if self.parent is not None else None,
            operation=self.operation,
            description=self.description,
            start_ns=self.start_ns,
            end_ns=self.end_ns,
            tags=dict(self.tags),
            data=dict(self.data),
        )


class SpanTreeBuilder:
    """Create, annotate and finish spans against one tracing client."""

    def __init__(
        self,
        client: TracingClient,
        clock: SimulationClock | None = None,
        strict: bool = False,
    ):
        self.client = client
        self.clock = clock or SimulationClock(time_scale=0.0)
        self.strict = strict
        self.spans_started = 0
        self.spans_finished = 0
        self.client_failures = 0

    def _call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            self.client_failures += 1
            logger.warning("Tracing client call %s failed: %s", fn.__name__, e)
            return None

    def start_span(self, parent: Any, operation: str, description: str = "") -> Span:
        """Open a span under parent; parent=None opens a root session span.

        parent may also be any object exposing the session root as ``.root``.
        """
        if parent is not None and not isinstance(parent, Span):
            parent = parent.root
        if parent is not None and parent.finished:
            raise SpanLifecycleError(
                f"Cannot start {operation!r} under finished span {parent.operation!r}"
            )
        span = Span(
            span_id=next(_span_ids),
            operation=operation,
            description=description,
            start_ns=self.clock.now_ns(),
            parent=parent,
        )
        if parent is not None:
            parent.children.append(span)
        if parent is None:
            span.handle = self._call(
                self.client.start_span, None, operation, description, span.start_ns
            )
        elif parent.handle is not None:
            span.handle = self._call(
                self.client.start_span, parent.handle, operation, description, span.start_ns
            )
        else:
            # Subtree of a span the backend never saw stays local.
            logger.debug("Not reporting %s: parent %s is detached", operation, parent.operation)
        self.spans_started += 1
        return span

    def _check_open(self, span: Span, what: str) -> None:
        if span.finished:
            raise SpanLifecycleError(f"Cannot {what} on finished span {span.operation!r}")

    def set_tag(self, span: Span, key: str, value: Any) -> None:
        self._check_open(span, "set tag")
        text = str(value).lower() if isinstance(value, bool) else str(value)
        span.tags[key] = text
        if span.handle is not None:
            self._call(self.client.set_tag, span.handle, key, text)

    def set_tags(self, span: Span, tags: dict[str, Any]) -> None:
        for key, value in tags.items():
            self.set_tag(span, key, value)

    def set_data(self, span: Span, key: str, value: float) -> None:
        self._check_open(span, "set data")
        span.data[key] = value
        if span.handle is not None:
            self._call(self.client.set_numeric_field, span.handle, key, value)

    def finish(self, span: Span) -> SpanRecord:
        """Close the span at max(now, latest child end) and flush it."""
        if span.finished:
            raise FinishedTwice(f"Span {span.operation!r} (id={span.span_id}) already finished")
        open_children = span.unfinished_children()
        if open_children:
            names = ", ".join(c.operation for c in open_children)
            if self.strict:
                raise UnfinishedChildren(
                    f"Span {span.operation!r} finished with open children: {names}"
                )
            logger.warning(
                "Span %s finished with %d open children: %s",
                span.operation,
                len(open_children),
                names,
            )
        end_ns = self.clock.now_ns()
        for child in span.children:
            if child.end_ns is not None:
                end_ns = max(end_ns, child.end_ns)
        span.end_ns = max(end_ns, span.start_ns)
        if span.handle is not None:
            self._call(self.client.finish_span, span.handle, span.end_ns)
        self.spans_finished += 1
        return span.snapshot()

    def capture_error(
        self, span: Span | None, error: BaseException, tags: dict[str, Any] | None = None
    ) -> None:
        if _detached(span):
            return
        context_tags = {k: str(v) for k, v in (tags or {}).items()}
        handle = span.handle if span is not None else None
        self._call(self.client.capture_error, error, context_tags, handle)

    def add_breadcrumb(
        self, level: str, category: str, message: str, span: Span | None = None
    ) -> None:
        if _detached(span):
            return
        handle = span.handle if span is not None else None
        self._call(self.client.add_breadcrumb, level, category, message, handle)

    def set_user(self, span: Span, user_id: str) -> None:
        if _detached(span):
            return
        self._call(self.client.set_user_context, user_id, span.handle)
