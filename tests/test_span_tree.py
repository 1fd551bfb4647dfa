"""Tests for span lifecycle and tree invariants."""

import logging

import pytest

from remotesim.config import SimulationConfig
from remotesim.errors import FinishedTwice, SpanLifecycleError, SpanNotFinished, UnfinishedChildren
from remotesim.generators.clock import SimulationClock
from remotesim.generators.span_tree import SpanTreeBuilder
from remotesim.generators.tracing import InMemoryTracingClient
from remotesim.scenarios import SessionOrchestrator
from remotesim.statistics import OutcomeSampler


class _BrokenClient(InMemoryTracingClient):
    """Tracing backend that accepts spans but fails every later call."""

    def set_tag(self, *args, **kwargs):
        raise ConnectionError("collector unreachable")

    def finish_span(self, *args, **kwargs):
        raise ConnectionError("collector unreachable")

    def capture_error(self, *args, **kwargs):
        raise ConnectionError("collector unreachable")


class _RootlessClient(InMemoryTracingClient):
    """Tracing backend that cannot open session spans."""

    def start_span(self, parent, operation, description, start_time_ns):
        if operation == "session":
            raise ConnectionError("collector unreachable")
        return super().start_span(parent, operation, description, start_time_ns)


def test_root_and_child_are_linked(builder, client) -> None:
    """start_span appends to the parent's children and reports the parent link."""
    root = builder.start_span(None, "session", "root")
    child = builder.start_span(root, "bt.scan", "scan")
    assert root.is_root
    assert child.parent is root
    assert root.children == [child]
    builder.finish(child)
    builder.finish(root)
    child_record, root_record = client.records
    assert child_record.parent_id == root_record.span_id
    assert root_record.parent_id is None


def test_finish_twice_is_rejected(builder) -> None:
    span = builder.start_span(None, "session", "root")
    builder.finish(span)
    with pytest.raises(FinishedTwice):
        builder.finish(span)


def test_duration_before_finish_is_rejected(builder) -> None:
    span = builder.start_span(None, "session", "root")
    with pytest.raises(SpanNotFinished):
        _ = span.duration_ms


def test_duration_tracks_logical_clock(builder, clock) -> None:
    span = builder.start_span(None, "session", "root")
    clock.advance(250.0)
    builder.finish(span)
    assert span.duration_ms == pytest.approx(250.0)


def test_parent_end_covers_children(builder, clock) -> None:
    """Parent end time is never earlier than its latest child end."""
    root = builder.start_span(None, "session", "root")
    child = builder.start_span(root, "bt.connection", "connect")
    clock.advance(100.0)
    builder.finish(child)
    # Simulate a child whose end was stamped later than the parent's clock.
    child.end_ns += 5_000_000
    record = builder.finish(root)
    assert record.end_ns >= child.end_ns


def test_open_children_warn_in_lenient_mode(builder, caplog) -> None:
    root = builder.start_span(None, "session", "root")
    builder.start_span(root, "bt.scan", "never finished")
    with caplog.at_level(logging.WARNING, logger="remotesim.generators.span_tree"):
        builder.finish(root)
    assert root.finished
    assert "open children" in caplog.text


def test_open_children_raise_in_strict_mode(client, clock) -> None:
    builder = SpanTreeBuilder(client, clock, strict=True)
    root = builder.start_span(None, "session", "root")
    builder.start_span(root, "bt.scan", "never finished")
    with pytest.raises(UnfinishedChildren):
        builder.finish(root)
    assert not root.finished


def test_tags_last_write_wins(builder, client) -> None:
    span = builder.start_span(None, "session", "root")
    builder.set_tag(span, "scan_status", "partial")
    builder.set_tag(span, "scan_status", "completed")
    builder.set_tag(span, "using_cached_results", True)
    builder.set_data(span, "devices_found", 2)
    builder.set_data(span, "devices_found", 5)
    builder.finish(span)
    record = client.records[0]
    assert record.tags["scan_status"] == "completed"
    assert record.tags["using_cached_results"] == "true"
    assert record.data["devices_found"] == 5


def test_mutating_finished_span_is_rejected(builder) -> None:
    span = builder.start_span(None, "session", "root")
    builder.finish(span)
    with pytest.raises(SpanLifecycleError):
        builder.set_tag(span, "late", "value")
    with pytest.raises(SpanLifecycleError):
        builder.start_span(span, "bt.scan", "late child")


def test_session_context_parent_resolves_to_root(builder, make_context) -> None:
    ctx = make_context()
    child = builder.start_span(ctx, "ui.screen.load", "load")
    assert child.parent is ctx.root


def test_finish_returns_snapshot(builder, clock) -> None:
    span = builder.start_span(None, "session", "root")
    builder.set_tag(span, "user_persona", "power_user")
    clock.advance(10.0)
    record = builder.finish(span)
    assert record.operation == "session"
    assert record.tags == {"user_persona": "power_user"}
    assert record.duration_ms == pytest.approx(10.0)


def test_backend_failures_do_not_interrupt_simulation(caplog) -> None:
    """A failing tracing client is logged and ignored."""
    builder = SpanTreeBuilder(_BrokenClient(), SimulationClock(time_scale=0.0))
    with caplog.at_level(logging.WARNING):
        root = builder.start_span(None, "session", "root")
        child = builder.start_span(root, "bt.connection", "connect")
        builder.set_tag(child, "connection_result", "failed")
        builder.capture_error(child, RuntimeError("boom"))
        builder.finish(child)
        builder.finish(root)
    assert root.finished and child.finished
    assert builder.spans_finished == 2
    assert builder.client_failures >= 2
    assert "Tracing client call" in caplog.text


def test_walk_and_find(builder) -> None:
    root = builder.start_span(None, "session", "root")
    cmd = builder.start_span(root, "bt.write.command", "cmd")
    builder.start_span(cmd, "device.response", "ack")
    assert [s.operation for s in root.walk()] == [
        "session",
        "bt.write.command",
        "device.response",
    ]
    assert len(root.find("device.response")) == 1


async def test_children_of_unreported_root_are_not_reported() -> None:
    """A session the backend never opened emits nothing, not a set of orphan roots."""
    client = _RootlessClient()
    orchestrator = SessionOrchestrator(
        client, SimulationConfig(time_scale=0.0), OutcomeSampler(seed=5)
    )
    result = await orchestrator.run_session(1)
    assert result.record.operation == "session"
    assert result.spans_emitted > 1
    assert client.records == []
    assert client.open_spans == {}
    assert client.errors == []
    assert client.breadcrumbs == []
