"""
Bluetooth connection simulator.

Connect latency is the device's base latency range stretched by the
environment's latency multiplier. Success probability is the device's
reliability scaled by the environment, reliability * (1 - scenario.error_rate),
except for devices with a reliability pin: a pin is the final connect rate.
A ui.state.render child reports the outcome into the UI whether or not the
connection succeeded.
"""

import logging
from dataclasses import dataclass

from ..errors import ConnectionTimeout
from ..generators.span_tree import Span
from ..generators.tracing import SpanRecord
from ..statistics.sampler import clamp_probability
from .context import SessionContext

logger = logging.getLogger(__name__)

OPERATION = "bt.connection"
RENDER_OPERATION = "ui.state.render"


@dataclass
class ConnectionResult:
    connected: bool
    duration_ms: float
    render_ms: float
    record: SpanRecord | None = None


def connection_success_probability(
    reliability: float, error_rate: float, pinned: bool = False
) -> float:
    if pinned:
        return clamp_probability(reliability)
    return clamp_probability(reliability) * (1.0 - clamp_probability(error_rate))


async def _render_connection_state(ctx: SessionContext, parent: Span, connected: bool) -> float:
    builder = ctx.builder
    render = builder.start_span(parent, RENDER_OPERATION, "Update connection state")
    render_ms = ctx.sampler.sample_duration(ctx.config.connection_render_ms)
    await ctx.sleep(render_ms)
    builder.set_tag(render, "state_change", "connection_result")
    builder.set_tag(render, "connection_status", "connected" if connected else "failed")
    builder.set_data(render, "render_time_ms", round(render_ms, 1))
    builder.finish(render)
    return render_ms


async def simulate_connect(ctx: SessionContext, parent: Span | None = None) -> ConnectionResult:
    """Emit one bt.connection span with its render child."""
    builder = ctx.builder
    device = ctx.device
    span = builder.start_span(
        ctx.parent_or_root(parent), OPERATION, f"Connect to {device.name}"
    )
    builder.set_tags(
        span,
        {
            "device_name": device.name,
            "device_type": device.device_type,
            "device_scenario": ctx.scenario.name,
        },
    )
    builder.set_data(span, "signal_strength", device.signal_strength)
    if device.battery_level is not None:
        builder.set_data(span, "battery_level", device.battery_level)
    builder.add_breadcrumb(
        "info", "bluetooth.connection", f"Connecting to {device.name}", span
    )

    duration_ms = ctx.sampler.sample_duration(
        device.base_latency_ms, ctx.scenario.latency_multiplier
    )
    await ctx.sleep(duration_ms)

    p = connection_success_probability(
        device.reliability,
        ctx.scenario.error_rate,
        pinned=device.name in ctx.config.reliability_pins,
    )
    connected = ctx.sampler.sample_outcome(p)
    if connected:
        builder.set_tag(span, "connection_result", "success")
        builder.set_data(span, "connection_time_ms", round(duration_ms, 1))
        builder.add_breadcrumb(
            "info", "bluetooth.connection", f"Connected to {device.name}", span
        )
    else:
        builder.set_tag(span, "connection_result", "failed")
        builder.set_tag(span, "failure_reason", "timeout")
        builder.capture_error(
            span,
            ConnectionTimeout(
                f"Connection to {device.name} timed out", device_name=device.name
            ),
            {
                "device_name": device.name,
                "device_type": device.device_type,
                "failure_reason": "timeout",
            },
        )
        builder.add_breadcrumb(
            "error", "bluetooth.connection", f"Connection to {device.name} failed", span
        )
        logger.debug("Session %d: connection to %s failed", ctx.sequence_id, device.name)

    render_ms = await _render_connection_state(ctx, span, connected)
    record = builder.finish(span)
    return ConnectionResult(
        connected=connected, duration_ms=duration_ms, render_ms=render_ms, record=record
    )
