"""
Two-phase write-command simulator.

Phase 1 writes the command (latency = command range x device skew x scenario
skew) and fails with the persona's error probability; a failed write ends the
operation with no response span. Phase 2 waits for the device ack and always
succeeds, after which the UI renders the new state in at most
min(total * 10-15%, 50-80 ms).
"""

import logging
from dataclasses import dataclass

from ..defaults import AudioCommand
from ..errors import CommandFailed
from ..generators.span_tree import Span
from ..generators.tracing import SpanRecord
from .context import SessionContext

logger = logging.getLogger(__name__)

OPERATION = "bt.write.command"
RESPONSE_OPERATION = "device.response"
RENDER_OPERATION = "ui.state.render"


@dataclass
class CommandResult:
    command: str
    succeeded: bool
    write_latency_ms: float
    ack_latency_ms: float = 0.0
    render_ms: float = 0.0
    record: SpanRecord | None = None

    @property
    def total_latency_ms(self) -> float:
        return self.write_latency_ms + self.ack_latency_ms


def render_duration(ctx: SessionContext, total_latency_ms: float) -> float:
    factor = ctx.sampler.sample_duration(ctx.config.render_factor)
    cap = ctx.sampler.sample_duration(ctx.config.render_cap_ms)
    return min(total_latency_ms * factor, cap)


async def _await_ack(ctx: SessionContext, parent: Span) -> float:
    builder = ctx.builder
    response = builder.start_span(
        parent, RESPONSE_OPERATION, f"Acknowledgement from {ctx.device.name}"
    )
    ack_ms = ctx.sampler.sample_duration(ctx.config.ack_latency_ms, ctx.command_multiplier)
    await ctx.sleep(ack_ms)
    builder.set_tags(
        response,
        {
            "ack_status": "received",
            "response_type": "bluetooth_ack",
            "device_type": ctx.device.device_type,
        },
    )
    builder.set_data(response, "ack_latency_ms", round(ack_ms, 1))
    builder.set_data(response, "status_code", 200)
    builder.finish(response)
    return ack_ms


async def _render_command_state(
    ctx: SessionContext, parent: Span, command: AudioCommand, total_ms: float
) -> float:
    builder = ctx.builder
    render = builder.start_span(parent, RENDER_OPERATION, f"Render {command.name} state")
    render_ms = render_duration(ctx, total_ms)
    await ctx.sleep(render_ms)
    builder.set_tag(render, "state_change", command.name.lower())
    builder.set_tag(render, "is_mobile_vital", True)
    builder.set_data(render, "render_time_ms", round(render_ms, 1))
    builder.finish(render)
    return render_ms


async def simulate_command(
    ctx: SessionContext, command: AudioCommand, parent: Span | None = None
) -> CommandResult:
    """Emit one bt.write.command span (with response and render children on success)."""
    builder = ctx.builder
    device = ctx.device
    span = builder.start_span(
        ctx.parent_or_root(parent), OPERATION, f"Send {command.name} to {device.name}"
    )
    builder.set_tags(
        span,
        {
            "command_type": command.name,
            "device_name": device.name,
            "device_type": device.device_type,
        },
    )
    builder.set_data(span, "signal_strength", device.signal_strength)

    write_ms = ctx.sampler.sample_duration(command.write_latency_ms, ctx.command_multiplier)
    await ctx.sleep(write_ms)
    builder.set_data(span, "write_latency_ms", round(write_ms, 1))

    if ctx.sampler.sample_outcome(ctx.persona.error_probability):
        builder.set_tag(span, "command_status", "failed")
        builder.set_tag(span, "failure_reason", "timeout")
        builder.capture_error(
            span,
            CommandFailed(
                f"{command.name} write to {device.name} timed out",
                command=command.name,
                device_name=device.name,
            ),
            {"command_type": command.name, "device_name": device.name},
        )
        builder.add_breadcrumb(
            "error", "mobile.network.error", f"{command.name} write failed", span
        )
        logger.debug("Session %d: %s write failed", ctx.sequence_id, command.name)
        record = builder.finish(span)
        return CommandResult(command.name, False, write_ms, record=record)

    ack_ms = await _await_ack(ctx, span)
    total_ms = write_ms + ack_ms
    render_ms = await _render_command_state(ctx, span, command, total_ms)

    builder.set_tag(span, "command_status", "success")
    builder.set_data(span, "total_latency_ms", round(total_ms, 1))
    builder.add_breadcrumb(
        "info", "mobile.network", f"{command.name} acknowledged by {device.name}", span
    )
    record = builder.finish(span)
    return CommandResult(command.name, True, write_ms, ack_ms, render_ms, record)
