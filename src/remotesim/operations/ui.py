"""
UI simulators: screen loads, navigation, generic interactions and on-screen
controls. None of these fail; they pad the session timeline and carry the
device x control lag skew (config.control_lag) that makes a laggy device
stand out in percentile metrics.
"""

import logging
from dataclasses import dataclass

from ..defaults import (
    CONTROL_NEXT,
    CONTROL_PLAYPAUSE,
    CONTROL_PREVIOUS,
    CONTROL_SHUFFLE,
    CONTROL_VOLUME,
    SCREEN_NOW_PLAYING,
    UIControl,
)
from ..errors import InvalidParameter
from ..generators.span_tree import Span
from ..generators.tracing import SpanRecord
from .context import SessionContext

logger = logging.getLogger(__name__)

SCREEN_LOAD_OPERATION = "ui.screen.load"
ACTION_OPERATION = "ui.action.user"

SLOW_SCREEN_LOAD_MS = 400.0
VOLUME_STEP = 10


@dataclass
class UIResult:
    duration_ms: float
    record: SpanRecord | None = None


def _find_control(ctx: SessionContext, control_type: str) -> UIControl:
    for control in ctx.config.controls:
        if control.control_type == control_type:
            return control
    raise InvalidParameter(f"Unknown control type: {control_type}")


async def simulate_screen_load(
    ctx: SessionContext, screen_name: str, parent: Span | None = None
) -> UIResult:
    builder = ctx.builder
    span = builder.start_span(
        ctx.parent_or_root(parent), SCREEN_LOAD_OPERATION, f"Load {screen_name}"
    )
    load_ms = ctx.sampler.sample_duration(
        ctx.config.screen_load_ms, ctx.scenario.latency_multiplier
    )
    await ctx.sleep(load_ms)
    builder.set_tags(
        span,
        {
            "screen_name": screen_name,
            "load_status": "loaded",
            "ui_framework": "swiftui",
            "load_performance": "slow" if load_ms > SLOW_SCREEN_LOAD_MS else "normal",
        },
    )
    builder.set_data(span, "load_time_ms", round(load_ms, 1))
    return UIResult(load_ms, builder.finish(span))


async def simulate_navigation(
    ctx: SessionContext, from_screen: str, to_screen: str, parent: Span | None = None
) -> UIResult:
    builder = ctx.builder
    span = builder.start_span(
        ctx.parent_or_root(parent), ACTION_OPERATION, f"Navigate to {to_screen}"
    )
    nav_ms = ctx.sampler.sample_duration(ctx.config.navigation_ms)
    await ctx.sleep(nav_ms)
    builder.set_tags(
        span,
        {"user_action": "navigation", "screen_name": to_screen, "from_screen": from_screen},
    )
    builder.set_data(span, "navigation_time_ms", round(nav_ms, 1))
    builder.add_breadcrumb("info", "navigation", f"{from_screen} -> {to_screen}", span)
    return UIResult(nav_ms, builder.finish(span))


async def simulate_interaction(
    ctx: SessionContext, action: str, screen_name: str, parent: Span | None = None
) -> UIResult:
    """Generic tap/scroll on a screen."""
    builder = ctx.builder
    span = builder.start_span(
        ctx.parent_or_root(parent), ACTION_OPERATION, f"User {action} on {screen_name}"
    )
    interaction_ms = ctx.sampler.sample_duration(ctx.config.interaction_ms)
    await ctx.sleep(interaction_ms)
    builder.set_tags(span, {"user_action": action, "screen_name": screen_name})
    builder.set_data(span, "interaction_time_ms", round(interaction_ms, 1))
    return UIResult(interaction_ms, builder.finish(span))


async def simulate_track_select(
    ctx: SessionContext, index: int, parent: Span | None = None
) -> UIResult:
    builder = ctx.builder
    track = ctx.player.select(index)
    span = builder.start_span(ctx.parent_or_root(parent), ACTION_OPERATION, "Select track")
    select_ms = ctx.sampler.sample_duration(ctx.config.track_select_ms)
    await ctx.sleep(select_ms)
    builder.set_tags(
        span, {"user_action": "track_select", "screen_name": SCREEN_NOW_PLAYING}
    )
    if track is not None:
        builder.set_tag(span, "track_title", track.title)
    builder.set_data(span, "track_index", ctx.player.current_index)
    builder.set_data(span, "interaction_time_ms", round(select_ms, 1))
    builder.add_breadcrumb(
        "info", "audio.playback", f"Selected {track.title if track else 'nothing'}", span
    )
    return UIResult(select_ms, builder.finish(span))


def _apply_control(ctx: SessionContext, control_type: str, command: str | None) -> None:
    player = ctx.player
    if control_type == CONTROL_PLAYPAUSE:
        player.is_playing = command != "PAUSE" and command != "STOP"
    elif control_type == CONTROL_NEXT:
        player.next()
    elif control_type == CONTROL_PREVIOUS:
        player.previous()
    elif control_type == CONTROL_VOLUME:
        player.adjust_volume(-VOLUME_STEP if command == "VOLUME_DOWN" else VOLUME_STEP)


async def _control_span(
    ctx: SessionContext,
    control_type: str,
    description: str,
    parent: Span | None,
) -> tuple[Span, float]:
    builder = ctx.builder
    control = _find_control(ctx, control_type)
    lag = ctx.config.lag_multiplier(ctx.device.name, control_type)
    span = builder.start_span(ctx.parent_or_root(parent), ACTION_OPERATION, description)
    control_ms = ctx.sampler.sample_duration(control.base_latency_ms, lag)
    await ctx.sleep(control_ms)
    builder.set_tags(
        span,
        {
            "control_type": control_type,
            "screen_name": SCREEN_NOW_PLAYING,
            "connected_device": ctx.device.name,
        },
    )
    builder.set_data(span, "interaction_time_ms", round(control_ms, 1))
    if lag != 1.0:
        builder.set_data(span, "lag_multiplier", lag)
    return span, control_ms


async def simulate_control(
    ctx: SessionContext,
    control_type: str,
    command: str | None = None,
    parent: Span | None = None,
) -> UIResult:
    """Tap an on-screen control; shuffle taps go through simulate_shuffle."""
    if control_type == CONTROL_SHUFFLE:
        return await simulate_shuffle(ctx, parent)
    builder = ctx.builder
    span, control_ms = await _control_span(
        ctx, control_type, f"Tap {control_type.rsplit('.', 1)[-1]}", parent
    )
    _apply_control(ctx, control_type, command)
    if control_type == CONTROL_VOLUME:
        builder.set_data(span, "volume_level", ctx.player.volume)
    builder.set_tag(span, "is_playing", ctx.player.is_playing)
    return UIResult(control_ms, builder.finish(span))


async def simulate_shuffle(ctx: SessionContext, parent: Span | None = None) -> UIResult:
    """Toggle shuffle on the player with the same per-device lag skew."""
    builder = ctx.builder
    span, control_ms = await _control_span(ctx, CONTROL_SHUFFLE, "Toggle shuffle", parent)
    enabled = ctx.player.toggle_shuffle(ctx.sampler)
    builder.set_tag(span, "shuffle_enabled", enabled)
    builder.set_data(span, "track_count", len(ctx.player.tracks))
    builder.add_breadcrumb(
        "info", "audio.playback", f"Shuffle {'enabled' if enabled else 'disabled'}", span
    )
    return UIResult(control_ms, builder.finish(span))
