"""
Session orchestrator: one simulated user journey end-to-end.

    Start -> ScreenLoad -> (Scan) -> Connect
          -> [connected] Navigate/Load NowPlaying -> track select
                         -> N x (Command -> control interaction -> think time)
                         -> (PlaylistView) -> (SettingsView)
          -> End

A failed connection is an explicit branch straight to End. Simulated
failures never escape an operation; contract errors do.
"""

import logging
from dataclasses import dataclass, field

from ..config import SimulationConfig
from ..defaults import (
    AUDIO_COMMANDS,
    COMMAND_CONTROLS,
    NEUTRAL_SCENARIO,
    SCREEN_CONTENT,
    SCREEN_NOW_PLAYING,
    SCREEN_PLAYLIST,
    SCREEN_SETTINGS,
    AudioCommand,
    DeviceProfile,
    Persona,
    Scenario,
)
from ..generators.clock import SimulationClock
from ..generators.span_tree import SpanTreeBuilder
from ..generators.tracing import SpanRecord, TracingClient
from ..operations import (
    CommandResult,
    ConnectionResult,
    ScanResult,
    SessionContext,
    simulate_command,
    simulate_connect,
    simulate_control,
    simulate_interaction,
    simulate_navigation,
    simulate_scan,
    simulate_screen_load,
    simulate_track_select,
)
from ..statistics.sampler import OutcomeSampler

logger = logging.getLogger(__name__)

SESSION_OPERATION = "session"


@dataclass
class SessionResult:
    sequence_id: int
    persona: str
    device: str
    scenario: str
    connection: ConnectionResult
    scan: ScanResult | None = None
    commands: list[CommandResult] = field(default_factory=list)
    duration_s: float = 0.0
    spans_emitted: int = 0
    record: SpanRecord | None = None

    @property
    def connected(self) -> bool:
        return self.connection.connected


class SessionOrchestrator:
    """Drive sessions against a tracing client with one shared sampler."""

    def __init__(
        self,
        client: TracingClient,
        config: SimulationConfig | None = None,
        sampler: OutcomeSampler | None = None,
    ):
        self.client = client
        self.config = config or SimulationConfig()
        self.sampler = sampler or OutcomeSampler()
        self._devices = self.config.effective_devices()
        self._shuffle_command = next(
            (c for c in AUDIO_COMMANDS if c.name == "SHUFFLE"), None
        )
        self._other_commands = [c for c in AUDIO_COMMANDS if c.name != "SHUFFLE"]

    def choose_profile(self) -> tuple[Persona, DeviceProfile, Scenario]:
        """Persona, device and environment drawn independently."""
        persona = self.sampler.choice(self.config.personas)
        device = self.sampler.choice(self._devices)
        scenario = (
            self.sampler.choice(self.config.scenarios)
            if self.config.scenarios
            else NEUTRAL_SCENARIO
        )
        return persona, device, scenario

    def _choose_command(self) -> AudioCommand:
        if self._shuffle_command is not None and self.sampler.sample_outcome(
            self.config.shuffle_probability
        ):
            return self._shuffle_command
        return self.sampler.choice(self._other_commands)

    async def _playback_loop(self, ctx: SessionContext) -> list[CommandResult]:
        sampler = self.sampler
        await simulate_navigation(ctx, SCREEN_CONTENT, SCREEN_NOW_PLAYING)
        await simulate_screen_load(ctx, SCREEN_NOW_PLAYING)
        await simulate_track_select(ctx, sampler.sample_int((0, len(ctx.player.tracks) - 1)))

        results: list[CommandResult] = []
        for _ in range(sampler.sample_int(ctx.persona.action_count)):
            command = self._choose_command()
            results.append(await simulate_command(ctx, command))
            control = COMMAND_CONTROLS.get(command.name)
            if control is not None:
                await simulate_control(ctx, control, command.name)
            else:
                await simulate_interaction(ctx, command.name.lower(), SCREEN_NOW_PLAYING)
            await ctx.sleep(sampler.sample_duration(ctx.persona.think_time_s) * 1000.0)

        current = SCREEN_NOW_PLAYING
        if sampler.sample_outcome(self.config.playlist_visit_probability):
            await simulate_navigation(ctx, current, SCREEN_PLAYLIST)
            await simulate_screen_load(ctx, SCREEN_PLAYLIST)
            await simulate_interaction(ctx, "scroll", SCREEN_PLAYLIST)
            current = SCREEN_PLAYLIST
        if sampler.sample_outcome(self.config.settings_visit_probability):
            await simulate_navigation(ctx, current, SCREEN_SETTINGS)
            await simulate_screen_load(ctx, SCREEN_SETTINGS)
        return results

    def _tag_app_state(self, ctx: SessionContext, connected: bool) -> None:
        """Final connected device, track and playback state on the session root."""
        track = ctx.player.current_track if connected else None
        ctx.builder.set_tags(
            ctx.root,
            {
                "connected_device": ctx.device.name if connected else "none",
                "current_track": track.title if track is not None else "none",
                "playback_state": "playing" if ctx.player.is_playing else "stopped",
            },
        )

    async def run_session(
        self,
        sequence_id: int,
        clock: SimulationClock | None = None,
        persona: Persona | None = None,
        device: DeviceProfile | None = None,
        scenario: Scenario | None = None,
    ) -> SessionResult:
        """Simulate one journey and finish its root span exactly once."""
        chosen = self.choose_profile()
        persona = persona or chosen[0]
        device = device or chosen[1]
        scenario = scenario or chosen[2]

        clock = clock or SimulationClock(self.config.time_scale)
        builder = SpanTreeBuilder(self.client, clock, strict=self.config.strict_spans)
        root = builder.start_span(
            None, SESSION_OPERATION, f"{persona.id} session on {device.name}"
        )
        ctx = SessionContext(
            sequence_id=sequence_id,
            persona=persona,
            device=device,
            builder=builder,
            sampler=self.sampler,
            config=self.config,
            scenario=scenario,
            root=root,
        )
        builder.set_tags(
            root,
            {
                "user_persona": persona.id,
                "device_name": device.name,
                "device_scenario": scenario.name,
                "data_source": "simulation",
                "session_id": f"{self.sampler.rng.getrandbits(64):016x}",
            },
        )
        builder.set_data(root, "sequence_id", sequence_id)
        builder.set_user(root, ctx.user_id)
        builder.add_breadcrumb(
            "info", "session.lifecycle", f"Session {sequence_id} started", root
        )
        logger.debug(
            "Session %d: persona=%s device=%s scenario=%s",
            sequence_id,
            persona.id,
            device.name,
            scenario.name,
        )

        await simulate_screen_load(ctx, SCREEN_CONTENT)
        scan = None
        if self.sampler.sample_outcome(self.config.scan_probability):
            scan = await simulate_scan(ctx)
        connection = await simulate_connect(ctx)

        commands: list[CommandResult] = []
        if connection.connected:
            commands = await self._playback_loop(ctx)
        else:
            builder.add_breadcrumb(
                "warning",
                "session.lifecycle",
                f"Not connected to {device.name}; ending session",
                root,
            )

        duration_s = (clock.now_ns() - root.start_ns) / 1e9
        builder.set_tag(root, "session_status", "completed")
        builder.set_tag(root, "connection_result", "success" if connection.connected else "failed")
        self._tag_app_state(ctx, connection.connected)
        builder.set_data(root, "commands_sent", len(commands))
        builder.set_data(root, "session_duration_seconds", round(duration_s, 3))
        builder.add_breadcrumb(
            "info", "session.lifecycle", f"Session {sequence_id} completed", root
        )
        record = builder.finish(root)

        return SessionResult(
            sequence_id=sequence_id,
            persona=persona.id,
            device=device.name,
            scenario=scenario.name,
            connection=connection,
            scan=scan,
            commands=commands,
            duration_s=record.duration_ms / 1000.0,
            spans_emitted=builder.spans_finished,
            record=record,
        )
