"""Per-session context passed explicitly down the simulator call chain."""

from dataclasses import dataclass, field

from ..config import SimulationConfig
from ..defaults import NEUTRAL_SCENARIO, DeviceProfile, Persona, Scenario
from ..errors import SpanLifecycleError
from ..generators.clock import SimulationClock
from ..generators.span_tree import Span, SpanTreeBuilder
from ..statistics.sampler import OutcomeSampler
from .player import PlayerState


@dataclass
class SessionContext:
    """Everything one simulated session needs; owned by a single call stack."""

    sequence_id: int
    persona: Persona
    device: DeviceProfile
    builder: SpanTreeBuilder
    sampler: OutcomeSampler
    config: SimulationConfig = field(default_factory=SimulationConfig)
    scenario: Scenario = NEUTRAL_SCENARIO
    player: PlayerState = field(default_factory=PlayerState)
    root: Span | None = None

    @property
    def clock(self) -> SimulationClock:
        return self.builder.clock

    @property
    def user_id(self) -> str:
        return f"{self.persona.id}-{self.sequence_id:03d}"

    @property
    def command_multiplier(self) -> float:
        """Device skew times environment skew for Bluetooth I/O latencies."""
        return self.device.latency_multiplier * self.scenario.latency_multiplier

    async def sleep(self, duration_ms: float) -> None:
        await self.builder.clock.sleep(duration_ms)

    def parent_or_root(self, parent: Span | None) -> Span:
        if parent is not None:
            return parent
        if self.root is None:
            raise SpanLifecycleError("Session has no root span; pass an explicit parent")
        return self.root
