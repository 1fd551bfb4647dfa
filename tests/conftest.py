"""Shared fixtures: recording tracing client, seeded sampler, session contexts."""

import random

import pytest

from remotesim.config import SimulationConfig
from remotesim.defaults import DEVICES, NEUTRAL_SCENARIO, PERSONAS
from remotesim.generators.clock import SimulationClock
from remotesim.generators.span_tree import SpanTreeBuilder
from remotesim.generators.tracing import InMemoryTracingClient
from remotesim.operations import SessionContext
from remotesim.statistics import OutcomeSampler


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer env overrides out of config loading."""
    monkeypatch.delenv("REMOTESIM_TIME_SCALE", raising=False)
    monkeypatch.delenv("REMOTESIM_SERVICE_NAME", raising=False)


@pytest.fixture
def client() -> InMemoryTracingClient:
    return InMemoryTracingClient()


@pytest.fixture
def sampler() -> OutcomeSampler:
    return OutcomeSampler(rng=random.Random(1234))


@pytest.fixture
def clock() -> SimulationClock:
    return SimulationClock(time_scale=0.0, start_ns=1_000_000_000)


@pytest.fixture
def config() -> SimulationConfig:
    return SimulationConfig(time_scale=0.0)


@pytest.fixture
def builder(client: InMemoryTracingClient, clock: SimulationClock) -> SpanTreeBuilder:
    return SpanTreeBuilder(client, clock)


@pytest.fixture
def make_context(builder, sampler, config):
    """Factory for a session context with an open root span."""

    def _make(persona=PERSONAS[0], device=DEVICES[0], scenario=NEUTRAL_SCENARIO, **overrides):
        cfg = overrides.pop("config", config)
        root = builder.start_span(None, "session", "test session")
        return SessionContext(
            sequence_id=1,
            persona=persona,
            device=device,
            builder=builder,
            sampler=overrides.pop("sampler", sampler),
            config=cfg,
            scenario=scenario,
            root=root,
        )

    return _make
