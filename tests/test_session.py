"""Tests for the session orchestrator."""

import dataclasses

import pytest

from remotesim.config import SimulationConfig
from remotesim.defaults import DEVICES, NEUTRAL_SCENARIO, PERSONAS, TRACKS
from remotesim.generators.clock import SimulationClock
from remotesim.scenarios import SessionOrchestrator
from remotesim.statistics import OutcomeSampler
from remotesim.validators import validate_span_records

RELIABLE = dataclasses.replace(DEVICES[0], reliability=1.0)
DEAD = dataclasses.replace(DEVICES[0], reliability=0.0)


def _orchestrator(client, seed: int = 1, **config_overrides) -> SessionOrchestrator:
    config = SimulationConfig(time_scale=0.0, **config_overrides)
    return SessionOrchestrator(client, config, OutcomeSampler(seed=seed))


async def test_connected_session_shape(client) -> None:
    """A connected session loads, scans, connects and sends persona-bounded commands."""
    orchestrator = _orchestrator(client)
    persona = PERSONAS[0]
    result = await orchestrator.run_session(
        1, persona=persona, device=RELIABLE, scenario=NEUTRAL_SCENARIO
    )
    assert result.connected
    low, high = persona.action_count
    assert low <= len(result.commands) <= high
    assert len(client.by_operation("bt.write.command")) == len(result.commands)
    assert len(client.by_operation("session")) == 1
    assert len(client.by_operation("bt.scan")) == 1
    assert client.open_spans == {}

    root = client.by_operation("session")[0]
    assert root.tags["user_persona"] == persona.id
    assert root.tags["device_name"] == RELIABLE.name
    assert root.tags["session_status"] == "completed"
    assert root.tags["data_source"] == "simulation"
    assert client.users[root.span_id] == f"{persona.id}-001"


async def test_session_children_in_flow_order(client) -> None:
    orchestrator = _orchestrator(client, scan_probability=1.0)
    await orchestrator.run_session(1, device=RELIABLE, scenario=NEUTRAL_SCENARIO)
    root = client.by_operation("session")[0]
    children = sorted(client.children_of(root), key=lambda r: r.start_ns)
    ops = [c.operation for c in children]
    assert ops[:3] == ["ui.screen.load", "bt.scan", "bt.connection"]
    assert children[0].tags["screen_name"] == "ContentView"


async def test_failed_connection_skips_commands(client) -> None:
    """Reliability 0.0 ends the session right after the connection attempt."""
    orchestrator = _orchestrator(client)
    result = await orchestrator.run_session(1, device=DEAD, scenario=NEUTRAL_SCENARIO)
    assert not result.connected
    assert result.commands == []
    assert client.by_operation("bt.write.command") == []
    root = client.by_operation("session")[0]
    assert root.tags["connection_result"] == "failed"
    assert root.tags["session_status"] == "completed"
    assert root.data["commands_sent"] == 0


async def test_scan_can_be_disabled(client) -> None:
    orchestrator = _orchestrator(client, scan_probability=0.0)
    result = await orchestrator.run_session(1, device=RELIABLE, scenario=NEUTRAL_SCENARIO)
    assert result.scan is None
    assert client.by_operation("bt.scan") == []


async def test_session_duration_matches_orchestrated_time(client) -> None:
    """session_duration_seconds equals the logical time the steps took."""
    clock = SimulationClock(time_scale=0.0, start_ns=0)
    orchestrator = _orchestrator(client)
    persona = PERSONAS[0]
    result = await orchestrator.run_session(
        1, clock=clock, persona=persona, device=RELIABLE, scenario=NEUTRAL_SCENARIO
    )
    root = client.by_operation("session")[0]
    assert root.data["session_duration_seconds"] == pytest.approx(clock.now_ns() / 1e9, abs=1e-3)
    assert result.duration_s == pytest.approx(root.duration_ms / 1000.0)
    # Think time alone bounds the session from below.
    assert result.duration_s >= persona.think_time_s[0] * len(result.commands)


async def test_session_tree_is_valid(client) -> None:
    orchestrator = _orchestrator(client, seed=17)
    for seq in range(1, 6):
        await orchestrator.run_session(seq)
    result = validate_span_records(client.records, client.open_spans.keys())
    assert result.valid, result.issues
    assert result.sessions == 5


async def test_spans_emitted_matches_records(client) -> None:
    orchestrator = _orchestrator(client, seed=4)
    result = await orchestrator.run_session(1, device=RELIABLE)
    assert result.spans_emitted == len(client.records)


async def test_profiles_drawn_from_catalogs(client) -> None:
    orchestrator = _orchestrator(client, seed=8)
    config = orchestrator.config
    device_names = {d.name for d in config.effective_devices()}
    for _ in range(50):
        persona, device, scenario = orchestrator.choose_profile()
        assert persona in config.personas
        assert device.name in device_names
        assert scenario in config.scenarios


async def test_pinned_reliability_applies_to_chosen_devices(client) -> None:
    orchestrator = _orchestrator(client, seed=8)
    for _ in range(100):
        _, device, _ = orchestrator.choose_profile()
        if device.name == "Bedroom Move":
            assert device.reliability == 0.40


async def test_shuffle_probability_one_only_shuffles(client) -> None:
    orchestrator = _orchestrator(client, shuffle_probability=1.0)
    result = await orchestrator.run_session(1, device=RELIABLE, scenario=NEUTRAL_SCENARIO)
    assert {c.command for c in result.commands} == {"SHUFFLE"}


async def test_root_carries_final_app_state(client) -> None:
    orchestrator = _orchestrator(client)
    result = await orchestrator.run_session(1, device=RELIABLE, scenario=NEUTRAL_SCENARIO)
    root = result.record
    assert root.tags["connected_device"] == RELIABLE.name
    assert root.tags["current_track"] in {t.title for t in TRACKS}
    assert root.tags["playback_state"] in {"playing", "stopped"}


async def test_disconnected_root_reports_no_device(client) -> None:
    orchestrator = _orchestrator(client)
    result = await orchestrator.run_session(1, device=DEAD, scenario=NEUTRAL_SCENARIO)
    assert result.record.tags["connected_device"] == "none"
    assert result.record.tags["current_track"] == "none"
    assert result.record.tags["playback_state"] == "stopped"
