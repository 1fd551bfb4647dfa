"""Tests for configuration loading and catalogs."""

from pathlib import Path

import pytest

from remotesim.config import CONFIG_PATH, SimulationConfig, load_yaml
from remotesim.defaults import CONTROL_NEXT, CONTROL_PLAYPAUSE, DEVICES
from remotesim.errors import InvalidParameter


def test_bundled_config_exists() -> None:
    """Source checkouts resolve resource/config/config.yaml."""
    assert CONFIG_PATH.is_file()


def test_bundled_config_matches_builtin_defaults() -> None:
    loaded = SimulationConfig.load(CONFIG_PATH)
    builtin = SimulationConfig()
    assert loaded.personas == builtin.personas
    assert loaded.devices == builtin.devices
    assert loaded.scenarios == builtin.scenarios
    assert loaded.reliability_pins == builtin.reliability_pins
    assert loaded.control_lag == builtin.control_lag
    assert loaded.scan_weights == builtin.scan_weights
    assert loaded.scan_duration_ms == builtin.scan_duration_ms


def test_missing_file_falls_back_to_defaults(tmp_path: Path) -> None:
    config = SimulationConfig.load(tmp_path / "absent.yaml")
    assert config == SimulationConfig()


def test_invalid_yaml_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "broken.yaml"
    path.write_text("personas: [unclosed\n", encoding="utf-8")
    assert load_yaml(path) == {}
    assert SimulationConfig.load(path) == SimulationConfig()


def test_yaml_overrides_simulation_knobs(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        """
simulation:
  scan_weights: {success: 1.0, failure: 0, partial: 0, stale: 0}
  ack_latency_ms: [5, 10]
  shuffle_probability: 0.5
  time_scale: 0
reliability_pins:
  Kitchen One: 0.1
control_lag:
  - {device: Living Room Arc, control: audio.control.playpause, multiplier: 3.0}
""",
        encoding="utf-8",
    )
    config = SimulationConfig.load(path)
    assert config.scan_weights["success"] == 1.0
    assert config.ack_latency_ms == (5.0, 10.0)
    assert config.shuffle_probability == 0.5
    assert config.time_scale == 0
    assert config.reliability_pins == {"Kitchen One": 0.1}
    assert config.lag_multiplier("Living Room Arc", CONTROL_PLAYPAUSE) == 3.0
    assert config.lag_multiplier("Basement Sub", CONTROL_NEXT) == 1.0


def test_bad_range_in_yaml_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("simulation:\n  scan_duration_ms: [4000, 1500]\n", encoding="utf-8")
    with pytest.raises(InvalidParameter):
        SimulationConfig.load(path)


def test_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REMOTESIM_TIME_SCALE", "0.25")
    monkeypatch.setenv("REMOTESIM_SERVICE_NAME", "remote-demo")
    config = SimulationConfig.load(tmp_path / "absent.yaml")
    assert config.time_scale == 0.25
    assert config.service_name == "remote-demo"


def test_env_time_scale_must_be_numeric(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REMOTESIM_TIME_SCALE", "fast")
    with pytest.raises(InvalidParameter):
        SimulationConfig.load(tmp_path / "absent.yaml")


def test_reliability_pins_applied() -> None:
    devices = {d.name: d for d in SimulationConfig().effective_devices()}
    assert devices["Bedroom Move"].reliability == 0.40
    assert devices["Basement Sub"].reliability == 0.70
    assert devices["Living Room Arc"].reliability == 0.98


def test_device_latency_multiplier() -> None:
    basement = next(d for d in DEVICES if d.name == "Basement Sub")
    assert basement.latency_multiplier == pytest.approx(2.4)


def test_negative_time_scale_rejected() -> None:
    with pytest.raises(InvalidParameter):
        SimulationConfig(time_scale=-1.0)


def test_empty_catalog_rejected() -> None:
    with pytest.raises(InvalidParameter):
        SimulationConfig(personas=())


def test_quoted_numbers_in_yaml_are_cast(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        'simulation:\n  time_scale: "0.1"\n  strict_spans: "true"\n  service_name: 42\n',
        encoding="utf-8",
    )
    config = SimulationConfig.load(path)
    assert config.time_scale == 0.1
    assert config.strict_spans is True
    assert config.service_name == "42"


@pytest.mark.parametrize(
    "body",
    [
        "control_lag:\n  - {device: Basement Sub, multiplier: 2.0}\n",
        "simulation:\n  time_scale: fast\n",
        "simulation:\n  strict_spans: sometimes\n",
        "personas:\n  - {action_count: [1, 2]}\n",
        "simulation:\n  scan_weights: [0.5, 0.5]\n",
    ],
)
def test_malformed_yaml_raises_invalid_parameter(tmp_path: Path, body: str) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(body, encoding="utf-8")
    with pytest.raises(InvalidParameter):
        SimulationConfig.load(path)
