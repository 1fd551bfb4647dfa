"""
Configuration for the Bluetooth remote simulator.

Every tuned demo constant (scan outcome weights, latency ranges, reliability
pins, lag table) lives on SimulationConfig with the documented defaults and can
be overridden from config/config.yaml under the resource root.

Resource root resolution mirrors the installed/source split: REMOTESIM_ROOT
env var first, then resource/ next to pyproject.toml when running from source,
then resources/ next to this package.
"""

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from . import defaults
from .defaults import DeviceProfile, Persona, Range, Scenario, UIControl
from .errors import InvalidParameter

logger = logging.getLogger(__name__)


def get_resources_root() -> Path:
    """Return the root directory for config resources.

    Resolution order:
    1. REMOTESIM_ROOT env var (must contain config/)
    2. resource/ under directory containing pyproject.toml (when running from source)
    3. remotesim/resources/ next to this package
    """
    env_root = os.environ.get("REMOTESIM_ROOT")
    if env_root:
        p = Path(env_root).resolve()
        if p.is_dir():
            return p
    here = Path(__file__).resolve().parent
    for candidate in [here, *here.parents]:
        if (candidate / "pyproject.toml").is_file():
            return candidate / "resource"
    return Path(__file__).resolve().parent / "resources"


CONFIG_PATH = get_resources_root() / "config" / "config.yaml"

DEFAULT_SERVICE_NAME = "bluetooth-remote"


def load_yaml(path: Path, default: Any = None) -> Any:
    """Load YAML file; return default on missing file or parse error."""
    if default is None:
        default = {}
    if not path.exists():
        return default
    try:
        with path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read config %s: %s", path, e)
        return default
    return data if isinstance(data, dict) else default


def _range(value: Any, name: str) -> Range:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise InvalidParameter(f"{name} must be a [min, max] pair, got {value!r}")
    low, high = float(value[0]), float(value[1])
    if low > high:
        raise InvalidParameter(f"{name} has min > max: {value!r}")
    return low, high


def _parse_persona(raw: dict[str, Any]) -> Persona:
    low, high = _range(raw.get("action_count", (5, 10)), "action_count")
    return Persona(
        id=str(raw["id"]),
        action_count=(int(low), int(high)),
        error_probability=float(raw.get("error_probability", 0.05)),
        think_time_s=_range(raw.get("think_time_s", (0.5, 2.0)), "think_time_s"),
    )


def _parse_device(raw: dict[str, Any]) -> DeviceProfile:
    battery = raw.get("battery_level")
    return DeviceProfile(
        name=str(raw["name"]),
        device_type=str(raw.get("device_type", "speaker")),
        base_latency_ms=_range(raw.get("base_latency_ms", (20, 50)), "base_latency_ms"),
        reliability=float(raw.get("reliability", 0.95)),
        signal_strength=int(raw.get("signal_strength", 80)),
        battery_level=int(battery) if battery is not None else None,
    )


def _parse_scenario(raw: dict[str, Any]) -> Scenario:
    return Scenario(
        name=str(raw["name"]),
        latency_multiplier=float(raw.get("latency_multiplier", 1.0)),
        error_rate=float(raw.get("error_rate", 0.0)),
    )


def _parse_lag(raw: Any) -> tuple[tuple[str, str], float]:
    if not isinstance(raw, dict) or not {"device", "control", "multiplier"} <= raw.keys():
        raise InvalidParameter(
            f"control_lag entries need device, control and multiplier, got {raw!r}"
        )
    return (str(raw["device"]), str(raw["control"])), float(raw["multiplier"])


def _scalar(name: str, kind: Any, value: Any) -> Any:
    if kind is bool:
        if isinstance(value, bool):
            return value
        if str(value).strip().lower() in ("true", "false"):
            return str(value).strip().lower() == "true"
        raise InvalidParameter(f"{name} must be true or false, got {value!r}")
    if kind is float:
        try:
            return float(value)
        except (TypeError, ValueError):
            raise InvalidParameter(f"{name} must be a number, got {value!r}") from None
    return str(value)


_CATALOG_FIELDS = frozenset(
    {"personas", "devices", "scenarios", "reliability_pins", "control_lag", "controls"}
)


@dataclass
class SimulationConfig:
    """All knobs of one simulation run."""

    personas: tuple[Persona, ...] = defaults.PERSONAS
    devices: tuple[DeviceProfile, ...] = defaults.DEVICES
    scenarios: tuple[Scenario, ...] = defaults.SCENARIOS
    reliability_pins: dict[str, float] = field(
        default_factory=lambda: dict(defaults.RELIABILITY_PINS)
    )
    control_lag: dict[tuple[str, str], float] = field(
        default_factory=lambda: dict(defaults.CONTROL_LAG)
    )
    controls: tuple[UIControl, ...] = defaults.UI_CONTROLS

    # Scan outcome table weights (success / total failure / partial / stale cache).
    scan_weights: dict[str, float] = field(
        default_factory=lambda: {
            "success": 0.50,
            "failure": 0.15,
            "partial": 0.15,
            "stale": 0.20,
        }
    )
    scan_duration_ms: Range = (1500.0, 4000.0)
    ack_latency_ms: Range = (20.0, 120.0)
    render_factor: Range = (0.10, 0.15)
    render_cap_ms: Range = (50.0, 80.0)
    connection_render_ms: Range = (8.0, 24.0)
    screen_load_ms: Range = (80.0, 180.0)
    navigation_ms: Range = (50.0, 150.0)
    interaction_ms: Range = (10.0, 50.0)
    track_select_ms: Range = (40.0, 120.0)
    session_pause_ms: Range = (50.0, 200.0)

    scan_probability: float = 1.0
    shuffle_probability: float = 0.15
    playlist_visit_probability: float = 0.3
    settings_visit_probability: float = 0.2

    # Real seconds slept per simulated second; 0 runs on the logical clock only.
    time_scale: float = 1.0
    strict_spans: bool = False
    service_name: str = DEFAULT_SERVICE_NAME

    def __post_init__(self):
        if not self.personas or not self.devices:
            raise InvalidParameter("At least one persona and one device are required")
        if self.time_scale < 0:
            raise InvalidParameter("time_scale must be >= 0")
        if sum(self.scan_weights.values()) <= 0:
            raise InvalidParameter("scan_weights must sum to a positive number")

    def effective_devices(self) -> tuple[DeviceProfile, ...]:
        """Device catalog with reliability pins applied."""
        return tuple(
            dataclasses.replace(d, reliability=self.reliability_pins[d.name])
            if d.name in self.reliability_pins
            else d
            for d in self.devices
        )

    def lag_multiplier(self, device_name: str, control_type: str) -> float:
        return self.control_lag.get((device_name, control_type), 1.0)

    @classmethod
    def load(cls, path: Path | None = None) -> "SimulationConfig":
        """Build config from YAML, falling back to built-in defaults per key."""
        config_path = path or CONFIG_PATH
        data = load_yaml(config_path)
        try:
            kwargs = cls._parse_sections(data)
        except InvalidParameter:
            raise
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise InvalidParameter(f"Malformed config {config_path}: {e!r}") from e

        env_scale = os.environ.get("REMOTESIM_TIME_SCALE", "").strip()
        if env_scale:
            try:
                kwargs["time_scale"] = float(env_scale)
            except ValueError:
                raise InvalidParameter("REMOTESIM_TIME_SCALE must be a number") from None
        env_service = os.environ.get("REMOTESIM_SERVICE_NAME", "").strip()
        if env_service:
            kwargs["service_name"] = env_service

        return cls(**kwargs)

    @classmethod
    def _parse_sections(cls, data: dict[str, Any]) -> dict[str, Any]:
        sim = data.get("simulation") or {}
        kwargs: dict[str, Any] = {}

        if isinstance(data.get("personas"), list):
            kwargs["personas"] = tuple(_parse_persona(p) for p in data["personas"])
        if isinstance(data.get("devices"), list):
            kwargs["devices"] = tuple(_parse_device(d) for d in data["devices"])
        if isinstance(data.get("scenarios"), list):
            kwargs["scenarios"] = tuple(_parse_scenario(s) for s in data["scenarios"])
        if isinstance(data.get("reliability_pins"), dict):
            kwargs["reliability_pins"] = {
                str(k): float(v) for k, v in data["reliability_pins"].items()
            }
        if isinstance(data.get("control_lag"), list):
            kwargs["control_lag"] = dict(_parse_lag(e) for e in data["control_lag"])

        for f in dataclasses.fields(cls):
            if f.name not in sim or f.name in _CATALOG_FIELDS:
                continue
            value = sim[f.name]
            if f.name == "scan_weights":
                kwargs[f.name] = {str(k): float(v) for k, v in value.items()}
            elif f.type == Range:
                kwargs[f.name] = _range(value, f.name)
            else:
                kwargs[f.name] = _scalar(f.name, f.type, value)
        return kwargs
