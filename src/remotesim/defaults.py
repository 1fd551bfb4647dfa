"""
Built-in persona, device and scenario catalogs.

Pure data: every table here can be overridden from config/config.yaml (see
config.SimulationConfig.load). Device reliability pins and the device x control
lag table are deliberate demo skews so that dashboards show a clear bad actor.
"""

from dataclasses import dataclass

Range = tuple[float, float]


@dataclass(frozen=True)
class Persona:
    """Behavioral archetype selected once per session."""

    id: str
    action_count: tuple[int, int]
    error_probability: float
    think_time_s: Range


@dataclass(frozen=True)
class DeviceProfile:
    """Simulated Bluetooth peripheral."""

    name: str
    device_type: str
    base_latency_ms: Range
    reliability: float
    signal_strength: int
    battery_level: int | None = None

    @property
    def latency_multiplier(self) -> float:
        """Command latency skew relative to a 50ms reference link."""
        return self.base_latency_ms[1] / 50.0


@dataclass(frozen=True)
class Scenario:
    """Environment layer applied multiplicatively on top of a device."""

    name: str
    latency_multiplier: float = 1.0
    error_rate: float = 0.0


NEUTRAL_SCENARIO = Scenario(name="neutral")


@dataclass(frozen=True)
class AudioCommand:
    name: str
    write_latency_ms: Range


@dataclass(frozen=True)
class UIControl:
    control_type: str
    base_latency_ms: Range


@dataclass(frozen=True)
class Track:
    title: str
    artist: str
    duration_s: int
    album: str | None = None
    genre: str | None = None


PERSONAS: tuple[Persona, ...] = (
    Persona("happy_user", (6, 10), 0.05, (2.0, 5.0)),
    Persona("impatient_user", (12, 18), 0.12, (0.5, 1.5)),
    Persona("power_user", (20, 25), 0.06, (0.1, 0.8)),
    Persona("casual_user", (3, 6), 0.05, (3.0, 8.0)),
    Persona("troubled_user", (10, 14), 0.15, (1.0, 3.0)),
)

DEVICES: tuple[DeviceProfile, ...] = (
    DeviceProfile("Living Room Arc", "soundbar", (15.0, 40.0), 0.98, 95),
    DeviceProfile("Kitchen One", "speaker", (20.0, 50.0), 0.95, 87),
    DeviceProfile("Bedroom Move", "portable", (25.0, 80.0), 0.85, 72, battery_level=78),
    DeviceProfile("Office Era 100", "speaker", (18.0, 45.0), 0.96, 91),
    DeviceProfile("Basement Sub", "subwoofer", (30.0, 120.0), 0.80, 68),
)

# Named devices pinned below their catalog reliability for dashboard demos.
RELIABILITY_PINS: dict[str, float] = {
    "Bedroom Move": 0.40,
    "Basement Sub": 0.70,
}

SCENARIOS: tuple[Scenario, ...] = (
    Scenario("optimal", 1.0, 0.02),
    Scenario("weak_signal", 2.5, 0.15),
    Scenario("interference", 1.8, 0.08),
    Scenario("low_battery", 1.3, 0.12),
    Scenario("firmware_lag", 3.2, 0.06),
)

AUDIO_COMMANDS: tuple[AudioCommand, ...] = (
    AudioCommand("PLAY", (20.0, 60.0)),
    AudioCommand("PAUSE", (20.0, 60.0)),
    AudioCommand("STOP", (20.0, 60.0)),
    AudioCommand("VOLUME_UP", (15.0, 40.0)),
    AudioCommand("VOLUME_DOWN", (15.0, 40.0)),
    AudioCommand("NEXT_TRACK", (40.0, 100.0)),
    AudioCommand("PREV_TRACK", (40.0, 100.0)),
    AudioCommand("SHUFFLE", (25.0, 70.0)),
    AudioCommand("REPEAT", (25.0, 70.0)),
)

CONTROL_PLAYPAUSE = "audio.control.playpause"
CONTROL_NEXT = "audio.control.next"
CONTROL_PREVIOUS = "audio.control.previous"
CONTROL_VOLUME = "audio.volume.adjust"
CONTROL_SHUFFLE = "playlist.shuffle"

UI_CONTROLS: tuple[UIControl, ...] = (
    UIControl(CONTROL_PLAYPAUSE, (20.0, 60.0)),
    UIControl(CONTROL_NEXT, (15.0, 25.0)),
    UIControl(CONTROL_PREVIOUS, (20.0, 30.0)),
    UIControl(CONTROL_VOLUME, (20.0, 120.0)),
    UIControl(CONTROL_SHUFFLE, (25.0, 35.0)),
)

# Audio command -> on-screen control the user tapped to issue it.
COMMAND_CONTROLS: dict[str, str] = {
    "PLAY": CONTROL_PLAYPAUSE,
    "PAUSE": CONTROL_PLAYPAUSE,
    "STOP": CONTROL_PLAYPAUSE,
    "VOLUME_UP": CONTROL_VOLUME,
    "VOLUME_DOWN": CONTROL_VOLUME,
    "NEXT_TRACK": CONTROL_NEXT,
    "PREV_TRACK": CONTROL_PREVIOUS,
    "SHUFFLE": CONTROL_SHUFFLE,
}

# (device name, control type) -> delay multiplier over the control's baseline.
CONTROL_LAG: dict[tuple[str, str], float] = {
    ("Basement Sub", CONTROL_NEXT): 7.5,
    ("Kitchen One", CONTROL_NEXT): 6.0,
    ("Basement Sub", CONTROL_PREVIOUS): 7.2,
    ("Kitchen One", CONTROL_PREVIOUS): 5.6,
    ("Basement Sub", CONTROL_SHUFFLE): 8.0,
    ("Kitchen One", CONTROL_SHUFFLE): 6.5,
}

TRACKS: tuple[Track, ...] = (
    Track("Wireless Waves", "Digital Sound Co.", 203, "Tech Vibes", "Electronic"),
    Track("Bluetooth Blues", "Connection Lost", 178, "Signal Issues", "Blues"),
    Track("Streaming Dreams", "Cloud Nine", 245, "Remote Control", "Ambient"),
    Track("Bass Drop Protocol", "Low Frequency Labs", 189, "Subwoofer Sessions", "Dubstep"),
    Track("High Fidelity Morning", "Audiophile's Choice", 267, "Crystal Clear", "Jazz"),
)

SCREEN_CONTENT = "ContentView"
SCREEN_DEVICES = "DevicesView"
SCREEN_NOW_PLAYING = "NowPlayingView"
SCREEN_PLAYLIST = "PlaylistView"
SCREEN_SETTINGS = "SettingsView"
