"""Operation simulators: each emits one finished sub-tree under a session."""

from .command import CommandResult, simulate_command
from .connection import ConnectionResult, connection_success_probability, simulate_connect
from .context import SessionContext
from .player import PlayerState
from .scan import DiscoveredDevice, ScanOutcome, ScanResult, scan_outcome_table, simulate_scan
from .ui import (
    UIResult,
    simulate_control,
    simulate_interaction,
    simulate_navigation,
    simulate_screen_load,
    simulate_shuffle,
    simulate_track_select,
)

__all__ = [
    "SessionContext",
    "PlayerState",
    "ScanOutcome",
    "ScanResult",
    "DiscoveredDevice",
    "scan_outcome_table",
    "simulate_scan",
    "ConnectionResult",
    "connection_success_probability",
    "simulate_connect",
    "CommandResult",
    "simulate_command",
    "UIResult",
    "simulate_screen_load",
    "simulate_navigation",
    "simulate_interaction",
    "simulate_track_select",
    "simulate_control",
    "simulate_shuffle",
]
