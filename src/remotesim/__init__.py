"""
Bluetooth Remote Simulator - synthetic session telemetry for dashboards.

This package fabricates realistic user sessions of a fictitious Bluetooth
audio remote (scans, connections, BLE commands, UI renders) and emits them
as OpenTelemetry traces.
"""

__version__ = "1.0.0"
