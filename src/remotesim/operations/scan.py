"""
Bluetooth scan simulator.

Duration is drawn from the scan-duration range independent of the device.
The outcome comes from a weighted table (config.scan_weights):

    success  full catalog discovered
    failure  nothing discovered (bluetooth timeout)
    partial  1-2 devices discovered (degraded signal)
    stale    scan timed out; 2-3 cached devices with degraded signal values
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from ..errors import ScanFailed
from ..generators.span_tree import Span
from ..generators.tracing import SpanRecord
from .context import SessionContext

logger = logging.getLogger(__name__)

OPERATION = "bt.scan"


class ScanOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"
    STALE = "stale"


# outcome -> (scan_status, scan_result, failure_reason)
_OUTCOME_TAGS: dict[ScanOutcome, tuple[str, str, str | None]] = {
    ScanOutcome.SUCCESS: ("completed", "success", None),
    ScanOutcome.FAILURE: ("failure", "bluetooth_timeout", "no_devices"),
    ScanOutcome.PARTIAL: ("partial", "degraded_signal", "incomplete_discovery"),
    ScanOutcome.STALE: ("timeout", "stale_cache", "scan_timeout"),
}


@dataclass
class DiscoveredDevice:
    name: str
    signal_strength: int


@dataclass
class ScanResult:
    outcome: ScanOutcome
    duration_ms: float
    devices: list[DiscoveredDevice] = field(default_factory=list)
    record: SpanRecord | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is ScanOutcome.SUCCESS


def scan_outcome_table(weights: dict[str, float]) -> list[tuple[float, ScanOutcome]]:
    """Weighted outcome table in the shape consumed by OutcomeSampler.weighted_choice."""
    return [(weights.get(outcome.value, 0.0), outcome) for outcome in ScanOutcome]


def _discover(ctx: SessionContext, outcome: ScanOutcome) -> list[DiscoveredDevice]:
    catalog = list(ctx.config.effective_devices())
    sampler = ctx.sampler
    if outcome is ScanOutcome.SUCCESS:
        return [DiscoveredDevice(d.name, d.signal_strength) for d in catalog]
    if outcome is ScanOutcome.FAILURE:
        return []
    if outcome is ScanOutcome.PARTIAL:
        count = min(len(catalog), sampler.sample_int((1, 2)))
    else:
        count = min(len(catalog), sampler.sample_int((2, 3)))
    sampler.shuffle(catalog)
    # Degraded readings: weaker than the device's nominal RSSI, floored at 10.
    return [
        DiscoveredDevice(d.name, max(10, d.signal_strength - sampler.sample_int((15, 40))))
        for d in catalog[:count]
    ]


async def simulate_scan(ctx: SessionContext, parent: Span | None = None) -> ScanResult:
    """Emit one bt.scan span and return the discovered devices."""
    builder = ctx.builder
    span = builder.start_span(ctx.parent_or_root(parent), OPERATION, "Bluetooth Device Scan")
    builder.add_breadcrumb("info", "bluetooth.scan", "Started scanning for devices", span)

    duration_ms = ctx.sampler.sample_duration(ctx.config.scan_duration_ms)
    await ctx.sleep(duration_ms)

    outcome = ctx.sampler.weighted_choice(scan_outcome_table(ctx.config.scan_weights))
    devices = _discover(ctx, outcome)
    scan_status, scan_result, failure_reason = _OUTCOME_TAGS[outcome]

    builder.set_tag(span, "scan_status", scan_status)
    builder.set_tag(span, "scan_result", scan_result)
    builder.set_data(span, "devices_found", len(devices))
    builder.set_data(span, "scan_duration_ms", round(duration_ms, 1))
    if failure_reason is not None:
        builder.set_tag(span, "failure_reason", failure_reason)
        if outcome is ScanOutcome.STALE:
            builder.set_tag(span, "using_cached_results", True)
        builder.capture_error(
            span,
            ScanFailed(f"Bluetooth scan {scan_status}: {failure_reason}", outcome=outcome.value),
            {"scan_result": scan_result, "failure_reason": failure_reason},
        )
        builder.add_breadcrumb(
            "warning", "bluetooth.scan", f"Scan {scan_status}: {len(devices)} devices", span
        )
        logger.debug("Scan %s for session %d", outcome.value, ctx.sequence_id)
    else:
        builder.add_breadcrumb(
            "info", "bluetooth.scan", f"Scan completed: {len(devices)} devices", span
        )

    record = builder.finish(span)
    return ScanResult(outcome=outcome, duration_ms=duration_ms, devices=devices, record=record)
