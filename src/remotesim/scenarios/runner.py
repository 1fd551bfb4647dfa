"""
Batch runner: run the session orchestrator N times and aggregate a summary.

Sessions run sequentially with a short random pause between them, or with
``concurrency > 1`` as that many asyncio workers, each on its own forked
clock. Every session re-anchors its clock at wall-clock time. cancel() is
cooperative: it is checked between sessions only, so an in-flight session
always completes and never leaves half-finished spans.
"""

import asyncio
import logging
import math
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..config import SimulationConfig
from ..defaults import DeviceProfile
from ..errors import InvalidParameter
from ..generators.clock import SimulationClock
from ..generators.tracing import TracingClient
from ..statistics.sampler import OutcomeSampler
from .session import SessionOrchestrator, SessionResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def percentile(values: list[float], pct: float) -> float:
    """Nearest-rank percentile; 0.0 for an empty list."""
    if not values:
        return 0.0
    ordered = sorted(values)
    rank = max(1, math.ceil(pct / 100.0 * len(ordered)))
    return ordered[rank - 1]


@dataclass
class BatchSummary:
    """Aggregate counts for one batch run."""

    sessions_requested: int = 0
    sessions_completed: int = 0
    spans_emitted: int = 0
    connections_succeeded: int = 0
    connections_failed: int = 0
    commands_succeeded: int = 0
    commands_failed: int = 0
    scan_outcomes: Counter = field(default_factory=Counter)
    command_latencies_ms: list[float] = field(default_factory=list, repr=False)
    cancelled: bool = False
    elapsed_s: float = 0.0

    def add(self, result: SessionResult) -> None:
        self.sessions_completed += 1
        self.spans_emitted += result.spans_emitted
        if result.connected:
            self.connections_succeeded += 1
        else:
            self.connections_failed += 1
        if result.scan is not None:
            self.scan_outcomes[result.scan.outcome.value] += 1
        for command in result.commands:
            if command.succeeded:
                self.commands_succeeded += 1
                self.command_latencies_ms.append(command.total_latency_ms)
            else:
                self.commands_failed += 1

    @property
    def connection_success_rate(self) -> float:
        total = self.connections_succeeded + self.connections_failed
        return self.connections_succeeded / total if total else 0.0

    @property
    def avg_command_latency_ms(self) -> float:
        lat = self.command_latencies_ms
        return sum(lat) / len(lat) if lat else 0.0

    @property
    def p95_command_latency_ms(self) -> float:
        return percentile(self.command_latencies_ms, 95)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessions_requested": self.sessions_requested,
            "sessions_completed": self.sessions_completed,
            "spans_emitted": self.spans_emitted,
            "connections_succeeded": self.connections_succeeded,
            "connections_failed": self.connections_failed,
            "connection_success_rate": round(self.connection_success_rate, 4),
            "commands_succeeded": self.commands_succeeded,
            "commands_failed": self.commands_failed,
            "avg_command_latency_ms": round(self.avg_command_latency_ms, 1),
            "p95_command_latency_ms": round(self.p95_command_latency_ms, 1),
            "scan_outcomes": dict(self.scan_outcomes),
            "cancelled": self.cancelled,
            "elapsed_s": round(self.elapsed_s, 3),
        }


class BatchRunner:
    """Run a configured number of sessions and report progress."""

    def __init__(
        self,
        client: TracingClient,
        config: SimulationConfig | None = None,
        session_count: int = 1,
        seed: int | None = None,
        concurrency: int = 1,
        progress_callback: ProgressCallback | None = None,
        on_complete: Callable[[BatchSummary], None] | None = None,
        device: DeviceProfile | None = None,
    ):
        if concurrency < 1:
            raise InvalidParameter(f"concurrency must be >= 1, got {concurrency}")
        self.client = client
        self.config = config or SimulationConfig()
        self.sampler = OutcomeSampler(seed=seed)
        self.orchestrator = SessionOrchestrator(client, self.config, self.sampler)
        self.concurrency = concurrency
        self.progress_callback = progress_callback
        self.on_complete = on_complete
        self.device = device
        self.clock = SimulationClock(self.config.time_scale)
        self.progress = 0
        self._cancelled = False
        self.configure(session_count)

    def configure(self, session_count: int) -> None:
        if not isinstance(session_count, int) or session_count < 1:
            raise InvalidParameter(f"session_count must be an integer >= 1, got {session_count!r}")
        self.session_count = session_count

    def cancel(self) -> None:
        """Stop before the next session starts."""
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _record(self, summary: BatchSummary, result: SessionResult) -> None:
        summary.add(result)
        self.progress += 1
        logger.debug(
            "Session %d done: connected=%s commands=%d",
            result.sequence_id,
            result.connected,
            len(result.commands),
        )
        if self.progress_callback:
            self.progress_callback(self.progress, self.session_count)

    async def _pause(self, clock: SimulationClock) -> None:
        await clock.sleep(self.sampler.sample_duration(self.config.session_pause_ms))

    async def _run_one(self, seq: int, clock: SimulationClock) -> SessionResult:
        clock.reanchor()
        return await self.orchestrator.run_session(seq, clock, device=self.device)

    async def _run_sequential(self, summary: BatchSummary) -> None:
        for seq in range(1, self.session_count + 1):
            if self._cancelled:
                break
            self._record(summary, await self._run_one(seq, self.clock))
            if seq < self.session_count:
                await self._pause(self.clock)

    async def _run_concurrent(self, summary: BatchSummary) -> None:
        pending = iter(range(1, self.session_count + 1))

        async def worker() -> None:
            clock = self.clock.fork()
            for seq in pending:
                if self._cancelled:
                    break
                self._record(summary, await self._run_one(seq, clock))
                await self._pause(clock)

        workers = min(self.concurrency, self.session_count)
        await asyncio.gather(*(worker() for _ in range(workers)))

    async def run(self) -> BatchSummary:
        """Run the batch; returns the summary also passed to on_complete.

        A cancel() from an earlier run is cleared, so a runner can be reused.
        """
        self.progress = 0
        self._cancelled = False
        summary = BatchSummary(sessions_requested=self.session_count)
        started = time.monotonic()
        logger.info(
            "Running %d sessions (concurrency=%d, time_scale=%s)",
            self.session_count,
            self.concurrency,
            self.config.time_scale,
        )
        if self.concurrency > 1:
            await self._run_concurrent(summary)
        else:
            await self._run_sequential(summary)
        summary.cancelled = self._cancelled and summary.sessions_completed < self.session_count
        summary.elapsed_s = time.monotonic() - started
        logger.info(
            "Batch finished: %d/%d sessions, %d spans",
            summary.sessions_completed,
            self.session_count,
            summary.spans_emitted,
        )
        if self.on_complete:
            self.on_complete(summary)
        return summary

    def start(self) -> BatchSummary:
        """Blocking entry point for callers without an event loop."""
        return asyncio.run(self.run())
