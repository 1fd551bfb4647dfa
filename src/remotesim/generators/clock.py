"""
Logical clock for simulated latency.

Each simulated wait advances a logical cursor by the simulated duration and
suspends cooperatively for duration * time_scale real seconds. Span timestamps
come from the cursor, so emitted durations equal the simulated latencies even
when the run is time-compressed (time_scale < 1) or instant (time_scale = 0).

A compressed run moves the cursor ahead of wall-clock time. reanchor() pulls
it back to time.time_ns(); the batch runner calls it at every session start,
so emitted spans lead real time by at most one session.
"""

import asyncio
import time


class SimulationClock:
    """Monotonic logical time in nanoseconds, anchored at wall-clock time."""

    def __init__(self, time_scale: float = 1.0, start_ns: int | None = None):
        self.time_scale = max(0.0, time_scale)
        self._cursor_ns = time.time_ns() if start_ns is None else start_ns

    def now_ns(self) -> int:
        return self._cursor_ns

    def advance(self, duration_ms: float) -> None:
        self._cursor_ns += max(0, int(duration_ms * 1_000_000))

    async def sleep(self, duration_ms: float) -> None:
        """Advance logical time and yield to the event loop."""
        self.advance(duration_ms)
        await asyncio.sleep(max(0.0, duration_ms) / 1000.0 * self.time_scale)

    def reanchor(self) -> None:
        """Reset the cursor to the current wall-clock time."""
        self._cursor_ns = time.time_ns()

    def fork(self) -> "SimulationClock":
        """Independent clock starting at this clock's current time."""
        return SimulationClock(self.time_scale, start_ns=self._cursor_ns)
