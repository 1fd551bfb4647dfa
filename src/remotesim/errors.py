"""
Exception taxonomy.

Two families live here:

- Contract errors (``InvalidParameter``, ``SpanLifecycleError`` and
  subclasses) signal a broken tree invariant or a bad sampler argument.
  They are raised and are meant to fail loudly.
- Simulated failures (``SimulatedFailure`` and subclasses) are modelled
  outcomes. They are never raised through the orchestrator; simulators build
  them as values and hand them to the tracing client's error capture.
"""

from typing import Any


class SimulationError(Exception):
    """Base class for all simulator errors."""


class InvalidParameter(SimulationError, ValueError):
    """Sampler or configuration parameter outside its valid domain."""


class SpanLifecycleError(SimulationError, RuntimeError):
    """A span was used in a way that violates start/finish semantics."""


class FinishedTwice(SpanLifecycleError):
    """finish() was called on a span that is already finished."""


class SpanNotFinished(SpanLifecycleError):
    """Duration or end time was read before the span finished."""


class UnfinishedChildren(SpanLifecycleError):
    """A parent span was finished while some of its children were still open."""


class SimulatedFailure(SimulationError):
    """A modelled device/UI failure reported to the error capture sink."""

    error_type = "unavailable"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class ConnectionTimeout(SimulatedFailure):
    error_type = "timeout"


class CommandFailed(SimulatedFailure):
    error_type = "timeout"


class ScanFailed(SimulatedFailure):
    error_type = "unavailable"
