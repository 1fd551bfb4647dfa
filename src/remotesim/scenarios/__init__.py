"""Session orchestration and batch execution."""

from .runner import BatchRunner, BatchSummary, percentile
from .session import SessionOrchestrator, SessionResult

__all__ = [
    "SessionOrchestrator",
    "SessionResult",
    "BatchRunner",
    "BatchSummary",
    "percentile",
]
