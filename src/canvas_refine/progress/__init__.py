"""
Progress reporting for long-running generations.

Components:
- CompletionSignal: Single-write outcome cell shared with the generation task
- PeriodicTicker: Fixed-interval loop with an explicit stop condition
- ProgressMonitor: Time-based percent estimate + completion polling
"""

from canvas_refine.progress.monitor import ProgressMonitor, ProgressState, estimate_percent
from canvas_refine.progress.signal import CompletionSignal, SignalAlreadySetError
from canvas_refine.progress.ticker import PeriodicTicker

__all__ = [
    "CompletionSignal",
    "SignalAlreadySetError",
    "PeriodicTicker",
    "ProgressMonitor",
    "ProgressState",
    "estimate_percent",
]
