"""Health utility classes and functions for filescan.

Provides:
  - AnalysisLatencyTracker — rolling window of the last 100 finalize latencies (avg, p99)
  - EngineHealth           — dataclass for an engine status snapshot
  - check_engine_health()  — the host-facing status query (loaded / not loaded)
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from filescan.analyzer.loader import AnalyzerLoader
    from filescan.host.sessions import SessionManager

# ─── Data Types ───────────────────────────────────────────────────────────────


@dataclass
class EngineHealth:
    """Snapshot of analysis engine health.

    Attributes:
        status:           Loader status value ("not_loaded", "loading", "loaded", "error").
        loaded:           True when analyzers can be created.
        active_sessions:  Sessions currently ingesting chunks (0 without a SessionManager).
        avg_finalize_ms:  Rolling average of the last 100 finalize durations.
        p99_finalize_ms:  p99 of the last 100 finalize durations.
    """

    status: str
    loaded: bool
    active_sessions: int
    avg_finalize_ms: float
    p99_finalize_ms: float


# ─── AnalysisLatencyTracker ───────────────────────────────────────────────────


class AnalysisLatencyTracker:
    """Rolling window of finalize latency measurements (last *window* samples).

    Thread-safety:
        Appends to a ``deque`` are atomic under the GIL; readers take a
        snapshot with ``list()`` before computing. Good enough for metrics.

    Args:
        window: Maximum number of samples to retain (default 100).

    Usage::

        tracker = AnalysisLatencyTracker()
        tracker.record(12.3)      # add a measurement
        avg  = tracker.avg_ms     # rolling average
        p99  = tracker.p99_ms     # p99 (0.0 until 10+ samples)
        n    = tracker.count      # current sample count
    """

    def __init__(self, window: int = 100) -> None:
        self._times: deque[float] = deque(maxlen=window)

    # ── Mutation ──────────────────────────────────────────────────────────────

    def record(self, duration_ms: float) -> None:
        """Append a latency sample; the oldest sample is evicted when full.

        Args:
            duration_ms: Finalize duration in milliseconds.
        """
        self._times.append(duration_ms)

    # ── Computed properties ───────────────────────────────────────────────────

    @property
    def avg_ms(self) -> float:
        """Rolling arithmetic mean; 0.0 when the window is empty."""
        samples = list(self._times)
        if not samples:
            return 0.0
        return sum(samples) / len(samples)

    @property
    def p99_ms(self) -> float:
        """99th percentile of samples in the rolling window.

        Returns 0.0 when fewer than 10 samples are available (avoids
        misleading p99 values from tiny sample sets).
        """
        samples = list(self._times)
        if len(samples) < 10:
            return 0.0
        sorted_times = sorted(samples)
        # Use floor index so we never go out-of-bounds
        idx = max(0, int(len(sorted_times) * 0.99) - 1)
        return sorted_times[idx]

    @property
    def count(self) -> int:
        """Number of samples currently in the window (0 ≤ count ≤ window)."""
        return len(self._times)


# ─── Engine Health Check ──────────────────────────────────────────────────────


def check_engine_health(
    loader: "AnalyzerLoader",
    sessions: Optional["SessionManager"] = None,
    latency_tracker: Optional[AnalysisLatencyTracker] = None,
) -> EngineHealth:
    """Return a status snapshot for the analysis engine.

    Args:
        loader:          The host's ``AnalyzerLoader``.
        sessions:        Optional ``SessionManager`` to count active sessions.
        latency_tracker: Optional tracker to read avg/p99 from. When ``None``,
                         the session manager's tracker is used if available.

    Returns:
        ``EngineHealth`` with current values.
    """
    tracker = latency_tracker
    if tracker is None and sessions is not None:
        tracker = sessions.latency_tracker
    if tracker is None:
        tracker = AnalysisLatencyTracker()

    return EngineHealth(
        status=loader.status.value,
        loaded=loader.is_loaded(),
        active_sessions=len(sessions.active_sessions()) if sessions is not None else 0,
        avg_finalize_ms=tracker.avg_ms,
        p99_finalize_ms=tracker.p99_ms,
    )
