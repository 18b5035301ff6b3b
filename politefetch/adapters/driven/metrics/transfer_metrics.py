"""In-memory sliding-window metrics for delivered transfers."""

from __future__ import annotations

import statistics
from collections import deque
from dataclasses import dataclass

from politefetch.ports.metrics import MetricsPort, TransferAttemptDto

__all__ = ["TransferMetrics"]


@dataclass(slots=True, frozen=True)
class _Sample:
    """Internal record for one delivered transfer."""

    latency_ms: float
    failed: bool
    status_code: int
    retried: bool


class TransferMetrics(MetricsPort):
    """Lock-free metrics for the dispatch loop.

    Tracks:
    - Average latency (dispatch to completion handling).
    - Failure rate (transport errors or status >= 400).
    - HEAD->GET retries within the window.
    - Last status code and total results seen.

    Not thread-safe; create one instance per event loop.
    """

    def __init__(self, *, window_size: int = 100) -> None:
        """Initialize metrics collector.

        Args:
            window_size: Number of recent results to keep for statistics.
        """
        self._window: deque[_Sample] = deque(maxlen=window_size)
        self._total_seen: int = 0

    def update(self, attempt: TransferAttemptDto) -> None:
        latency_ms = (attempt.completed_at_sec - attempt.dispatched_at_sec) * 1_000.0
        self._window.append(
            _Sample(
                latency_ms=latency_ms,
                failed=attempt.is_failed,
                status_code=attempt.status_code,
                retried=attempt.retried,
            )
        )
        self._total_seen += 1

    def __str__(self) -> str:
        if not self._window:
            return "Metrics: no transfers completed"

        n_window = len(self._window)
        failures = sum(1 for s in self._window if s.failed)
        retries = sum(1 for s in self._window if s.retried)
        avg_latency = statistics.fmean(s.latency_ms for s in self._window)
        last = self._window[-1]

        return (
            f"latency={avg_latency:7.1f} ms | "
            f"status={last.status_code:3d} | "
            f"fail={failures / n_window * 100:5.1f}% | "
            f"retried={retries} | "
            f"win={n_window}/{self._window.maxlen} | "
            f"total={self._total_seen}"
        )
