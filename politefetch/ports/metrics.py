"""Metrics port definition (interface and DTO)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

__all__ = ["TransferAttemptDto", "MetricsPort"]


@dataclass(slots=True, frozen=True)
class TransferAttemptDto:
    """Immutable snapshot of one delivered transfer.

    Attributes:
        dispatched_at_sec: Monotonic seconds when the transfer was added.
        completed_at_sec: Monotonic seconds when its completion was handled.
        is_failed: True on transport error (status 0) or status >= 400.
        status_code: HTTP status code, 0 when no response arrived.
        retried: True if this result came from a HEAD->GET retry.
    """

    dispatched_at_sec: float
    completed_at_sec: float
    is_failed: bool = False
    status_code: int = 0
    retried: bool = False


class MetricsPort(Protocol):
    """Interface for recording transfer metrics.

    Only the dispatch loop's control coroutine calls update(), so
    implementations need no locking.
    """

    def update(self, attempt: TransferAttemptDto, /) -> None:
        """Record a delivered transfer.

        Args:
            attempt: The attempt to record.
        """
        ...

    def __str__(self) -> str:
        """Return concise textual summary for humans."""
        ...
