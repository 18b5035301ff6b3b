"""Pending requests with host-aware selection."""

from collections.abc import Iterable
from enum import Enum

from politefetch.core.host_throttle import HostThrottle
from politefetch.ports.request import Request

__all__ = ["QueueState", "RequestQueue"]


class QueueState(Enum):
    """Why the queue did not hand out a request."""

    EMPTY = "empty"
    NONE_RUNNABLE = "none_runnable"


class RequestQueue:
    """Requests waiting for a slot, in submission order.

    Selection is a linear scan for the first request whose host is
    eligible, so each call is O(n) in the number of pending requests.
    That is fine for the URL lists this tool targets (hundreds to low
    thousands); a per-host index would be needed beyond that.
    """

    def __init__(self, requests: Iterable[Request], throttle: HostThrottle) -> None:
        self.throttle = throttle
        self._pending: list[Request] = list(requests)

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def is_empty(self) -> bool:
        return not self._pending

    def next_eligible(self, now: float) -> Request | QueueState:
        """Remove and return the first request whose host may be contacted now.

        Args:
            now: Current clock reading in seconds.

        Returns:
            The request, ``QueueState.EMPTY`` when nothing is left, or
            ``QueueState.NONE_RUNNABLE`` when every remaining host is still
            cooling down and the caller should wait and ask again.
        """
        if not self._pending:
            return QueueState.EMPTY

        for index, request in enumerate(self._pending):
            if self.throttle.eligible(request.host, now):
                return self._pending.pop(index)

        return QueueState.NONE_RUNNABLE
