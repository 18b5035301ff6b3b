"""Per-host politeness delay."""

__all__ = ["HostThrottle"]


class HostThrottle:
    """Track the last dispatch time per host.

    A host is eligible when it has never been dispatched to, or when
    strictly more than ``delay_sec`` seconds have passed since its last
    dispatch. With ``delay_sec == 0`` two dispatches still need distinct
    clock readings.

    The table lives for one run and is never pruned.
    """

    def __init__(self, delay_sec: float) -> None:
        """Initialize an empty throttle table.

        Args:
            delay_sec: Minimum spacing between dispatches to one host.
        """
        self.delay_sec = delay_sec
        self._last_dispatch: dict[str, float] = {}

    def eligible(self, host: str, now: float) -> bool:
        last = self._last_dispatch.get(host)
        return last is None or now - last > self.delay_sec

    def mark_dispatched(self, host: str, now: float) -> None:
        self._last_dispatch[host] = now

    def last_dispatch(self, host: str) -> float | None:
        return self._last_dispatch.get(host)
