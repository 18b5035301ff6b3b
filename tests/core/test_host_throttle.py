"""Tests for per-host throttling."""

from politefetch.core.host_throttle import HostThrottle

__all__ = []


def test_unknown_host_is_eligible() -> None:
    """A host never dispatched to is always eligible."""
    throttle = HostThrottle(delay_sec=5)

    assert throttle.eligible("example.com", now=0.0) is True
    assert throttle.last_dispatch("example.com") is None


def test_host_is_blocked_within_delay() -> None:
    """A host stays ineligible until strictly more than delay has passed."""
    throttle = HostThrottle(delay_sec=5)
    throttle.mark_dispatched("example.com", now=100.0)

    assert throttle.eligible("example.com", now=103.0) is False
    assert throttle.eligible("example.com", now=105.0) is False
    assert throttle.eligible("example.com", now=105.5) is True


def test_zero_delay_requires_distinct_timestamps() -> None:
    """With delay 0, a second dispatch at the same instant is refused."""
    throttle = HostThrottle(delay_sec=0)
    throttle.mark_dispatched("example.com", now=100.0)

    assert throttle.eligible("example.com", now=100.0) is False
    assert throttle.eligible("example.com", now=100.001) is True


def test_hosts_are_tracked_independently() -> None:
    """Dispatching to one host does not throttle another."""
    throttle = HostThrottle(delay_sec=5)
    throttle.mark_dispatched("a.test", now=100.0)

    assert throttle.eligible("b.test", now=100.0) is True


def test_mark_dispatched_updates_last_time() -> None:
    """Each dispatch replaces the recorded time."""
    throttle = HostThrottle(delay_sec=5)
    throttle.mark_dispatched("a.test", now=100.0)
    throttle.mark_dispatched("a.test", now=110.0)

    assert throttle.last_dispatch("a.test") == 110.0
    assert throttle.eligible("a.test", now=114.0) is False
