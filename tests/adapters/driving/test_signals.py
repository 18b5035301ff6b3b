"""Tests for signal-driven cancellation."""

import asyncio
import os
import signal

import pytest

from politefetch.adapters.driving.signals import make_stop_on_signal

__all__ = []


@pytest.mark.asyncio
async def test_stop_event_is_set_after_sigterm() -> None:
    """Stop event should be set after SIGTERM is sent."""
    stop = make_stop_on_signal()

    assert stop.is_set() is False

    os.kill(os.getpid(), signal.SIGTERM)
    await asyncio.wait_for(stop.wait(), timeout=1)

    assert stop.is_set() is True


@pytest.mark.asyncio
async def test_stop_event_only_watches_requested_signals() -> None:
    """Only the configured signals set the stop event."""
    loop = asyncio.get_running_loop()
    stop = make_stop_on_signal(signals=(signal.SIGUSR1,))

    try:
        os.kill(os.getpid(), signal.SIGUSR1)
        await asyncio.sleep(0.1)
        assert stop.is_set() is True
    finally:
        loop.remove_signal_handler(signal.SIGUSR1)
