"""Signal-driven cancellation for a running fetch."""

import asyncio
import logging
import signal
from collections.abc import Iterable

__all__ = ["make_stop_on_signal"]

logger = logging.getLogger(__name__)


def make_stop_on_signal(
    signals: Iterable[signal.Signals] = (signal.SIGTERM, signal.SIGINT),
) -> asyncio.Event:
    """Create a cancellation token flipped by process signals.

    Installs handlers on the running event loop. The dispatch loop waits
    on the returned event alongside every transfer; once it is set no new
    request is admitted and outstanding transfers are cancelled.

    Args:
        signals: Signals that request a stop.

    Returns:
        Event set once any of ``signals`` was received.
    """
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()

    def handle_signal(sig: signal.Signals) -> None:
        if stop.is_set():
            return
        logger.info(f"{sig.name} received, abandoning outstanding requests...")
        stop.set()

    for sig in signals:
        loop.add_signal_handler(sig, handle_signal, sig)

    return stop
