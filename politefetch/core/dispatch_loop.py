"""Admission and completion loop that keeps the transfer slots busy."""

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from politefetch.core.host_throttle import HostThrottle
from politefetch.core.request_queue import QueueState, RequestQueue
from politefetch.ports.errors import ProtocolViolation
from politefetch.ports.metrics import MetricsPort, TransferAttemptDto
from politefetch.ports.request import Request
from politefetch.ports.settings import RunConfig
from politefetch.ports.transfer import (
    CompletionEvent,
    MultiplexerPort,
    ResultCallback,
    TransferHandle,
)

__all__ = ["DispatchLoop", "LoopState", "THROTTLE_POLL_SEC", "get_now_time"]

logger = logging.getLogger(__name__)

# Back-off while every pending host is cooling down
THROTTLE_POLL_SEC = 1.0
METHOD_NOT_ALLOWED = 405
FIRST_FAILING_HTTP_CODE = 400


def get_now_time() -> float:
    """Get current monotonic time in seconds.

    Uses the event loop's clock so throttling is immune to wall-clock
    adjustments.

    Returns:
        Current time in seconds (monotonic).
    """
    return asyncio.get_running_loop().time()


class LoopState(Enum):
    PRIMING = "priming"
    RUNNING = "running"
    DRAINED = "drained"


@dataclass(slots=True)
class _InFlight:
    """In-flight map entry: the request behind a transfer handle."""

    request: Request
    dispatched_at_sec: float
    retried: bool = False


class DispatchLoop:
    """Run one batch of requests through a multiplexer.

    Lifecycle:
    1. PRIMING: admit eligible requests until ``parallel`` slots are busy
       or the queue has nothing runnable.
    2. RUNNING: wait for a completion, retry or deliver it, then backfill
       the freed slot with one more request.
    3. DRAINED: queue empty and nothing in flight (or stop requested);
       the multiplexer is closed.

    All state (queue, throttle table, in-flight map) belongs to this
    instance, which serves exactly one run.
    """

    def __init__(
        self,
        config: RunConfig,
        requests: Iterable[Request],
        multiplexer: MultiplexerPort,
        callback: ResultCallback,
        *,
        stop_event: asyncio.Event | None = None,
        metrics: MetricsPort | None = None,
        clock: Callable[[], float] = get_now_time,
    ) -> None:
        """Initialize the loop.

        Args:
            config: Run configuration; validated here.
            requests: Requests in submission order.
            multiplexer: Transfer multiplexer to dispatch into.
            callback: Called as ``callback(info, request, body)`` per result.
            stop_event: Optional cancellation token; once set the run stops
                admitting and abandons outstanding transfers.
            metrics: Optional collector updated per delivered result.
            clock: Monotonic clock in seconds.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        config.validate()
        self.config = config
        self.state = LoopState.PRIMING
        self.throttle = HostThrottle(config.delay_sec)
        self.queue = RequestQueue(requests, self.throttle)
        self.multiplexer = multiplexer
        self.callback = callback
        self.metrics = metrics
        self._stop_event = stop_event
        self._clock = clock
        self._in_flight: dict[TransferHandle, _InFlight] = {}

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def run(self) -> None:
        """Dispatch every queued request and deliver every result.

        Returns once the queue is empty and no transfer is active, or as
        soon as the stop event is set, even while a transfer is pending.
        """
        try:
            self._prime()
            self.state = LoopState.RUNNING

            while self._in_flight or not self.queue.is_empty:
                if self._stop_requested():
                    break

                if not self._in_flight:
                    await self._backfill()
                    continue

                event = await self._next_completion()
                if event is None:
                    break
                if self._complete(event):
                    await self._backfill()
        finally:
            abandoned = len(self._in_flight) + len(self.queue)
            if abandoned:
                logger.warning(f"Run stopped early, {abandoned} requests abandoned")
            await self.multiplexer.close()
            self.state = LoopState.DRAINED
            if self.metrics:
                logger.info(f"Fetch metrics: {self.metrics}")

    def _stop_requested(self) -> bool:
        return self._stop_event is not None and self._stop_event.is_set()

    async def _next_completion(self) -> CompletionEvent | None:
        """Wait for the next completion, racing it against the stop event.

        Returns:
            The completion, or None if a stop was requested first.
        """
        if self._stop_event is None:
            return await self.multiplexer.next_completion()

        completion = asyncio.ensure_future(self.multiplexer.next_completion())
        stopped = asyncio.ensure_future(self._stop_event.wait())
        waiters = (completion, stopped)
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)

        # A completion that raced the stop is still handed back
        if completion.cancelled():
            return None
        return completion.result()

    async def _pause(self) -> None:
        """Back off for one poll interval, waking early on a stop request."""
        if self._stop_event is None:
            await asyncio.sleep(THROTTLE_POLL_SEC)
            return

        try:
            await asyncio.wait_for(self._stop_event.wait(), THROTTLE_POLL_SEC)
        except asyncio.TimeoutError:
            logger.debug("Every pending host is still cooling down")

    def _prime(self) -> None:
        while len(self._in_flight) < self.config.parallel:
            now = self._clock()
            request = self.queue.next_eligible(now)
            if not isinstance(request, Request):
                break
            self._dispatch(request, now)

        logger.debug(f"Primed {len(self._in_flight)} slots, {len(self.queue)} requests queued")

    async def _backfill(self) -> None:
        """Admit one request into a free slot, waiting out host cool-downs."""
        if len(self._in_flight) >= self.config.parallel:
            return

        while not self._stop_requested():
            now = self._clock()
            request = self.queue.next_eligible(now)

            if request is QueueState.EMPTY:
                return
            if request is QueueState.NONE_RUNNABLE:
                await self._pause()
                continue

            self._dispatch(request, now)
            return

    def _dispatch(self, request: Request, now: float, *, retried: bool = False) -> None:
        handle = self.multiplexer.add(request)
        if handle in self._in_flight:
            raise ProtocolViolation(f"Multiplexer reused live transfer handle {handle}")

        self._in_flight[handle] = _InFlight(request, now, retried)
        # Retries go straight back to the multiplexer without touching the throttle
        if not retried:
            self.throttle.mark_dispatched(request.host, now)

        logger.debug(f"Dispatched {request.transfer_method} {request.url} ({handle})")

    def _complete(self, event: CompletionEvent) -> bool:
        """Handle one completion.

        Returns:
            True if the slot was freed, False if it was reused for a retry.

        Raises:
            ProtocolViolation: If the handle is not in the in-flight map.
        """
        slot = self._in_flight.pop(event.handle, None)
        if slot is None:
            raise ProtocolViolation(f"Completion for unknown transfer {event.handle}")
        self.multiplexer.remove(event.handle)

        request = slot.request
        logger.debug(f"Completed {request.url} with status {event.status_code}")

        if self._should_retry(request, event):
            logger.info(f"HEAD {request.url} returned 405, retrying as GET")
            self._dispatch(request.as_full_fetch(), self._clock(), retried=True)
            return False

        self._record(slot, event)
        self._deliver(event, request)
        return True

    def _should_retry(self, request: Request, event: CompletionEvent) -> bool:
        return (
            event.status_code == METHOD_NOT_ALLOWED
            and request.method == "HEAD"
            and request.options.no_body
            and self.config.retry_head_as_get
        )

    def _record(self, slot: _InFlight, event: CompletionEvent) -> None:
        if not self.metrics:
            return
        status = event.status_code
        self.metrics.update(
            TransferAttemptDto(
                dispatched_at_sec=slot.dispatched_at_sec,
                completed_at_sec=self._clock(),
                is_failed=status == 0 or status >= FIRST_FAILING_HTTP_CODE,
                status_code=status,
                retried=slot.retried,
            )
        )

    def _deliver(self, event: CompletionEvent, request: Request) -> None:
        try:
            self.callback(event.info, request, event.body)
        except Exception as e:  # noqa: BLE001
            logger.error(f"Result callback failed for {request.url}: {e}", exc_info=True)
