"""Public entry point for fetching a batch of URLs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from politefetch.adapters.driven.http.multiplexer import TransferMultiplexer
from politefetch.adapters.driven.output.console import print_result
from politefetch.core.descriptors import RequestDescriptor, build_requests
from politefetch.core.dispatch_loop import DispatchLoop
from politefetch.ports.metrics import MetricsPort
from politefetch.ports.settings import RunConfig
from politefetch.ports.transfer import MultiplexerPort, ResultCallback

__all__ = ["Scheduler"]

logger = logging.getLogger(__name__)


class Scheduler:
    """Fetch many URLs with bounded concurrency and per-host politeness.

    Configuration is held in an immutable ``RunConfig``; each setter
    swaps in an updated copy and returns the scheduler so calls chain::

        Scheduler().set_parallel(4).set_delay(2).run(["https://example.com/"])

    Every ``run`` gets its own queue, throttle table and in-flight map,
    so nothing leaks from one run into the next.
    """

    def __init__(
        self,
        config: RunConfig | None = None,
        *,
        metrics: MetricsPort | None = None,
        multiplexer_factory: Callable[[], MultiplexerPort] = TransferMultiplexer,
    ) -> None:
        """Initialize scheduler.

        Args:
            config: Default configuration for every run.
            metrics: Optional collector updated per delivered result.
            multiplexer_factory: Builds the multiplexer used by a run.
        """
        self.config = config or RunConfig()
        self.metrics = metrics
        self._multiplexer_factory = multiplexer_factory

    def set_delay(self, seconds: float) -> Scheduler:
        self.config = self.config.replace(delay_sec=seconds)
        return self

    def set_parallel(self, parallel: int) -> Scheduler:
        self.config = self.config.replace(parallel=parallel)
        return self

    def set_method(self, method: str) -> Scheduler:
        self.config = self.config.replace(method=method.upper())
        return self

    def set_retry(self, retry: bool) -> Scheduler:
        self.config = self.config.replace(retry_head_as_get=retry)
        return self

    def set_data(self, data: Mapping[str, str]) -> Scheduler:
        self.config = self.config.replace(data=dict(data))
        return self

    def set_headers(self, headers: Mapping[str, str]) -> Scheduler:
        """Merge ``headers`` into the default headers (new values win)."""
        self.config = self.config.with_headers(headers)
        return self

    def set_options(self, options: Mapping[str, Any]) -> Scheduler:
        """Merge ``options`` into the default transfer options (new values win).

        Raises:
            ConfigurationError: If an option name is unknown.
        """
        self.config = self.config.with_options(options)
        return self

    def run(
        self,
        requests: Iterable[RequestDescriptor],
        callback: ResultCallback | None = None,
        *,
        config: RunConfig | None = None,
    ) -> None:
        """Fetch every request, blocking until all results were delivered.

        Args:
            requests: URL strings or descriptor mappings, in submission order.
            callback: Called as ``callback(info, request, body)`` per result.
                Defaults to printing one Success/Failure line.
            config: Configuration for this call only.

        Raises:
            ConfigurationError: If the configuration or a descriptor is
                invalid; raised before any network activity.
        """
        asyncio.run(self.run_async(requests, callback, config=config))

    async def run_async(
        self,
        requests: Iterable[RequestDescriptor],
        callback: ResultCallback | None = None,
        *,
        config: RunConfig | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        """Async variant of ``run`` that also accepts a cancellation token.

        Args:
            requests: URL strings or descriptor mappings, in submission order.
            callback: Result callback, defaults to ``print_result``.
            config: Configuration for this call only.
            stop_event: Once set, the run stops admitting and abandons
                outstanding transfers.
        """
        run_config = config or self.config
        run_config.validate()
        prepared = build_requests(requests, run_config)

        logger.info(
            f"Fetching {len(prepared)} requests: parallel={run_config.parallel}, "
            f"delay={run_config.delay_sec}s, retry={run_config.retry_head_as_get}"
        )

        async with self._multiplexer_factory() as multiplexer:
            loop = DispatchLoop(
                run_config,
                prepared,
                multiplexer,
                callback or print_result,
                stop_event=stop_event,
                metrics=self.metrics,
            )
            await loop.run()
