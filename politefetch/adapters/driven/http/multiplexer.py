"""aiohttp-backed transfer multiplexer."""

import asyncio
import itertools
import logging
from collections import deque
from types import TracebackType
from typing import Any

import aiohttp
from aiohttp import ClientTimeout

from politefetch.ports.request import Request
from politefetch.ports.transfer import CompletionEvent, TransferHandle, TransferInfo

__all__ = ["TransferMultiplexer", "TRANSFER_ERRORS"]

logger = logging.getLogger(__name__)

# Failures reported to the callback as status 0 instead of raised
TRANSFER_ERRORS = (
    aiohttp.ClientError,  # Connection refused, DNS failed, too many redirects, ...
    asyncio.TimeoutError,  # Connect or total timeout
)


class TransferMultiplexer:
    """Overlap many HTTP transfers on one event loop.

    Features:
    - One asyncio task per transfer, sharing one aiohttp session.
    - Completions reported one at a time in network order.
    - Transport errors folded into the completion (status 0).
    - Context manager for proper resource cleanup.
    """

    def __init__(self, session: aiohttp.ClientSession | None = None) -> None:
        """Initialize multiplexer.

        Args:
            session: Optional externally owned session. When omitted, one is
                created on enter and closed on exit.
        """
        self.session = session
        self._owns_session = session is None
        self._active: dict[TransferHandle, asyncio.Task[CompletionEvent]] = {}
        self._reported: set[TransferHandle] = set()
        self._finished: deque[CompletionEvent] = deque()
        self._tickets = itertools.count(1)

    async def __aenter__(self) -> "TransferMultiplexer":
        """Enter async context manager (start session when owned).

        Returns:
            Self for use in async with statement.
        """
        if self.session is None:
            self.session = aiohttp.ClientSession()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Exit async context manager (cancel transfers, close owned session)."""
        await self.close()

    @property
    def active(self) -> int:
        return len(self._active)

    def add(self, request: Request) -> TransferHandle:
        """Start a transfer in the background.

        Args:
            request: Request to issue.

        Returns:
            Handle identifying the transfer until it is removed.

        Raises:
            RuntimeError: If session not initialized.
        """
        if self.session is None:
            raise RuntimeError("Session not initialized; use 'async with' context manager")

        handle = TransferHandle(next(self._tickets))
        loop = asyncio.get_running_loop()
        self._active[handle] = loop.create_task(self._transfer(handle, request))
        return handle

    async def next_completion(self) -> CompletionEvent:
        """Wait until any active transfer finishes and return its completion.

        Raises:
            RuntimeError: If no unreported transfer is active.
        """
        while not self._finished:
            running = [t for h, t in self._active.items() if h not in self._reported]
            if not running:
                raise RuntimeError("No active transfers to wait for")

            done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                event = task.result()
                self._reported.add(event.handle)
                self._finished.append(event)

        return self._finished.popleft()

    def remove(self, handle: TransferHandle) -> None:
        """Drop a transfer from the active set, cancelling it if still running."""
        task = self._active.pop(handle, None)
        self._reported.discard(handle)
        if task is not None and not task.done():
            task.cancel()

    async def close(self) -> None:
        """Cancel outstanding transfers and close the session if owned.

        Safe to call more than once.
        """
        tasks = list(self._active.values())
        self._active.clear()
        self._reported.clear()
        self._finished.clear()

        if tasks:
            logger.debug(f"Cancelling {len(tasks)} outstanding transfers")
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        if self._owns_session and self.session is not None:
            await self.session.close()
            self.session = None

    async def _transfer(self, handle: TransferHandle, request: Request) -> CompletionEvent:
        """Issue one request and turn the outcome into a completion event.

        Args:
            handle: Handle assigned to this transfer.
            request: Request to issue.

        Returns:
            Completion event; any failure other than cancellation yields status 0.

        Raises:
            RuntimeError: If session not initialized.
        """
        if self.session is None:
            raise RuntimeError("Session not initialized; use 'async with' context manager")
        loop = asyncio.get_running_loop()
        started = loop.time()
        method = request.transfer_method

        try:
            async with self.session.request(
                method, request.url, **self._request_kwargs(request)
            ) as resp:
                body = await resp.read()
                info = TransferInfo(
                    status_code=resp.status,
                    url=str(resp.url),
                    elapsed_sec=loop.time() - started,
                    redirect_count=len(resp.history),
                )
        except TRANSFER_ERRORS as e:
            info, body = self._failed(request, e, loop.time() - started), b""
            logger.warning(f"Transfer failed for {method} {request.url}: {info.error}")
        except Exception as e:  # noqa: BLE001
            logger.error(f"Unexpected error in transfer {method} {request.url}: {e}", exc_info=True)
            info, body = self._failed(request, e, loop.time() - started), b""

        return CompletionEvent(handle=handle, info=info, body=body)

    @staticmethod
    def _failed(request: Request, exc: BaseException, elapsed_sec: float) -> TransferInfo:
        return TransferInfo(
            status_code=0,
            url=request.url,
            elapsed_sec=elapsed_sec,
            error=str(exc) or type(exc).__name__,
        )

    @staticmethod
    def _request_kwargs(request: Request) -> dict[str, Any]:
        """Translate transfer options into aiohttp request arguments."""
        options = request.options
        headers = {"User-Agent": options.user_agent}
        if options.accept_encoding:
            headers["Accept-Encoding"] = options.accept_encoding
        headers.update(request.headers)

        kwargs: dict[str, Any] = {
            "headers": headers,
            "timeout": ClientTimeout(
                total=options.timeout_sec,
                connect=options.connect_timeout_sec,
            ),
            "allow_redirects": options.follow_redirects,
            "max_redirects": options.max_redirects,
            "ssl": options.verify_tls,
        }
        if request.transfer_method == "POST":
            kwargs["data"] = dict(request.data)
        return kwargs
