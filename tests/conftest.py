"""Shared test doubles for the dispatch loop and scheduler tests."""

import itertools
from collections.abc import Callable

import pytest

from politefetch.ports.request import Request
from politefetch.ports.transfer import CompletionEvent, TransferHandle, TransferInfo

Responder = Callable[[Request], tuple[int, bytes]]


def ok_responder(request: Request) -> tuple[int, bytes]:
    """Answer every request with 200 and a small body."""
    return 200, b"ok"


class FakeMultiplexer:
    """In-memory multiplexer that completes transfers on demand.

    Records every added request and the peak number of active transfers.
    Completions come back FIFO by default, LIFO when ``lifo`` is set.
    """

    def __init__(self, responder: Responder = ok_responder, *, lifo: bool = False) -> None:
        self.responder = responder
        self.lifo = lifo
        self.added: list[tuple[TransferHandle, Request]] = []
        self.removed: list[TransferHandle] = []
        self.max_active = 0
        self.closed = False
        self._active: dict[TransferHandle, Request] = {}
        self._unreported: list[TransferHandle] = []
        self._tickets = itertools.count(1)

    async def __aenter__(self) -> "FakeMultiplexer":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    @property
    def active(self) -> int:
        return len(self._active)

    @property
    def methods(self) -> list[str]:
        return [request.transfer_method for _, request in self.added]

    def add(self, request: Request) -> TransferHandle:
        handle = TransferHandle(next(self._tickets))
        self._active[handle] = request
        self._unreported.append(handle)
        self.added.append((handle, request))
        self.max_active = max(self.max_active, len(self._active))
        return handle

    async def next_completion(self) -> CompletionEvent:
        if not self._unreported:
            raise RuntimeError("No active transfers to wait for")
        handle = self._unreported.pop() if self.lifo else self._unreported.pop(0)
        request = self._active[handle]
        status, body = self.responder(request)
        return CompletionEvent(handle, TransferInfo(status_code=status, url=request.url), body)

    def remove(self, handle: TransferHandle) -> None:
        self._active.pop(handle)
        self.removed.append(handle)

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    """Manually advanced clock whose ``sleep`` moves time forward."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_multiplexer() -> FakeMultiplexer:
    return FakeMultiplexer()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_multiplexer() -> Callable[..., FakeMultiplexer]:
    """Factory for multiplexers with a custom responder or completion order."""
    return FakeMultiplexer
