"""Transfer multiplexer port definition (interface and DTOs)."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Protocol

from politefetch.ports.request import Request

__all__ = [
    "CompletionEvent",
    "MultiplexerPort",
    "ResultCallback",
    "TransferHandle",
    "TransferInfo",
]


@dataclass(slots=True, frozen=True)
class TransferHandle:
    """Opaque ticket identifying one transfer in a multiplexer."""

    ticket: int


@dataclass(slots=True, frozen=True)
class TransferInfo:
    """Metadata about a finished transfer.

    Attributes:
        status_code: HTTP status, or 0 when no response arrived.
        url: Final URL after redirects.
        elapsed_sec: Wall time spent on the transfer.
        redirect_count: Number of redirects followed.
        error: Transport error text when status_code is 0.
    """

    status_code: int
    url: str
    elapsed_sec: float = 0.0
    redirect_count: int = 0
    error: str | None = None


@dataclass(slots=True, frozen=True)
class CompletionEvent:
    """One finished transfer as reported by the multiplexer."""

    handle: TransferHandle
    info: TransferInfo
    body: bytes = b""

    @property
    def status_code(self) -> int:
        return self.info.status_code

    @property
    def final_url(self) -> str:
        return self.info.url


ResultCallback = Callable[[TransferInfo, Request, bytes], Any]


class MultiplexerPort(Protocol):
    """Interface for overlapping many transfers on one control loop.

    Completions are reported one at a time, in network order rather
    than submission order. A reported transfer stays active until
    ``remove`` is called for it.
    """

    @property
    def active(self) -> int:
        """Number of transfers added and not yet removed."""
        ...

    def add(self, request: Request, /) -> TransferHandle:
        """Start a transfer and return its handle."""
        ...

    async def next_completion(self) -> CompletionEvent:
        """Wait for the next finished transfer."""
        ...

    def remove(self, handle: TransferHandle, /) -> None:
        """Drop a transfer from the active set."""
        ...

    async def close(self) -> None:
        """Abort outstanding transfers and release resources."""
        ...

    async def __aenter__(self) -> MultiplexerPort: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...
