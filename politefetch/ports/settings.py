"""Run configuration port definition (DTO)."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from politefetch.ports.errors import ConfigurationError
from politefetch.ports.request import TransferOptions

__all__ = ["MIN_PARALLEL", "RunConfig"]

MIN_PARALLEL = 2


@dataclass(frozen=True)
class RunConfig:
    """Settings that stay fixed for one ``run`` call.

    Decouples the dispatch loop from where the configuration came from
    (code, environment, per-call override).

    Attributes:
        parallel: Maximum number of transfers in flight (at least 2).
        delay_sec: Minimum seconds between dispatches to the same host.
        retry_head_as_get: Re-issue a HEAD answered with 405 as a GET.
        method: Default method for bare URLs.
        headers: Default request headers.
        data: Default POST form fields.
        options: Default transport options.
    """

    parallel: int = 10
    delay_sec: float = 5
    retry_head_as_get: bool = True
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    data: Mapping[str, str] = field(default_factory=dict)
    options: TransferOptions = field(default_factory=TransferOptions)

    def validate(self) -> None:
        """Reject configurations the dispatch loop cannot run with.

        Raises:
            ConfigurationError: If ``parallel`` < 2 or ``delay_sec`` < 0.
        """
        if self.parallel < MIN_PARALLEL:
            raise ConfigurationError(
                f"Must support at least {MIN_PARALLEL} parallel requests (got {self.parallel})."
            )
        if self.delay_sec < 0:
            raise ConfigurationError(f"Delay must not be negative (got {self.delay_sec}).")

    def replace(self, **changes: Any) -> RunConfig:
        """Return a copy with ``changes`` applied verbatim."""
        return dataclasses.replace(self, **changes)

    def with_headers(self, headers: Mapping[str, str]) -> RunConfig:
        """Return a copy whose headers are ``headers`` overlaid on the current ones."""
        return dataclasses.replace(self, headers={**self.headers, **headers})

    def with_options(self, overrides: Mapping[str, Any]) -> RunConfig:
        """Return a copy whose options are ``overrides`` overlaid on the current ones."""
        return dataclasses.replace(self, options=self.options.merged(overrides))
