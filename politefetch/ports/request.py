"""Request port definition (DTOs)."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

from politefetch.ports.errors import ConfigurationError

__all__ = ["DEFAULT_USER_AGENT", "Request", "TransferOptions"]

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; politefetch/1.0)"


@dataclass(slots=True, frozen=True)
class TransferOptions:
    """Per-request transport options.

    TLS verification is off unless a caller opts in with
    ``verify_tls=True``.

    Attributes:
        follow_redirects: Follow 3xx responses.
        max_redirects: Maximum redirect hops when following.
        verify_tls: Verify server certificates.
        connect_timeout_sec: Timeout for establishing the connection.
        timeout_sec: Timeout for the whole transfer.
        accept_encoding: Value of the Accept-Encoding header, or None.
        user_agent: Value of the User-Agent header.
        no_body: Suppress the response body (issue a HEAD).
    """

    follow_redirects: bool = True
    max_redirects: int = 5
    verify_tls: bool = False
    connect_timeout_sec: float = 30.0
    timeout_sec: float = 30.0
    accept_encoding: str | None = "gzip"
    user_agent: str = DEFAULT_USER_AGENT
    no_body: bool = False

    def merged(self, overrides: Mapping[str, Any]) -> TransferOptions:
        """Overlay ``overrides`` on top of these options.

        Args:
            overrides: Option names mapped to new values.

        Returns:
            New options; keys absent from ``overrides`` keep their value.

        Raises:
            ConfigurationError: If an override names an unknown option.
        """
        known = {f.name for f in dataclasses.fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigurationError(f"Unknown transfer option(s): {', '.join(unknown)}")
        return dataclasses.replace(self, **overrides)


@dataclass(frozen=True)
class Request:
    """One URL to fetch, with everything needed to issue it.

    Attributes:
        url: Absolute http(s) URL.
        method: Upper-cased HTTP method as requested by the caller.
        headers: Extra request headers.
        data: Form fields sent as the body of a POST.
        options: Transport options.
    """

    url: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    data: Mapping[str, str] = field(default_factory=dict)
    options: TransferOptions = field(default_factory=TransferOptions)

    @property
    def host(self) -> str:
        """Host component of the URL, used as the throttling key."""
        return urlsplit(self.url).hostname or ""

    @property
    def transfer_method(self) -> str:
        """Method actually sent on the wire.

        A HEAD request whose body suppression was cleared goes out as GET.
        """
        if self.options.no_body:
            return "HEAD"
        if self.method == "HEAD":
            return "GET"
        return self.method

    def as_full_fetch(self) -> Request:
        """Clone this request with body suppression cleared."""
        return dataclasses.replace(self, options=self.options.merged({"no_body": False}))
