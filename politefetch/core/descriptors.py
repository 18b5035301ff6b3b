"""Turn caller-supplied request descriptors into Request objects."""

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import urlsplit

from politefetch.ports.errors import ConfigurationError
from politefetch.ports.request import Request
from politefetch.ports.settings import RunConfig

__all__ = ["RequestDescriptor", "build_request", "build_requests"]

logger = logging.getLogger(__name__)

RequestDescriptor = str | Mapping[str, Any]

_DESCRIPTOR_KEYS = frozenset({"url", "method", "headers", "data", "options"})

# HTTP token characters (methods and header names)
_TOKEN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")


def build_request(descriptor: RequestDescriptor, config: RunConfig) -> Request:
    """Merge one descriptor with the run defaults.

    A bare string is a URL that takes every default. A mapping may carry
    ``url`` (required), ``method``, ``headers``, ``data`` and ``options``:
    ``headers`` and ``options`` are overlaid on the defaults, while
    ``method`` and ``data`` replace them.

    Args:
        descriptor: URL string or descriptor mapping.
        config: Run configuration providing the defaults.

    Returns:
        The request to enqueue.

    Raises:
        ConfigurationError: If the descriptor is malformed or the URL has no host.
    """
    if isinstance(descriptor, str):
        descriptor = {"url": descriptor}
    elif not isinstance(descriptor, Mapping):
        raise ConfigurationError(
            f"Request must be a URL string or a mapping, got {type(descriptor).__name__}"
        )

    unknown = sorted(set(descriptor) - _DESCRIPTOR_KEYS)
    if unknown:
        raise ConfigurationError(f"Unknown request field(s): {', '.join(unknown)}")

    url = descriptor.get("url")
    if not isinstance(url, str) or not urlsplit(url).hostname:
        raise ConfigurationError(f"Request URL must be absolute with a host (got {url!r})")

    method = _validate_method(descriptor.get("method", config.method))
    headers = _validate_headers({**config.headers, **_mapping(descriptor, "headers")})
    data = dict(descriptor.get("data", config.data))
    options = config.options.merged(_mapping(descriptor, "options"))
    options = options.merged({"no_body": method == "HEAD"})

    return Request(url=url, method=method, headers=headers, data=data, options=options)


def build_requests(descriptors: Iterable[RequestDescriptor], config: RunConfig) -> list[Request]:
    """Build every request up front so a bad descriptor fails before any dispatch."""
    requests = [build_request(d, config) for d in descriptors]
    logger.debug(f"Prepared {len(requests)} requests")
    return requests


def _mapping(descriptor: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = descriptor.get(key, {})
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Request {key} must be a mapping, got {type(value).__name__}")
    return value


def _validate_method(method: Any) -> str:
    if not isinstance(method, str) or not _TOKEN.fullmatch(method):
        raise ConfigurationError(f"Invalid HTTP method: {method!r}")
    return method.upper()


def _validate_headers(headers: Mapping[Any, Any]) -> dict[str, str]:
    """Reject header names that are not tokens and values that are not single-line strings."""
    for name, value in headers.items():
        if not isinstance(name, str) or not _TOKEN.fullmatch(name):
            raise ConfigurationError(f"Invalid header name: {name!r}")
        if not isinstance(value, str) or "\r" in value or "\n" in value:
            raise ConfigurationError(f"Invalid value for header {name}: {value!r}")
    return dict(headers)
