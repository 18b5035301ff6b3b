"""Tests for turning request descriptors into requests."""

import pytest

from politefetch.core.descriptors import build_request, build_requests
from politefetch.ports.errors import ConfigurationError
from politefetch.ports.settings import RunConfig

__all__ = []


def test_bare_url_takes_defaults() -> None:
    """A URL string gets every default from the run configuration."""
    config = RunConfig(method="GET", headers={"Accept": "text/html"}, data={"k": "v"})

    request = build_request("https://example.com/page", config)

    assert request.url == "https://example.com/page"
    assert request.method == "GET"
    assert request.headers == {"Accept": "text/html"}
    assert request.data == {"k": "v"}
    assert request.options == config.options
    assert request.host == "example.com"


def test_descriptor_overlays_headers_and_options() -> None:
    """Descriptor headers and options are merged over the defaults."""
    config = RunConfig(headers={"Accept": "text/html", "X-A": "1"})

    request = build_request(
        {
            "url": "https://example.com/",
            "headers": {"X-A": "2", "X-B": "3"},
            "options": {"timeout_sec": 5},
        },
        config,
    )

    assert request.headers == {"Accept": "text/html", "X-A": "2", "X-B": "3"}
    assert request.options.timeout_sec == 5
    assert request.options.connect_timeout_sec == 30


def test_descriptor_replaces_method_and_data() -> None:
    """Descriptor method is upper-cased and data replaces the default."""
    config = RunConfig(data={"default": "x"})

    request = build_request(
        {"url": "https://example.com/form", "method": "post", "data": {"q": "1"}},
        config,
    )

    assert request.method == "POST"
    assert request.data == {"q": "1"}
    assert request.transfer_method == "POST"


def test_head_requests_suppress_body() -> None:
    """HEAD requests go out as HEAD with body suppression on."""
    request = build_request({"url": "https://example.com/", "method": "head"}, RunConfig())

    assert request.options.no_body is True
    assert request.transfer_method == "HEAD"


def test_default_method_applies_to_bare_urls() -> None:
    """A run-wide HEAD default also suppresses bodies."""
    request = build_request("https://example.com/", RunConfig(method="HEAD"))

    assert request.method == "HEAD"
    assert request.options.no_body is True


@pytest.mark.parametrize(
    "descriptor",
    ["not a url", "/relative/path", {"method": "GET"}, {"url": 42}, 42],
)
def test_rejects_descriptors_without_host(descriptor: object) -> None:
    """Descriptors without an absolute URL are configuration errors."""
    with pytest.raises(ConfigurationError):
        build_request(descriptor, RunConfig())


def test_rejects_unknown_descriptor_fields() -> None:
    """Unknown descriptor keys are configuration errors."""
    with pytest.raises(ConfigurationError, match="Unknown request field"):
        build_request({"url": "https://example.com/", "body": "x"}, RunConfig())


def test_rejects_unknown_transfer_options() -> None:
    """Unknown transfer options are configuration errors."""
    with pytest.raises(ConfigurationError, match="Unknown transfer option"):
        build_request({"url": "https://example.com/", "options": {"proxy": "x"}}, RunConfig())


def test_build_requests_keeps_order() -> None:
    """All descriptors are built in submission order."""
    requests = build_requests(["http://a.test/", {"url": "http://b.test/"}], RunConfig())

    assert [r.url for r in requests] == ["http://a.test/", "http://b.test/"]


@pytest.mark.parametrize("method", ["BAD METHOD", "GET\r\n", "", 1, None])
def test_rejects_methods_that_are_not_tokens(method: object) -> None:
    """Methods aiohttp would refuse to send fail when the request is built."""
    with pytest.raises(ConfigurationError, match="Invalid HTTP method"):
        build_request({"url": "https://example.com/", "method": method}, RunConfig())


@pytest.mark.parametrize(
    "headers",
    [
        {"X-Count": 1},
        {"X-Trace": None},
        {"X-Split": "a\r\nInjected: yes"},
        {"Bad Name": "x"},
        {1: "x"},
    ],
)
def test_rejects_headers_aiohttp_cannot_send(headers: dict) -> None:
    """Header names must be tokens and values single-line strings."""
    with pytest.raises(ConfigurationError, match="header"):
        build_request({"url": "https://example.com/", "headers": headers}, RunConfig())


def test_rejects_bad_default_headers() -> None:
    """Run-wide default headers are validated along with the descriptor's."""
    with pytest.raises(ConfigurationError, match="Invalid value for header X-Count"):
        build_request("https://example.com/", RunConfig(headers={"X-Count": 1}))


@pytest.mark.parametrize("field", ["headers", "options"])
def test_rejects_non_mapping_headers_and_options(field: str) -> None:
    """Headers and options must be mappings."""
    with pytest.raises(ConfigurationError, match=f"Request {field} must be a mapping"):
        build_request({"url": "https://example.com/", field: ["x"]}, RunConfig())
