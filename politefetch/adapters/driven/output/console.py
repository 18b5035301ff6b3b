"""Default result callback printing one line per request."""

from politefetch.ports.request import Request
from politefetch.ports.transfer import TransferInfo

__all__ = ["print_result"]

HTTP_OK = 200


def print_result(info: TransferInfo, request: Request, body: bytes) -> None:
    """Print ``Success: <url> [<final url>]`` for a 200, else ``Failure: <url>``."""
    if info.status_code == HTTP_OK:
        print(f"Success: {request.url} [{info.url}]")
    else:
        print(f"Failure: {request.url}")
