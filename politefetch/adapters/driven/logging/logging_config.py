"""Console logging setup for the fetch scheduler."""

import logging

__all__ = ["configure_logs"]


def configure_logs(level: int = logging.INFO) -> None:
    """Configure console logging.

    Sets up:
    - Root logger at ``level`` (INFO by default).
    - Framework loggers (aiohttp, asyncio) at WARNING level.
    - Application loggers (politefetch) at DEBUG level.
    - Format with timestamp, level, module, and line number.

    Result lines from the default callback go to stdout; log records go
    to stderr so the two never interleave in a pipe.
    """
    log_format = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"
    date_format = "%d/%m/%y %H:%M:%S"

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(log_format, date_format))

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    # Suppress verbose framework loggers
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.getLogger("politefetch").setLevel(logging.DEBUG)
