"""Application entrypoint."""

import asyncio
import logging

from politefetch.adapters.driven.config.settings import load_settings
from politefetch.adapters.driven.logging.logging_config import configure_logs
from politefetch.adapters.driven.metrics.transfer_metrics import TransferMetrics
from politefetch.adapters.driving.signals import make_stop_on_signal
from politefetch.scheduler import Scheduler

__all__ = ["cli", "main"]

logger = logging.getLogger(__name__)


async def main() -> None:
    """Fetch the configured requests.

    Startup sequence:
    1. Configure logging.
    2. Load and validate configuration and the requests file.
    3. Run the scheduler, printing one line per result.
    4. Abandon outstanding requests on SIGTERM/SIGINT.
    """
    configure_logs()
    logger.info("Starting fetch scheduler...")

    try:
        settings = load_settings()
    except (RuntimeError, ValueError) as exc:
        logger.error(
            "Configuration error: %s\n"
            "Hint: check REQUESTS_FILE_PATH, FETCH_PARALLEL (>= 2), FETCH_DELAY "
            "and that the requests file exists and is valid JSON.",
            exc,
        )
        return

    scheduler = Scheduler(settings.to_run_config(), metrics=TransferMetrics())

    try:
        await scheduler.run_async(settings.requests, stop_event=make_stop_on_signal())
    except ValueError as e:
        logger.error(f"Invalid request list: {e}")
        return
    except Exception as e:
        logger.error(f"Unhandled exception in fetch run: {e}", exc_info=True)

    logger.info("Fetch scheduler finished.")


def cli() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user (Ctrl+C).")


if __name__ == "__main__":
    cli()
