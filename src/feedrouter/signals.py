"""Signal handler setup for graceful shutdown."""

import asyncio
import logging
import signal
import sys

logger = logging.getLogger(__name__)


def setup_signal_handlers(
    loop: asyncio.AbstractEventLoop, shutdown_event: asyncio.Event
) -> None:
    """Register SIGINT/SIGTERM handlers.

    First signal sets ``shutdown_event`` so the service stops its loops and
    closes the subscription. A second signal cancels every task on the loop.
    On Windows add_signal_handler() is unsupported and KeyboardInterrupt is
    used instead.
    """

    def handle_signal(sig: signal.Signals) -> None:
        if not shutdown_event.is_set():
            logger.info("Received signal, initiating graceful shutdown", extra={"signal": sig.name})
            shutdown_event.set()
        else:
            logger.warning("Received second signal, forcing immediate shutdown...")
            for task in asyncio.all_tasks(loop):
                task.cancel()

    if sys.platform == "win32":
        logger.debug("Signal handlers not supported on Windows, using KeyboardInterrupt")
        return

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))
