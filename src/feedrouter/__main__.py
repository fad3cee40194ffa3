"""Feed router process entry point. Use --help for usage."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from config.config import RouterConfig, load_config, set_config
from core.errors import ConfigurationError
from core.logging.setup import log_router_startup, setup_logging
from core.utils import generate_instance_id
from feedrouter.adapters import (
    DummyFeedSource,
    InMemoryEventStore,
    YamlTermSource,
    YamlWorkerInventory,
)
from feedrouter.health import HealthCheckServer
from feedrouter.metrics import start_metrics_server
from feedrouter.protocols import FeedSource
from feedrouter.service import FeedRouterService
from feedrouter.signals import setup_signal_handlers

# __main__.py is at src/feedrouter/__main__.py, so root is 3 levels up
PROJECT_ROOT = Path(__file__).parent.parent.parent

logger = logging.getLogger(__name__)

FEED_SOURCES = ("dummy",)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the feed router",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run with the default config (src/config/config.yaml)
    python -m feedrouter

    # Development mode: dummy feed, logs to stdout
    python -m feedrouter --dev --log-to-stdout

    # Custom config and metrics port
    python -m feedrouter --config /etc/feedrouter/config.yaml --metrics-port 9090
        """,
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config.yaml (default: src/config/config.yaml)",
    )

    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Port for Prometheus metrics server (default: from config, 8000)",
    )

    parser.add_argument(
        "--dev",
        action="store_true",
        help="Development mode: use the dummy feed regardless of feed.source",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Log directory path (default: from LOG_DIR env var or ./logs)",
    )

    parser.add_argument(
        "--log-to-stdout",
        action="store_true",
        help="Send all log output to stdout only, skipping file handlers. "
        "Can also be set via LOG_TO_STDOUT environment variable.",
    )

    return parser.parse_args(argv)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() in ("true", "1", "yes")


def build_feed(config: RouterConfig, dev: bool) -> FeedSource:
    """Pick the feed source from config; --dev always gets the dummy feed."""
    source = "dummy" if dev else str(config.feed.get("source", "")).strip().lower()
    if source not in FEED_SOURCES:
        raise ConfigurationError(
            f"Unsupported feed source {source!r} (available: {', '.join(FEED_SOURCES)})"
        )
    return DummyFeedSource(
        events_per_minute=float(config.feed.get("events_per_minute", 120)),
        language=str(config.feed.get("language", "en")),
    )


def build_service(
    config: RouterConfig, dev: bool, health_server: HealthCheckServer | None = None
) -> FeedRouterService:
    return FeedRouterService(
        config,
        term_source=YamlTermSource(config.terms_file),
        inventory=YamlWorkerInventory(config.workers_file),
        feed=build_feed(config, dev),
        store=InMemoryEventStore(),
        health_server=health_server,
    )


async def run_error_mode(
    health_server: HealthCheckServer, shutdown_event: asyncio.Event, error_msg: str
) -> None:
    """Keep the health endpoint up in an error state until shutdown."""
    health_server.set_error(error_msg)
    await health_server.start()
    logger.warning(
        "Running in error mode, health endpoint stays alive",
        extra={"error": error_msg},
    )
    await shutdown_event.wait()
    logger.info("Shutdown signal received in error mode")
    await health_server.stop()


def main(argv: list[str] | None = None) -> int:
    global logger

    load_dotenv(PROJECT_ROOT / ".env")
    args = parse_args(argv)

    instance_id = os.getenv("FEEDROUTER_INSTANCE_ID") or generate_instance_id("feedrouter")
    log_to_stdout = args.log_to_stdout or _env_flag("LOG_TO_STDOUT")
    log_dir = Path(args.log_dir or os.getenv("LOG_DIR") or "logs")

    setup_logging(
        name="feedrouter",
        log_dir=log_dir,
        json_format=os.getenv("JSON_LOGS", "true").lower() in ("true", "1", "yes"),
        console_level=getattr(logging, args.log_level),
        instance_id=instance_id,
        log_to_stdout=log_to_stdout,
    )
    logger = logging.getLogger(__name__)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    shutdown_event = asyncio.Event()
    setup_signal_handlers(loop, shutdown_event)

    try:
        try:
            config = load_config(config_path=args.config)
            set_config(config)
            service_health = HealthCheckServer(port=config.health_port, name=instance_id)
            service = build_service(config, args.dev, service_health)
        except (ConfigurationError, FileNotFoundError, ValueError) as e:
            error_msg = f"Configuration error: {e}"
            logger.error(error_msg)
            logger.error("Use --dev flag for local development")
            health_server = HealthCheckServer(port=8080, name=instance_id)
            loop.run_until_complete(run_error_mode(health_server, shutdown_event, error_msg))
            return 1

        log_router_startup(
            logger,
            instance_id,
            config.intervals(),
            extra_config={
                "assignable_states": ", ".join(config.assignable_states),
                "sentinel_worker": config.sentinel_worker,
                "terms_file": config.terms_file,
                "workers_file": config.workers_file,
                "feed": "dummy (dev)" if args.dev else config.feed.get("source"),
            },
        )

        metrics_port = args.metrics_port if args.metrics_port is not None else config.metrics_port
        if metrics_port is not None:
            actual_port = start_metrics_server(metrics_port)
            logger.info(
                "Metrics server started",
                extra={"port": actual_port, "preferred_port": metrics_port},
            )

        loop.run_until_complete(service.run(shutdown_event))
        return 0

    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down...")
        return 0
    except asyncio.CancelledError:
        logger.info("Tasks cancelled, shutting down...")
        return 0
    finally:
        loop.close()
        logger.info("Feed router shutdown complete")


if __name__ == "__main__":
    sys.exit(main())
