#!/usr/bin/env python3
"""
Feed Relay - Entry Point

This module is the command line entry point. It runs every channel once, runs
the scheduler as a daemon, or consumes the Redis item queue as a worker.
"""
import argparse
import asyncio
import logging
import signal
import sys
from contextlib import asynccontextmanager
from functools import partial
from typing import List, Optional

import structlog
from prometheus_client import start_http_server
from pydantic import ValidationError

from feedrelay.config import DispatchBackend, LogLevel, Settings, load_settings
from feedrelay.context import AppContext
from feedrelay.dispatch.redis_queue import QueueWorker
from feedrelay.exceptions import ConfigurationError
from feedrelay.tasks import list_channels, process_channel, process_item

# Set up structured logger
logger = structlog.get_logger()

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


@asynccontextmanager
async def app_lifecycle(settings: Settings):
    """
    Context manager for the application lifecycle.

    This handles initialization and graceful shutdown of all components.
    """
    app_context = AppContext(settings)

    try:
        await app_context.initialize()

        if settings.metrics.prometheus_enabled:
            start_http_server(settings.metrics.prometheus_port)
            logger.info("Prometheus metrics server started", port=settings.metrics.prometheus_port)

        yield app_context

    finally:
        await app_context.shutdown()


def setup_logging(settings: Settings) -> None:
    """Set up structured logging based on configuration."""
    log_level = settings.metrics.log_level.value

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if settings.metrics.structured_logging
            else structlog.dev.ConsoleRenderer()
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Libraries logging through the standard library follow the same level
    logging.basicConfig(format="%(message)s", stream=sys.stdout)
    logging.getLogger().setLevel(getattr(logging, log_level, logging.INFO))

    logger.info("Logging initialized", level=log_level)


def setup_signal_handlers(loop: asyncio.AbstractEventLoop, stop) -> None:
    """Call `stop` on SIGINT or SIGTERM."""
    def signal_handler():
        logger.info("Received shutdown signal")
        stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    logger.info("Signal handlers registered")


async def run_once(settings: Settings) -> int:
    """
    Process every enabled channel once.

    Returns:
        int: Exit code, non-zero if any channel failed
    """
    logger.info("Running feed relay once")

    async with app_lifecycle(settings) as app_context:
        channels = list_channels(settings)
        tasks = [
            app_context.create_task(process_channel(app_context, channel.name))
            for channel in channels
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

    failed = 0
    for channel, result in zip(channels, results):
        if isinstance(result, BaseException):
            failed += 1
            logger.error("Channel run failed", channel=channel.name, error=str(result))

    logger.info("One-time run completed", channels=len(channels), failed=failed)
    return EXIT_FAILURE if failed else EXIT_OK


async def run_daemon(settings: Settings) -> int:
    """Run the scheduler until a shutdown signal arrives."""
    logger.info("Starting feed relay daemon")

    async with app_lifecycle(settings) as app_context:
        setup_signal_handlers(asyncio.get_running_loop(), app_context.shutdown_event.set)
        app_context.start_scheduler()

        await app_context.shutdown_event.wait()
        logger.info("Daemon shutting down")

    return EXIT_OK


async def run_worker(settings: Settings) -> int:
    """Consume the Redis item queue until a shutdown signal arrives."""
    if settings.dispatch.backend != DispatchBackend.REDIS:
        raise ConfigurationError(
            "worker mode requires the redis dispatch backend",
            {"backend": settings.dispatch.backend.value},
        )

    logger.info("Starting feed relay queue worker", queue=settings.dispatch.queue_name)

    async with app_lifecycle(settings) as app_context:
        worker = QueueWorker(settings.dispatch, partial(process_item, app_context))
        app_context.exit_stack.push_async_callback(worker.close)
        setup_signal_handlers(asyncio.get_running_loop(), worker.stop)
        await worker.run()

    return EXIT_OK


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Feed Relay - Post new RSS/Atom entries to chat webhooks"
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--once",
        action="store_true",
        help="Process every channel once and exit (don't run as daemon)"
    )
    mode.add_argument(
        "--worker",
        action="store_true",
        help="Consume the Redis item queue instead of polling channels"
    )

    parser.add_argument(
        "--channel",
        help="Process only the specified channel (by name)",
        default=None
    )

    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        default=None,
        help="Set the log level"
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    args = parse_args(argv)

    try:
        try:
            settings = load_settings()
        except ValidationError as e:
            raise ConfigurationError("invalid settings", {"errors": e.error_count()}) from e

        if args.log_level:
            settings.metrics.log_level = LogLevel(args.log_level)

        setup_logging(settings)

        logger.info(
            "Feed relay starting up",
            version=settings.version,
            python_version=sys.version,
        )

        if args.channel:
            channel = settings.get_channel_by_name(args.channel)
            if channel is None:
                raise ConfigurationError("channel not found", {"channel": args.channel})
            settings.channels = [channel]

        if args.worker:
            return asyncio.run(run_worker(settings))
        if args.once:
            return asyncio.run(run_once(settings))
        return asyncio.run(run_daemon(settings))

    except ConfigurationError as e:
        logger.error("Configuration error", error=str(e), cause=str(e.__cause__) if e.__cause__ else None)
        return EXIT_CONFIG_ERROR

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    except Exception as e:
        logger.exception("Unhandled exception", error=str(e))
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
