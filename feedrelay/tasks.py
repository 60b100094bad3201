"""
Task definitions for feed relay.

This module contains the job functions run by the scheduler, the CLI and the
queue worker. They add logging context and metrics around the processors and
re-raise every error so the caller can decide whether to retry.
"""
from typing import TYPE_CHECKING, List

import structlog
from prometheus_client import Counter

from feedrelay.config import ChannelConfig, Settings
from feedrelay.exceptions import (
    ConfigurationError,
    DispatchAggregateError,
    SourceError,
    StoreError,
)
from feedrelay.feeds.source import fetch_entries
from feedrelay.models.dispatched_item import DispatchedItem
from feedrelay.models.processed_record import ProcessedRecord
from feedrelay.processing.channel import ChannelResult

if TYPE_CHECKING:
    from feedrelay.context import AppContext

# Set up structured logger
logger = structlog.get_logger()

# Define metrics
CHANNELS_PROCESSED_TOTAL = Counter(
    'feedrelay_channels_processed_total',
    'Total number of channel runs',
    ['channel', 'status'],
)
ITEMS_DISPATCHED_TOTAL = Counter(
    'feedrelay_items_dispatched_total',
    'Total number of dispatched feed items',
    ['channel', 'status'],
)
ITEMS_PROCESSED_TOTAL = Counter(
    'feedrelay_items_processed_total',
    'Total number of processed feed items',
    ['status'],
)


def list_channels(settings: Settings) -> List[ChannelConfig]:
    """Enabled channels, in configuration order."""
    return [channel for channel in settings.channels if channel.enabled]


async def process_channel(app_context: 'AppContext', channel_name: str) -> ChannelResult:
    """
    Fetch one channel's feed, deduplicate it and dispatch the new entries.

    Raises:
        ConfigurationError: Unknown channel
        SourceError: The feed could not be fetched or parsed
        StoreError: The dedup read failed
        DispatchAggregateError: Some dispatches failed
    """
    channel = app_context.settings.get_channel_by_name(channel_name)
    if channel is None:
        CHANNELS_PROCESSED_TOTAL.labels(channel=channel_name, status="config_error").inc()
        raise ConfigurationError("channel not found", {"channel": channel_name})

    with structlog.contextvars.bound_contextvars(channel=channel.name):
        logger.info("Processing channel", url=channel.url)

        try:
            entries = await fetch_entries(channel, app_context.http_client, app_context.settings.source)
            result = await app_context.channel_processor.process(channel, entries)

        except SourceError as e:
            logger.error("Failed reading feed", error=str(e))
            CHANNELS_PROCESSED_TOTAL.labels(channel=channel.name, status="source_error").inc()
            raise

        except StoreError as e:
            logger.error("Failed checking processed records", error=str(e))
            CHANNELS_PROCESSED_TOTAL.labels(channel=channel.name, status="store_error").inc()
            raise

        except DispatchAggregateError as e:
            logger.error("Failed dispatching items", failed=e.failed, total=e.total)
            ITEMS_DISPATCHED_TOTAL.labels(channel=channel.name, status="failed").inc(e.failed)
            ITEMS_DISPATCHED_TOTAL.labels(channel=channel.name, status="success").inc(e.total - e.failed)
            CHANNELS_PROCESSED_TOTAL.labels(channel=channel.name, status="dispatch_error").inc()
            raise

        ITEMS_DISPATCHED_TOTAL.labels(channel=channel.name, status="success").inc(len(result.dispatched))
        status = "success" if result.dispatched else "no_new_entries"
        CHANNELS_PROCESSED_TOTAL.labels(channel=channel.name, status=status).inc()
        logger.info(
            "Channel processed",
            total_entries=result.total_entries,
            dispatched=len(result.dispatched),
        )
        return result


async def process_item(app_context: 'AppContext', item: DispatchedItem) -> ProcessedRecord:
    """
    Deliver one dispatched item and record it.

    Raises:
        TransformError, DeliveryError, StoreError: see ItemProcessor.process
    """
    try:
        record = await app_context.item_processor.process(item)
    except Exception as e:
        logger.error(
            "Item processing failed",
            item_id=item.id,
            feed_name=item.feed,
            error_type=type(e).__name__,
            error=str(e),
        )
        ITEMS_PROCESSED_TOTAL.labels(status=type(e).__name__).inc()
        raise

    ITEMS_PROCESSED_TOTAL.labels(status="success").inc()
    return record
