"""
Channel processor for feed relay.

Given one channel and the entries parsed from its feed, the channel processor
drops every entry that already has a ProcessedRecord and dispatches the rest
concurrently. It never writes records itself; that only happens after the
item processor has delivered a notification.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

import structlog

from feedrelay.config import ChannelConfig
from feedrelay.dispatch import Dispatcher
from feedrelay.exceptions import DispatchAggregateError
from feedrelay.models.dispatched_item import DispatchedItem
from feedrelay.models.feed_entry import FeedEntry
from feedrelay.store import RecordStore

# Set up structured logger
logger = structlog.get_logger()


@dataclass
class ChannelResult:
    """Outcome of one channel run."""
    channel: str
    total_entries: int = 0
    dispatched: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def new_entries(self) -> int:
        return len(self.dispatched) + len(self.failed)


class ChannelProcessor:
    """Deduplicates a feed's entries and fans the new ones out."""

    def __init__(self, store: RecordStore, dispatcher: Dispatcher):
        self.store = store
        self.dispatcher = dispatcher

    async def remove_old_entries(self, entries: Iterable[FeedEntry]) -> List[FeedEntry]:
        """
        Return the entries that have no ProcessedRecord yet.

        If the feed repeats an identifier, the entry seen last wins.

        Raises:
            StoreError: If the store cannot be read; nothing can be
                considered new without it
        """
        by_id: Dict[str, FeedEntry] = {}
        for entry in entries:
            by_id[entry.id] = entry

        seen = await self.store.existing(by_id.keys())
        new_entries = [entry for entry_id, entry in by_id.items() if not seen.get(entry_id)]

        logger.info(
            "Deduplicated feed entries",
            new_count=len(new_entries),
            total_count=len(by_id),
        )
        return new_entries

    async def _dispatch(self, item: DispatchedItem) -> str:
        ack = await self.dispatcher.dispatch(item)
        logger.debug("Dispatched item", item_id=item.id, ack=ack)
        return ack

    async def dispatch_entries(self, channel: ChannelConfig, entries: List[FeedEntry]) -> ChannelResult:
        """
        Dispatch every entry concurrently and wait for all of them.

        A failed dispatch does not stop its siblings; failures are counted and
        reported together once every dispatch has settled.

        Raises:
            DispatchAggregateError: If at least one dispatch failed
        """
        result = ChannelResult(channel=channel.name)
        items = [DispatchedItem.from_entry(entry, channel.notify, channel.name) for entry in entries]

        outcomes = await asyncio.gather(
            *(self._dispatch(item) for item in items),
            return_exceptions=True,
        )

        for item, outcome in zip(items, outcomes):
            if isinstance(outcome, Exception):
                logger.warning("Failed to dispatch item", item_id=item.id, error=str(outcome))
                result.failed.append(item.id)
            else:
                result.dispatched.append(item.id)

        if result.failed:
            raise DispatchAggregateError(
                len(result.failed),
                len(items),
                {"channel": channel.name},
            )
        return result

    async def process(self, channel: ChannelConfig, entries: Iterable[FeedEntry]) -> ChannelResult:
        """
        Deduplicate a channel's entries and dispatch the new ones.

        Args:
            channel: The channel the entries were fetched for
            entries: Parsed feed entries

        Returns:
            ChannelResult: Counts and ids of what was dispatched

        Raises:
            StoreError: The dedup read failed, nothing was dispatched
            DispatchAggregateError: Some dispatches failed
        """
        entries = list(entries)
        new_entries = await self.remove_old_entries(entries)
        if not new_entries:
            logger.info("No new entries", channel=channel.name)
            return ChannelResult(channel=channel.name, total_entries=len(entries))

        result = await self.dispatch_entries(channel, new_entries)
        result.total_entries = len(entries)
        logger.info(
            "Dispatched new entries",
            channel=channel.name,
            count=len(result.dispatched),
        )
        return result
