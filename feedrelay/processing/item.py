"""
Item processor for feed relay.

Takes one dispatched item through the delivery pipeline:

1. convert the entry's HTML content to chat markup
2. prepend a header line with the feed name and a link to the entry
3. cut the message to the webhook's length limit
4. post it to the channel's webhook
5. record the entry as processed

A record is only written after the webhook accepted the message. If the
write fails, the entry stays unrecorded and the next channel run delivers
it again; duplicate notifications are preferred over lost ones.
"""
from typing import Protocol

import structlog

from feedrelay import MAX_MESSAGE_LENGTH
from feedrelay.exceptions import TransformError
from feedrelay.models.dispatched_item import DispatchedItem
from feedrelay.models.processed_record import ProcessedRecord
from feedrelay.processing.markup import html_to_markdown
from feedrelay.store import RecordStore

# Set up structured logger
logger = structlog.get_logger()


class Notifier(Protocol):
    """Protocol for anything that can deliver a message to a URL."""

    async def notify(self, url: str, text: str) -> None:
        """Deliver text to url, raising DeliveryError on failure."""
        ...


def build_message(item: DispatchedItem, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """
    Build the chat message for an item.

    Raises:
        TransformError: If the content cannot be converted
    """
    try:
        body = html_to_markdown(item.content)
    except Exception as e:
        raise TransformError(
            f"failed converting to markdown: {e}",
            {"item_id": item.id},
        ) from e

    text = f"{item.feed} <{item.link}|{item.title}>\n\n{body}"

    # Hard cut, the webhook rejects anything longer
    if len(text) > max_length:
        text = text[:max_length]
    return text


class ItemProcessor:
    """Delivers one new feed entry and records it as processed."""

    def __init__(
        self,
        store: RecordStore,
        notifier: Notifier,
        max_message_length: int = MAX_MESSAGE_LENGTH,
    ):
        self.store = store
        self.notifier = notifier
        self.max_message_length = max_message_length

    async def process(self, item: DispatchedItem) -> ProcessedRecord:
        """
        Run the delivery pipeline for one item.

        Returns:
            ProcessedRecord: The record written for the item

        Raises:
            TransformError: Content conversion failed, nothing was sent
            DeliveryError: The webhook call failed, nothing was recorded
            StoreError: The message was sent but the record was not written
        """
        log = logger.bind(item_id=item.id, feed_name=item.feed)

        text = build_message(item, self.max_message_length)
        await self.notifier.notify(item.notify, text)
        log.info("Notification sent", length=len(text))

        record = ProcessedRecord.from_item(item)
        await self.store.upsert(record)
        log.info("Record updated", timestamp=item.updated)
        return record
