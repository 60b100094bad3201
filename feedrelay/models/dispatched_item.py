"""
DispatchedItem model: the message handed from the channel processor to the
item processor.

The JSON field names (`notify`, `feed`, `id`, ...) are the wire format used by
queue-based dispatchers.
"""
from pydantic import BaseModel

from feedrelay.models.feed_entry import FeedEntry


class DispatchedItem(BaseModel):
    """A newly discovered entry plus the channel it came from."""
    notify: str
    feed: str = ""
    id: str
    title: str = ""
    link: str = ""
    content: str = ""
    updated: str = ""

    @classmethod
    def from_entry(cls, entry: FeedEntry, notify: str, feed: str) -> "DispatchedItem":
        """Build the dispatch payload for an entry of the given channel."""
        return cls(notify=notify, feed=feed, **entry.model_dump())

    def to_json(self) -> str:
        """Serialize to the queue wire format."""
        return self.model_dump_json()

    @classmethod
    def from_json(cls, payload) -> "DispatchedItem":
        """Deserialize from the queue wire format (str or bytes)."""
        return cls.model_validate_json(payload)
