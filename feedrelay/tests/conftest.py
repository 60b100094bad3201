from typing import List, Tuple

import pytest

from feedrelay.config import ChannelConfig, StoreConfig
from feedrelay.exceptions import DeliveryError, DispatchError
from feedrelay.models.dispatched_item import DispatchedItem
from feedrelay.models.feed_entry import FeedEntry
from feedrelay.store.memory import MemoryRecordStore


class RecordingNotifier:
    """Notifier that remembers every message instead of posting it."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Tuple[str, str]] = []

    async def notify(self, url: str, text: str) -> None:
        if self.fail:
            raise DeliveryError("response status: 500 Internal Server Error", status_code=500)
        self.sent.append((url, text))


class RecordingDispatcher:
    """Dispatcher that collects items and fails for selected ids."""

    def __init__(self, fail_ids=()):
        self.fail_ids = set(fail_ids)
        self.items: List[DispatchedItem] = []

    async def dispatch(self, item: DispatchedItem) -> str:
        if item.id in self.fail_ids:
            raise DispatchError("publish failed", {"item_id": item.id})
        self.items.append(item)
        return item.id

    async def close(self) -> None:
        pass


@pytest.fixture
def channel():
    return ChannelConfig(name="Example Blog", url="https://blog.example.com/feed", notify="https://hooks.example.com/T1")


@pytest.fixture
def store():
    return MemoryRecordStore(StoreConfig())


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_entry():
    def _make(entry_id: str, **fields) -> FeedEntry:
        fields.setdefault("title", f"Post {entry_id}")
        fields.setdefault("link", f"https://blog.example.com/{entry_id}")
        fields.setdefault("content", f"<p>Body of {entry_id}</p>")
        fields.setdefault("updated", "2024-01-01T00:00:00Z")
        return FeedEntry(id=entry_id, **fields)
    return _make


@pytest.fixture
def item():
    return DispatchedItem(
        notify="https://hooks.example.com/T1",
        feed="Example Blog",
        id="urn:post:1",
        title="Hello",
        link="https://blog.example.com/1",
        content="<p>Body <b>bold</b></p>",
        updated="2024-01-01T00:00:00Z",
    )


@pytest.fixture
def make_notifier():
    return RecordingNotifier


@pytest.fixture
def make_dispatcher():
    return RecordingDispatcher
