"""
Central re-exports for the feed relay data models.

This module exposes the canonical models from their dedicated modules to
provide stable import paths as "feedrelay.models" without redefining types.
"""
from .dispatched_item import DispatchedItem
from .feed_entry import FeedEntry
from .processed_record import ProcessedRecord

__all__ = [
    "DispatchedItem",
    "FeedEntry",
    "ProcessedRecord",
]
