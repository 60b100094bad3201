"""
Processing package for feed relay.

The channel processor finds the entries of a feed that have not been handled
yet and dispatches them; the item processor turns one dispatched item into a
chat message, delivers it and records it.
"""
from feedrelay.processing.channel import ChannelProcessor, ChannelResult
from feedrelay.processing.item import ItemProcessor, build_message
from feedrelay.processing.markup import html_to_markdown

__all__ = [
    "ChannelProcessor",
    "ChannelResult",
    "ItemProcessor",
    "build_message",
    "html_to_markdown",
]
