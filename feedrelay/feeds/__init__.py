"""
Feed source package for feed relay.

Fetches a channel's RSS/Atom document over HTTP and maps its entries to
FeedEntry models.
"""
from feedrelay.feeds.source import entry_from_parsed, fetch_entries, fetch_feed, parse_entries

__all__ = ["entry_from_parsed", "fetch_entries", "fetch_feed", "parse_entries"]
