"""
Feed Relay

A service that polls RSS/Atom feeds, detects entries that have not been seen
before, and relays each one as a chat message to a per-feed webhook.
"""

__version__ = "0.1.0"
__author__ = "Feed Relay Team"
__description__ = "Relay new RSS/Atom feed entries to chat webhooks"
__license__ = "MIT"

# Package level constants
DEFAULT_COLLECTION = "processed_items"
DEFAULT_QUEUE_NAME = "feedrelay:items"
MAX_MESSAGE_LENGTH = 4000
