"""
Notification delivery for feed relay.
"""
from feedrelay.notify.webhook import WebhookNotifier

__all__ = ["WebhookNotifier"]
