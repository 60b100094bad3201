"""
Exception hierarchy for feed relay.

Every failure that crosses a component boundary is raised as one of these
types so the invoking trigger (scheduler, queue worker, CLI) can tell a bad
feed from a broken store or a rejected webhook call.
"""
from typing import Any, Dict, Optional


class FeedRelayError(Exception):
    """Base class for all feed relay errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class ConfigurationError(FeedRelayError):
    """Required configuration is missing or invalid."""


class SourceError(FeedRelayError):
    """The feed could not be fetched or parsed."""


class StoreError(FeedRelayError):
    """The record store could not be read or written."""


class DispatchError(FeedRelayError):
    """An item could not be handed off for processing."""


class DispatchAggregateError(DispatchError):
    """Some of the dispatches issued for one channel run failed."""

    def __init__(self, failed: int, total: int, context: Optional[Dict[str, Any]] = None):
        super().__init__(f"{failed} of {total} dispatches failed", context)
        self.failed = failed
        self.total = total


class TransformError(FeedRelayError):
    """Entry content could not be converted to chat markup."""


class DeliveryError(FeedRelayError):
    """The webhook rejected the message or could not be reached."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.status_code = status_code
        self.body = body
