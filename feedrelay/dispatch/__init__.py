"""
Dispatch transports for feed relay.

A dispatcher hands a newly discovered item to the item processor. The local
dispatcher does it in-process; the Redis dispatcher pushes the item onto a
queue that a separate worker consumes.
"""
from typing import Awaitable, Callable, Protocol

import structlog

from feedrelay.config import DispatchBackend, DispatchConfig
from feedrelay.models.dispatched_item import DispatchedItem

logger = structlog.get_logger()

# Runs the item pipeline for one dispatched item
ItemHandler = Callable[[DispatchedItem], Awaitable[object]]


class Dispatcher(Protocol):
    """Protocol defining the interface for dispatchers."""

    async def dispatch(self, item: DispatchedItem) -> str:
        """
        Hand an item off for processing.

        Returns:
            str: Acknowledgement from the transport (e.g. a message id)

        Raises:
            DispatchError: If the item could not be handed off
        """
        ...

    async def close(self) -> None:
        """Release transport resources."""
        ...


async def get_dispatcher(config: DispatchConfig, handler: ItemHandler) -> Dispatcher:
    """
    Get a dispatcher based on configuration.

    Args:
        config: Dispatch configuration
        handler: Item handler used by in-process dispatch

    Returns:
        Dispatcher: Configured dispatcher
    """
    if config.backend == DispatchBackend.REDIS:
        from feedrelay.dispatch.redis_queue import RedisQueueDispatcher

        logger.info("Using Redis queue dispatcher", queue=config.queue_name)
        return await RedisQueueDispatcher.create(config)

    logger.info("Using local dispatcher")
    return LocalDispatcher(handler)


from feedrelay.dispatch.local import LocalDispatcher

__all__ = ["Dispatcher", "ItemHandler", "LocalDispatcher", "get_dispatcher"]
