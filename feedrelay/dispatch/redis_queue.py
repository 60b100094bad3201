"""
Redis list queue transport.

The dispatcher LPUSHes JSON-encoded items onto `queue_name`; the worker
BRPOPs them off the other end and hands each one to the item handler. Redis
persists the list, so items survive a worker restart, but an item the worker
fails on is not put back: no record was written, so the next channel run
discovers and dispatches it again.
"""
import asyncio
from typing import Optional

import structlog
from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from feedrelay.config import DispatchConfig
from feedrelay.dispatch import ItemHandler
from feedrelay.exceptions import DispatchError
from feedrelay.models.dispatched_item import DispatchedItem

logger = structlog.get_logger()


class RedisQueueDispatcher:
    """Pushes items onto a Redis list."""

    def __init__(self, config: DispatchConfig, redis_client: Redis):
        self.config = config
        self.queue_name = config.queue_name
        self.redis = redis_client

    @classmethod
    async def create(cls, config: DispatchConfig) -> "RedisQueueDispatcher":
        """
        Connect to Redis.

        Raises:
            DispatchError: If Redis cannot be reached
        """
        redis_client = Redis.from_url(config.redis_url, decode_responses=True)
        try:
            await redis_client.ping()
        except RedisError as e:
            await redis_client.aclose()
            raise DispatchError("failed to connect to Redis", {"error": str(e)}) from e
        return cls(config, redis_client)

    async def dispatch(self, item: DispatchedItem) -> str:
        try:
            length = await self.redis.lpush(self.queue_name, item.to_json())
        except RedisError as e:
            raise DispatchError(
                f"failed to publish: {e}",
                {"item_id": item.id, "queue": self.queue_name},
            ) from e
        logger.debug("Published item to queue", queue=self.queue_name, item_id=item.id, depth=length)
        return str(length)

    async def close(self) -> None:
        await self.redis.aclose()


class QueueWorker:
    """Consumes items from a Redis list and runs the handler on each."""

    def __init__(
        self,
        config: DispatchConfig,
        handler: ItemHandler,
        redis_client: Optional[Redis] = None,
    ):
        self.config = config
        self.queue_name = config.queue_name
        self.handler = handler
        self.redis = redis_client or Redis.from_url(config.redis_url, decode_responses=True)
        self.stop_event = asyncio.Event()
        self.processed = 0
        self.failed = 0

    async def handle_payload(self, payload: str) -> bool:
        """
        Decode one queue payload and run the handler on it.

        Returns:
            bool: True if the item was processed successfully
        """
        try:
            item = DispatchedItem.from_json(payload)
        except ValidationError as e:
            logger.error("Dropping malformed queue payload", queue=self.queue_name, error=str(e))
            self.failed += 1
            return False

        try:
            await self.handler(item)
        except Exception as e:
            logger.error(
                "Item processing failed",
                item_id=item.id,
                error_type=type(e).__name__,
                error=str(e),
            )
            self.failed += 1
            return False

        self.processed += 1
        return True

    async def run_once(self) -> bool:
        """
        Wait for one item and process it.

        Returns:
            bool: False if the wait timed out with nothing to do
        """
        popped = await self.redis.brpop([self.queue_name], timeout=self.config.poll_timeout_seconds)
        if popped is None:
            return False
        _, payload = popped
        await self.handle_payload(payload)
        return True

    async def run(self) -> None:
        """Process items until stop() is called."""
        logger.info("Queue worker started", queue=self.queue_name)
        while not self.stop_event.is_set():
            try:
                await self.run_once()
            except RedisError as e:
                logger.error("Redis error in queue worker", error=str(e))
                await asyncio.sleep(self.config.poll_timeout_seconds)
        logger.info(
            "Queue worker stopped",
            queue=self.queue_name,
            processed=self.processed,
            failed=self.failed,
        )

    def stop(self) -> None:
        self.stop_event.set()

    async def close(self) -> None:
        self.stop()
        await self.redis.aclose()
