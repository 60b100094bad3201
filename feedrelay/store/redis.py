"""
Redis-based record store for feed relay.

Each record is a hash at `<collection>:<id>`. HSET only touches the fields it
is given, which is exactly the merge-write the store contract asks for, and
existence checks for a whole feed go out as one pipeline.
"""
from typing import Dict, List, Optional, Set

import structlog
from redis.asyncio import Redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from feedrelay.config import StoreConfig
from feedrelay.exceptions import StoreError
from feedrelay.store import BaseRecordStore

# Set up structured logger
logger = structlog.get_logger()


class RedisRecordStore(BaseRecordStore):
    """Redis record store implementation."""

    def __init__(
        self,
        config: StoreConfig,
        redis_client: Redis,
        connection_pool: Optional[ConnectionPool] = None,
    ):
        """
        Initialize the Redis record store.

        Args:
            config: Store configuration
            redis_client: Redis client instance
            connection_pool: Connection pool owned by this store, if any
        """
        super().__init__(config)
        self.redis = redis_client
        self.connection_pool = connection_pool
        self._closed = False

    @classmethod
    async def create(cls, config: StoreConfig) -> "RedisRecordStore":
        """
        Create a Redis record store with its own connection pool.

        Raises:
            StoreError: If Redis cannot be reached
        """
        connection_kwargs = {}
        if config.redis_password:
            connection_kwargs["password"] = config.redis_password.get_secret_value()

        try:
            connection_pool = ConnectionPool.from_url(
                config.redis_url,
                decode_responses=True,
                **connection_kwargs
            )
            redis_client = Redis(connection_pool=connection_pool)
            await redis_client.ping()
            return cls(config, redis_client, connection_pool)

        except RedisError as e:
            logger.error("Failed to connect to Redis", error=str(e))
            raise StoreError("failed to connect to Redis", {"error": str(e)}) from e

    def _record_key(self, record_id: str) -> str:
        return f"{self.collection}:{record_id}"

    async def _find_existing(self, ids: List[str]) -> Set[str]:
        try:
            pipeline = self.redis.pipeline()
            for record_id in ids:
                pipeline.exists(self._record_key(record_id))
            results = await pipeline.execute()
        except RedisError as e:
            logger.error("Redis error checking records", error=str(e))
            raise StoreError(
                "failed getting items from Redis",
                {"collection": self.collection, "error": str(e)},
            ) from e

        return {record_id for record_id, count in zip(ids, results) if count}

    async def _merge(self, record_id: str, fields: Dict[str, str]) -> None:
        try:
            await self.redis.hset(self._record_key(record_id), mapping=fields)
        except RedisError as e:
            logger.error("Redis error writing record", record_id=record_id, error=str(e))
            raise StoreError(
                "failed writing record to Redis",
                {"record_id": record_id, "error": str(e)},
            ) from e

    async def _load(self, record_id: str) -> Optional[Dict[str, str]]:
        try:
            document = await self.redis.hgetall(self._record_key(record_id))
        except RedisError as e:
            raise StoreError(
                "failed reading record from Redis",
                {"record_id": record_id, "error": str(e)},
            ) from e
        return document or None

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.redis.aclose()
        if self.connection_pool is not None:
            await self.connection_pool.disconnect()
