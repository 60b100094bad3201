"""
PostgreSQL-based record store for feed relay.

Records are JSONB documents in a table named after the collection. Upserts
use `data || EXCLUDED.data`, so fields missing from a write keep their
stored value.
"""
import json
import re
from typing import Dict, List, Optional, Set

import asyncpg
import structlog

from feedrelay.config import StoreConfig
from feedrelay.db.postgres_pool import close_pool, get_pool, safe_dsn
from feedrelay.exceptions import StoreError
from feedrelay.store import BaseRecordStore

logger = structlog.get_logger()

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class PostgresRecordStore(BaseRecordStore):
    """PostgreSQL record store implementation."""

    def __init__(self, config: StoreConfig):
        super().__init__(config)
        if not _IDENTIFIER.match(self.collection):
            raise StoreError(
                "collection name is not a valid table name",
                {"collection": self.collection},
            )
        self.dsn = config.postgres_dsn
        self.table = self.collection
        self.pool: Optional[asyncpg.Pool] = None

    @classmethod
    async def create(cls, config: StoreConfig) -> "PostgresRecordStore":
        """
        Connect to PostgreSQL and make sure the record table exists.

        Raises:
            StoreError: If the database cannot be reached
        """
        store = cls(config)
        try:
            store.pool = await get_pool(store.dsn)
            async with store.pool.acquire() as conn:
                await conn.execute(f"""
                    CREATE TABLE IF NOT EXISTS {store.table} (
                        id          TEXT PRIMARY KEY,
                        data        JSONB NOT NULL,
                        updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                """)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error("Failed to initialise PostgreSQL record store", error=str(e))
            raise StoreError(
                "failed to connect to PostgreSQL",
                {"dsn": safe_dsn(store.dsn), "error": str(e)},
            ) from e

        logger.info("PostgreSQL record store initialized", dsn=safe_dsn(store.dsn), table=store.table)
        return store

    async def _find_existing(self, ids: List[str]) -> Set[str]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"SELECT id FROM {self.table} WHERE id = ANY($1::text[])",
                    ids,
                )
        except (asyncpg.PostgresError, OSError) as e:
            logger.error("PostgreSQL error checking records", error=str(e))
            raise StoreError(
                "failed getting items from PostgreSQL",
                {"table": self.table, "error": str(e)},
            ) from e
        return {row["id"] for row in rows}

    async def _merge(self, record_id: str, fields: Dict[str, str]) -> None:
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    f"""
                    INSERT INTO {self.table} (id, data)
                    VALUES ($1, $2::jsonb)
                    ON CONFLICT (id) DO UPDATE SET
                        data = {self.table}.data || EXCLUDED.data,
                        updated_at = NOW()
                    """,
                    record_id,
                    json.dumps(fields),
                )
        except (asyncpg.PostgresError, OSError) as e:
            logger.error("PostgreSQL error writing record", record_id=record_id, error=str(e))
            raise StoreError(
                "failed writing record to PostgreSQL",
                {"record_id": record_id, "error": str(e)},
            ) from e

    async def _load(self, record_id: str) -> Optional[Dict[str, str]]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT data FROM {self.table} WHERE id = $1",
                    record_id,
                )
        except (asyncpg.PostgresError, OSError) as e:
            raise StoreError(
                "failed reading record from PostgreSQL",
                {"record_id": record_id, "error": str(e)},
            ) from e
        if row is None:
            return None
        return json.loads(row["data"])

    async def close(self) -> None:
        if self.pool is not None:
            await close_pool(self.dsn)
            self.pool = None
