"""
Shared PostgreSQL connection pools for feed relay.

One asyncpg pool is kept per DSN, so every store and worker in the process
that talks to the same database reuses the same connections.
"""
import asyncio
from typing import Dict, Optional

import asyncpg
import structlog

logger = structlog.get_logger()

_pools: Dict[str, asyncpg.Pool] = {}
_pool_lock = asyncio.Lock()


def safe_dsn(dsn: str) -> str:
    """Strip credentials from a DSN before it is logged."""
    return dsn.split("@")[-1] if "@" in dsn else dsn


async def get_pool(
    dsn: str,
    min_size: int = 1,
    max_size: int = 10,
    command_timeout: int = 30,
) -> asyncpg.Pool:
    """
    Get or create the connection pool for a DSN.

    Args:
        dsn: PostgreSQL connection string
        min_size: Minimum number of connections in the pool
        max_size: Maximum number of connections in the pool
        command_timeout: Default timeout for commands in seconds

    Returns:
        asyncpg.Pool: Shared connection pool
    """
    if dsn in _pools:
        return _pools[dsn]

    async with _pool_lock:
        if dsn not in _pools:
            logger.info(
                "Creating PostgreSQL connection pool",
                dsn=safe_dsn(dsn),
                min_size=min_size,
                max_size=max_size,
            )
            _pools[dsn] = await asyncpg.create_pool(
                dsn,
                min_size=min_size,
                max_size=max_size,
                command_timeout=command_timeout,
            )
        return _pools[dsn]


async def close_pool(dsn: Optional[str] = None) -> None:
    """
    Close the pool for one DSN, or every pool when no DSN is given.
    """
    targets = [dsn] if dsn is not None else list(_pools)
    for pool_dsn in targets:
        pool = _pools.pop(pool_dsn, None)
        if pool is not None:
            logger.info("Closing PostgreSQL connection pool", dsn=safe_dsn(pool_dsn))
            await pool.close()
