"""
Database utilities for feed relay.

Shared asyncpg connection pools for the PostgreSQL record store.
"""

from feedrelay.db.postgres_pool import close_pool, get_pool

__all__ = ["get_pool", "close_pool"]
