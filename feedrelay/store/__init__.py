"""
Record store package for feed relay.

This package persists ProcessedRecord documents, keyed by feed entry id, and
answers batch existence checks for deduplication. Backends (memory,
filesystem, Redis, PostgreSQL) share one interface: a batch `existing` check
and a merge-write `upsert`.
"""
from typing import Dict, Iterable, List, Optional, Protocol, Set

import structlog

from feedrelay.config import StoreBackend, StoreConfig
from feedrelay.exceptions import StoreError
from feedrelay.models.processed_record import ProcessedRecord

# Set up structured logger
logger = structlog.get_logger()


class RecordStore(Protocol):
    """Protocol defining the interface for record stores."""

    async def existing(self, ids: Iterable[str]) -> Dict[str, bool]:
        """
        Check which of the given ids already have a ProcessedRecord.

        Args:
            ids: Entry identifiers to check

        Returns:
            Dict[str, bool]: One entry per requested id, True if a record exists

        Raises:
            StoreError: If the store cannot be read
        """
        ...

    async def upsert(self, record: ProcessedRecord) -> None:
        """
        Merge a record into the store.

        Fields not set on the record are left as they are in the stored
        document.

        Raises:
            StoreError: If the store cannot be written
        """
        ...

    async def get(self, record_id: str) -> Optional[ProcessedRecord]:
        """Load a full record, or None if it does not exist."""
        ...

    async def close(self) -> None:
        """Close the store and release resources."""
        ...


class BaseRecordStore(RecordStore):
    """
    Base class for record stores.

    Subclasses implement the three storage primitives `_find_existing`,
    `_merge` and `_load`; this class owns input normalisation and logging.
    """

    def __init__(self, config: StoreConfig):
        """
        Initialize the base record store.

        Args:
            config: Store configuration
        """
        self.config = config
        self.collection = config.collection

    async def _find_existing(self, ids: List[str]) -> Set[str]:
        """Return the subset of ids that have a stored document."""
        raise NotImplementedError

    async def _merge(self, record_id: str, fields: Dict[str, str]) -> None:
        """Merge fields into the document stored under record_id."""
        raise NotImplementedError

    async def _load(self, record_id: str) -> Optional[Dict[str, str]]:
        """Load the document stored under record_id."""
        raise NotImplementedError

    async def existing(self, ids: Iterable[str]) -> Dict[str, bool]:
        wanted = sorted(set(ids))
        if not wanted:
            return {}

        found = await self._find_existing(wanted)
        logger.debug(
            "Checked record existence",
            collection=self.collection,
            requested=len(wanted),
            found=len(found),
        )
        return {record_id: record_id in found for record_id in wanted}

    async def upsert(self, record: ProcessedRecord) -> None:
        await self._merge(record.id, record.to_document())
        logger.debug("Record updated", collection=self.collection, record_id=record.id)

    async def get(self, record_id: str) -> Optional[ProcessedRecord]:
        document = await self._load(record_id)
        if document is None:
            return None
        return ProcessedRecord.from_document(document)

    async def __aenter__(self) -> "BaseRecordStore":
        """Enter the async context manager."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit the async context manager."""
        await self.close()

    async def close(self) -> None:
        """Close the store and release resources."""
        pass


async def get_record_store(config: StoreConfig) -> BaseRecordStore:
    """
    Get a record store based on configuration.

    Args:
        config: Store configuration

    Returns:
        BaseRecordStore: Connected record store

    Raises:
        StoreError: If the backend cannot be reached
    """
    if config.backend == StoreBackend.POSTGRES:
        from feedrelay.store.postgres import PostgresRecordStore

        dsn = config.postgres_dsn
        logger.info(
            "Using PostgreSQL record store",
            dsn=dsn.split("@")[-1] if "@" in dsn else dsn,
            collection=config.collection,
        )
        return await PostgresRecordStore.create(config)

    if config.backend == StoreBackend.REDIS:
        from feedrelay.store.redis import RedisRecordStore

        logger.info("Using Redis record store", collection=config.collection)
        return await RedisRecordStore.create(config)

    if config.backend == StoreBackend.FILESYSTEM:
        logger.info(
            "Using filesystem record store",
            path=str(config.local_storage_path),
            collection=config.collection,
        )
        return FilesystemRecordStore(config)

    logger.info("Using memory record store", collection=config.collection)
    return MemoryRecordStore(config)


# Import specific implementations to make them available
from feedrelay.store.filesystem import FilesystemRecordStore
from feedrelay.store.memory import MemoryRecordStore

__all__ = [
    "RecordStore",
    "BaseRecordStore",
    "StoreError",
    "get_record_store",
    "FilesystemRecordStore",
    "MemoryRecordStore",
]
