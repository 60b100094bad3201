"""
Memory-based record store for feed relay.

Records live in a dict for the lifetime of the process. Used for tests and
for single-run deployments where re-notification after a restart is fine.
"""
import asyncio
from typing import Dict, List, Optional, Set

import structlog

from feedrelay.config import StoreConfig
from feedrelay.store import BaseRecordStore

# Set up structured logger
logger = structlog.get_logger()


class MemoryRecordStore(BaseRecordStore):
    """In-memory record store implementation."""

    def __init__(self, config: StoreConfig):
        super().__init__(config)
        # Storage format: {record_id: {field: value}}
        self._documents: Dict[str, Dict[str, str]] = {}
        self._lock = asyncio.Lock()

    async def _find_existing(self, ids: List[str]) -> Set[str]:
        async with self._lock:
            return {record_id for record_id in ids if record_id in self._documents}

    async def _merge(self, record_id: str, fields: Dict[str, str]) -> None:
        async with self._lock:
            document = self._documents.setdefault(record_id, {})
            document.update(fields)

    async def _load(self, record_id: str) -> Optional[Dict[str, str]]:
        async with self._lock:
            document = self._documents.get(record_id)
            return dict(document) if document is not None else None

    async def close(self) -> None:
        async with self._lock:
            self._documents.clear()

    def __len__(self) -> int:
        """Number of stored records."""
        return len(self._documents)
