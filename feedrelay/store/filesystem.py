"""
Filesystem-based record store for feed relay.

Each record is a JSON document at `<local_storage_path>/<collection>/<sha256(id)>.json`.
Writes go to a temporary file that is then renamed over the document, so a
reader never sees a half-written record.
"""
import asyncio
import hashlib
import json
from pathlib import Path
from typing import Dict, List, Optional, Set

import aiofiles
import aiofiles.os
import structlog

from feedrelay.config import StoreConfig
from feedrelay.exceptions import StoreError
from feedrelay.store import BaseRecordStore

# Set up structured logger
logger = structlog.get_logger()


class FilesystemRecordStore(BaseRecordStore):
    """Filesystem record store implementation."""

    def __init__(self, config: StoreConfig):
        """
        Initialize the filesystem record store.

        Args:
            config: Store configuration
        """
        super().__init__(config)
        self.records_dir = Path(config.local_storage_path) / self.collection
        self.records_dir.mkdir(parents=True, exist_ok=True)

        # Per-record locks so concurrent merges of one id don't interleave
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_lock = asyncio.Lock()

    def _get_file_path(self, record_id: str) -> Path:
        """Hash the id to get a valid filename."""
        hashed_id = hashlib.sha256(record_id.encode()).hexdigest()
        return self.records_dir / f"{hashed_id}.json"

    async def _get_lock(self, record_id: str) -> asyncio.Lock:
        async with self._lock_lock:
            if record_id not in self._locks:
                self._locks[record_id] = asyncio.Lock()
            return self._locks[record_id]

    async def _read_document(self, path: Path) -> Optional[Dict[str, str]]:
        if not await aiofiles.os.path.exists(path):
            return None
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            return json.loads(await f.read())

    async def _find_existing(self, ids: List[str]) -> Set[str]:
        try:
            found = set()
            for record_id in ids:
                if await aiofiles.os.path.exists(self._get_file_path(record_id)):
                    found.add(record_id)
            return found
        except OSError as e:
            logger.error("Filesystem store read failed", error=str(e))
            raise StoreError(
                "failed checking records on disk",
                {"collection": self.collection, "error": str(e)},
            ) from e

    async def _merge(self, record_id: str, fields: Dict[str, str]) -> None:
        path = self._get_file_path(record_id)
        tmp_path = path.with_suffix(".tmp")
        lock = await self._get_lock(record_id)

        async with lock:
            try:
                document = await self._read_document(path) or {}
                document.update(fields)
                async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                    await f.write(json.dumps(document, ensure_ascii=False))
                await aiofiles.os.replace(tmp_path, path)
            except (OSError, ValueError) as e:
                logger.error("Filesystem store write failed", record_id=record_id, error=str(e))
                raise StoreError(
                    "failed writing record to disk",
                    {"record_id": record_id, "error": str(e)},
                ) from e

    async def _load(self, record_id: str) -> Optional[Dict[str, str]]:
        lock = await self._get_lock(record_id)
        async with lock:
            try:
                return await self._read_document(self._get_file_path(record_id))
            except (OSError, ValueError) as e:
                raise StoreError(
                    "failed reading record from disk",
                    {"record_id": record_id, "error": str(e)},
                ) from e
