import json

import pytest

from feedrelay.config import StoreBackend, StoreConfig
from feedrelay.models.processed_record import ProcessedRecord
from feedrelay.store import get_record_store
from feedrelay.store.filesystem import FilesystemRecordStore
from feedrelay.store.memory import MemoryRecordStore


@pytest.fixture(params=["memory", "filesystem"])
def record_store(request, tmp_path):
    config = StoreConfig(local_storage_path=tmp_path, collection="test_records")
    if request.param == "filesystem":
        return FilesystemRecordStore(config)
    return MemoryRecordStore(config)


@pytest.mark.asyncio
async def test_upsert_then_existing(record_store):
    await record_store.upsert(ProcessedRecord(id="A", title="Post A"))

    assert await record_store.existing(["A", "B"]) == {"A": True, "B": False}


@pytest.mark.asyncio
async def test_existing_with_no_ids(record_store):
    assert await record_store.existing([]) == {}


@pytest.mark.asyncio
async def test_existing_collapses_duplicate_ids(record_store):
    assert await record_store.existing(["A", "A"]) == {"A": False}


@pytest.mark.asyncio
async def test_upsert_merges_fields(record_store):
    await record_store.upsert(ProcessedRecord(id="A", title="Post A", link="https://x/a"))
    await record_store.upsert(ProcessedRecord(id="A", last_update="2024-02-01"))

    record = await record_store.get("A")
    assert record.title == "Post A"
    assert record.link == "https://x/a"
    assert record.last_update == "2024-02-01"


@pytest.mark.asyncio
async def test_get_missing_record(record_store):
    assert await record_store.get("missing") is None


@pytest.mark.asyncio
async def test_filesystem_document_layout(tmp_path):
    store = FilesystemRecordStore(StoreConfig(local_storage_path=tmp_path, collection="records"))
    await store.upsert(ProcessedRecord(id="https://x/a", last_update="2024-01-01"))

    (path,) = (tmp_path / "records").glob("*.json")
    assert json.loads(path.read_text()) == {"id": "https://x/a", "lastUpdate": "2024-01-01"}


@pytest.mark.asyncio
async def test_filesystem_records_survive_reopen(tmp_path):
    config = StoreConfig(local_storage_path=tmp_path)
    await FilesystemRecordStore(config).upsert(ProcessedRecord(id="A"))

    reopened = FilesystemRecordStore(config)
    assert await reopened.existing(["A"]) == {"A": True}


@pytest.mark.asyncio
async def test_get_record_store_defaults_to_memory():
    store = await get_record_store(StoreConfig())
    assert isinstance(store, MemoryRecordStore)


@pytest.mark.asyncio
async def test_get_record_store_filesystem(tmp_path):
    store = await get_record_store(StoreConfig(backend=StoreBackend.FILESYSTEM, local_storage_path=tmp_path))
    assert isinstance(store, FilesystemRecordStore)
