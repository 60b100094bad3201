import httpx
import pytest

from feedrelay.config import DispatchConfig
from feedrelay.dispatch import LocalDispatcher, get_dispatcher
from feedrelay.dispatch.redis_queue import QueueWorker, RedisQueueDispatcher
from feedrelay.exceptions import DeliveryError, DispatchError
from feedrelay.models.dispatched_item import DispatchedItem


class FakeRedis:
    """Just enough of a Redis list for the queue transport."""

    def __init__(self):
        self.lists = {}
        self.closed = False

    async def lpush(self, name, value):
        self.lists.setdefault(name, []).insert(0, value)
        return len(self.lists[name])

    async def brpop(self, names, timeout=0):
        for name in names:
            if self.lists.get(name):
                return name, self.lists[name].pop()
        return None

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_local_dispatch_runs_handler(item):
    handled = []

    async def handler(dispatched):
        handled.append(dispatched)

    ack = await LocalDispatcher(handler).dispatch(item)

    assert handled == [item]
    assert ack == item.id


@pytest.mark.asyncio
async def test_local_dispatch_wraps_handler_errors(item):
    async def handler(dispatched):
        raise DeliveryError("response status: 500 Internal Server Error", status_code=500)

    with pytest.raises(DispatchError) as exc_info:
        await LocalDispatcher(handler).dispatch(item)

    assert isinstance(exc_info.value.__cause__, DeliveryError)


@pytest.mark.asyncio
async def test_get_dispatcher_defaults_to_local():
    async def handler(dispatched):
        return None

    dispatcher = await get_dispatcher(DispatchConfig(), handler)
    assert isinstance(dispatcher, LocalDispatcher)


def test_item_wire_format(item):
    assert DispatchedItem.from_json(item.to_json()) == item
    assert DispatchedItem.from_json(item.to_json().encode()) == item


@pytest.mark.asyncio
async def test_queue_round_trip(item):
    redis = FakeRedis()
    config = DispatchConfig()
    handled = []

    async def handler(dispatched):
        handled.append(dispatched)

    dispatcher = RedisQueueDispatcher(config, redis)
    assert await dispatcher.dispatch(item) == "1"

    worker = QueueWorker(config, handler, redis_client=redis)
    assert await worker.run_once() is True
    assert await worker.run_once() is False

    assert handled == [item]
    assert worker.processed == 1


@pytest.mark.asyncio
async def test_worker_drops_malformed_payload():
    worker = QueueWorker(DispatchConfig(), handler=None, redis_client=FakeRedis())

    assert await worker.handle_payload("{not json") is False
    assert worker.failed == 1


@pytest.mark.asyncio
async def test_worker_counts_handler_failures(item):
    async def handler(dispatched):
        raise DeliveryError("response status: 500 Internal Server Error", status_code=500)

    worker = QueueWorker(DispatchConfig(), handler, redis_client=FakeRedis())

    assert await worker.handle_payload(item.to_json()) is False
    assert worker.failed == 1
    assert worker.processed == 0


@pytest.mark.asyncio
async def test_worker_close_stops_and_closes_client():
    redis = FakeRedis()
    worker = QueueWorker(DispatchConfig(), handler=None, redis_client=redis)

    await worker.close()

    assert worker.stop_event.is_set()
    assert redis.closed


@pytest.mark.asyncio
async def test_worker_survives_unexpected_handler_errors(item):
    async def handler(dispatched):
        raise httpx.InvalidURL("bad")

    redis = FakeRedis()
    await RedisQueueDispatcher(DispatchConfig(), redis).dispatch(item)
    worker = QueueWorker(DispatchConfig(), handler, redis_client=redis)

    assert await worker.run_once() is True
    assert worker.failed == 1
    assert worker.processed == 0
