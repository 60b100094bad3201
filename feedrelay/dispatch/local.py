"""
In-process dispatcher: runs the item handler directly.
"""
import structlog

from feedrelay.dispatch import ItemHandler
from feedrelay.exceptions import DispatchError
from feedrelay.models.dispatched_item import DispatchedItem

logger = structlog.get_logger()


class LocalDispatcher:
    """Dispatches by awaiting the item handler; acknowledges with the item id."""

    def __init__(self, handler: ItemHandler):
        self.handler = handler

    async def dispatch(self, item: DispatchedItem) -> str:
        try:
            await self.handler(item)
        except Exception as e:
            raise DispatchError(
                f"item processing failed: {e}",
                {"item_id": item.id, "error_type": type(e).__name__},
            ) from e
        return item.id

    async def close(self) -> None:
        pass
