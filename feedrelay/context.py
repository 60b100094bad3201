"""
Application context management.
"""
import asyncio
from contextlib import AsyncExitStack
from functools import partial
from typing import Optional, Set

import httpx
import structlog
from apscheduler.events import EVENT_JOB_ERROR
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from feedrelay.config import Settings
from feedrelay.dispatch import Dispatcher, get_dispatcher
from feedrelay.notify.webhook import WebhookNotifier
from feedrelay.processing.channel import ChannelProcessor
from feedrelay.processing.item import ItemProcessor
from feedrelay.scheduler import schedule_channel_jobs
from feedrelay.store import BaseRecordStore, get_record_store
from feedrelay.tasks import list_channels, process_item

logger = structlog.get_logger()


class AppContext:
    """
    Application context that holds all initialized components and resources.

    Components are built from the settings passed in here and handed to each
    other explicitly; nothing reads configuration from global state.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.exit_stack = AsyncExitStack()
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.http_client: Optional[httpx.AsyncClient] = None
        self.store: Optional[BaseRecordStore] = None
        self.notifier: Optional[WebhookNotifier] = None
        self.item_processor: Optional[ItemProcessor] = None
        self.dispatcher: Optional[Dispatcher] = None
        self.channel_processor: Optional[ChannelProcessor] = None
        self.shutdown_event = asyncio.Event()
        self.active_tasks: Set[asyncio.Task] = set()

    async def initialize(self) -> None:
        """Initialize all components and resources."""
        logger.info("Initializing application context")

        self.http_client = httpx.AsyncClient(follow_redirects=True)
        self.exit_stack.push_async_callback(self.http_client.aclose)

        await self._init_store()

        self.notifier = WebhookNotifier(self.settings.notify, client=self.http_client)
        self.item_processor = ItemProcessor(
            self.store,
            self.notifier,
            max_message_length=self.settings.notify.max_message_length,
        )

        await self._init_dispatcher()
        self.channel_processor = ChannelProcessor(self.store, self.dispatcher)

        logger.info("Application context initialized")

    async def _init_store(self) -> None:
        """Initialize the record store."""
        logger.info("Initializing record store")
        self.store = await get_record_store(self.settings.store)
        await self.exit_stack.enter_async_context(self.store)
        logger.info("Record store initialized", type=type(self.store).__name__)

    async def _init_dispatcher(self) -> None:
        """Initialize the dispatch transport."""
        self.dispatcher = await get_dispatcher(self.settings.dispatch, partial(process_item, self))
        self.exit_stack.push_async_callback(self.dispatcher.close)
        logger.info("Dispatcher initialized", type=type(self.dispatcher).__name__)

    def start_scheduler(self) -> None:
        """Create the job scheduler, schedule one job per channel and start it."""
        logger.info("Initializing job scheduler")
        self.scheduler = AsyncIOScheduler(
            jobstores={"default": MemoryJobStore()},
            timezone=self.settings.scheduler.timezone,
            job_defaults={
                "coalesce": self.settings.scheduler.coalesce,
                "misfire_grace_time": self.settings.scheduler.misfire_grace_time,
                "max_instances": self.settings.scheduler.max_instances,
            },
        )
        self.scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)

        schedule_channel_jobs(self.scheduler, list_channels(self.settings), self)
        self.scheduler.start()
        logger.info("Job scheduler started", job_count=len(self.scheduler.get_jobs()))

    def _on_job_error(self, event) -> None:
        logger.error("Scheduled job failed", job_id=event.job_id, error=str(event.exception))

    async def shutdown(self) -> None:
        """Gracefully shut down all components and resources."""
        logger.info("Shutting down application")

        self.shutdown_event.set()

        if self.active_tasks:
            logger.info("Cancelling active tasks", count=len(self.active_tasks))
            for task in self.active_tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*self.active_tasks, return_exceptions=True)

        if self.scheduler and self.scheduler.running:
            logger.info("Shutting down scheduler")
            self.scheduler.shutdown(wait=False)

        logger.info("Closing all components")
        await self.exit_stack.aclose()

        logger.info("Application shutdown complete")

    def create_task(self, coro) -> asyncio.Task:
        """Create a tracked asyncio task."""
        task = asyncio.create_task(coro)
        self.active_tasks.add(task)
        task.add_done_callback(self.active_tasks.discard)
        return task
